"""Parser registry for dynamic parser registration and retrieval."""
from pathlib import PurePath
from typing import Dict, Optional, Type

from vehicle_ingestion.errors.exceptions import FileParseError
from vehicle_ingestion.parsers.base_parser import ParserInterface


# Global registry mapping parser type strings to parser classes
_parser_registry: Dict[str, Type[ParserInterface]] = {}


def register_parser(parser_type: str, parser_class: Type[ParserInterface]) -> None:
    """Register a parser class for a given parser type.

    Args:
        parser_type: Unique identifier for the parser (e.g., "csv")
        parser_class: Parser class that inherits from ParserInterface

    Raises:
        ValueError: If parser_type is already registered
        TypeError: If parser_class does not inherit from ParserInterface
    """
    if not issubclass(parser_class, ParserInterface):
        raise TypeError(
            f"Parser class {parser_class.__name__} must inherit from ParserInterface"
        )

    if parser_type in _parser_registry:
        raise ValueError(
            f"Parser type '{parser_type}' is already registered. "
            f"Existing: {_parser_registry[parser_type].__name__}"
        )

    _parser_registry[parser_type] = parser_class


def get_parser(parser_type: str) -> Optional[Type[ParserInterface]]:
    """Get parser class for a given parser type, or None if unknown."""
    return _parser_registry.get(parser_type)


def create_parser_instance(parser_type: str, **kwargs) -> ParserInterface:
    """Create an instance of a parser for a given parser type.

    Raises:
        FileParseError: If parser type is not registered
    """
    parser_class = get_parser(parser_type)
    if parser_class is None:
        available = ", ".join(_parser_registry.keys()) if _parser_registry else "none"
        raise FileParseError(
            f"Parser type '{parser_type}' is not registered. "
            f"Available parsers: {available}"
        )
    return parser_class(**kwargs)


def create_parser_for_filename(filename: str, **kwargs) -> ParserInterface:
    """Pick a parser from the uploaded file's extension.

    Raises:
        FileParseError: If no registered parser accepts the extension
    """
    extension = PurePath(filename).suffix.lower()
    for parser_class in _parser_registry.values():
        if extension in parser_class.supported_extensions:
            return parser_class(**kwargs)
    raise FileParseError(
        "Invalid file type. Please upload an Excel (.xlsx, .xls) or CSV file"
    )


def list_registered_parsers() -> list[str]:
    """List all registered parser types."""
    return list(_parser_registry.keys())
