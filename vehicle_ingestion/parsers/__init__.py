"""Parser modules for uploaded spreadsheet files."""
from vehicle_ingestion.parsers.base_parser import ParserInterface, SpreadsheetSource
from vehicle_ingestion.parsers.parser_registry import (
    register_parser,
    get_parser,
    create_parser_instance,
    create_parser_for_filename,
    list_registered_parsers,
)
from vehicle_ingestion.parsers.csv_parser import CsvParser
from vehicle_ingestion.parsers.excel_parser import ExcelParser

# Register parsers
register_parser("csv", CsvParser)
register_parser("excel", ExcelParser)

__all__ = [
    "ParserInterface",
    "SpreadsheetSource",
    "register_parser",
    "get_parser",
    "create_parser_instance",
    "create_parser_for_filename",
    "list_registered_parsers",
    "CsvParser",
    "ExcelParser",
]
