"""Error handling module."""
from vehicle_ingestion.errors.exceptions import (
    VehicleImportError,
    FileParseError,
    MappingValidationError,
    RowError,
    ValidationError,
    TaxonomyUnmatchedError,
    RowValidationError,
    PersistenceError,
    BatchStateError,
)

__all__ = [
    "VehicleImportError",
    "FileParseError",
    "MappingValidationError",
    "RowError",
    "ValidationError",
    "TaxonomyUnmatchedError",
    "RowValidationError",
    "PersistenceError",
    "BatchStateError",
]
