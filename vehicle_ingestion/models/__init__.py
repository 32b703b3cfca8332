"""Pydantic validation models and domain records."""

from vehicle_ingestion.models.vehicle_fields import (
    VehicleField,
    REQUIRED_FIELDS,
    OPTIONAL_FIELDS,
    TAXONOMY_FIELDS,
    FIELD_LABELS,
    FIELD_ALIASES,
)
from vehicle_ingestion.models.raw_row import RawRow, ParsedSpreadsheet
from vehicle_ingestion.models.taxonomy import TaxonomyKind, MasterTaxonomyEntry
from vehicle_ingestion.models.matching import MatchStatus, MatchScope, MatchResult
from vehicle_ingestion.models.mapping import ColumnMapping, MappingValidation
from vehicle_ingestion.models.vehicle import (
    Condition,
    BodyType,
    FuelType,
    Transmission,
    Drivetrain,
    Currency,
    Incoterm,
    ImportDefaults,
    ValidatedVehicleRow,
)
from vehicle_ingestion.models.import_batch import (
    BatchState,
    FieldError,
    RowSuccess,
    RowFailure,
    RowOutcome,
    ProgressEvent,
    ImportErrorEntry,
    CorrectionEntry,
    ImportSummary,
    ImportBatch,
)

__all__ = [
    "VehicleField",
    "REQUIRED_FIELDS",
    "OPTIONAL_FIELDS",
    "TAXONOMY_FIELDS",
    "FIELD_LABELS",
    "FIELD_ALIASES",
    "RawRow",
    "ParsedSpreadsheet",
    "TaxonomyKind",
    "MasterTaxonomyEntry",
    "MatchStatus",
    "MatchScope",
    "MatchResult",
    "ColumnMapping",
    "MappingValidation",
    "Condition",
    "BodyType",
    "FuelType",
    "Transmission",
    "Drivetrain",
    "Currency",
    "Incoterm",
    "ImportDefaults",
    "ValidatedVehicleRow",
    "BatchState",
    "FieldError",
    "RowSuccess",
    "RowFailure",
    "RowOutcome",
    "ProgressEvent",
    "ImportErrorEntry",
    "CorrectionEntry",
    "ImportSummary",
    "ImportBatch",
]
