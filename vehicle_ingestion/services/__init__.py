"""Business logic services for the vehicle import pipeline.

Available Services:
    - matching: Taxonomy matching using fuzzy string comparison
    - taxonomy_index: Master taxonomy snapshot, sources and TTL cache
    - column_mapper: Header → vehicle field suggestion and validation
    - row_validator: Per-row conversion and range checks
    - progress: Progress reporter and sinks (callback, Redis)
    - import_orchestrator: Chunked, failure-isolating batch import
"""
from vehicle_ingestion.services.matching import (
    MatcherStrategy,
    BlendedFuzzyMatcher,
    TaxonomyResolution,
    TaxonomyResolver,
    create_matcher,
    normalize_text,
)
from vehicle_ingestion.services.taxonomy_index import (
    TaxonomySource,
    StaticTaxonomySource,
    MasterSheetTaxonomySource,
    TaxonomyIndex,
    TaxonomyIndexCache,
)
from vehicle_ingestion.services.column_mapper import ColumnMappingEngine
from vehicle_ingestion.services.row_validator import RowValidator
from vehicle_ingestion.services.progress import (
    ProgressSink,
    NullProgressSink,
    CallbackProgressSink,
    RedisProgressSink,
    ProgressReporter,
)
from vehicle_ingestion.services.import_orchestrator import (
    BatchImportOrchestrator,
    VehicleRepository,
)

__all__: list[str] = [
    # Matching
    "MatcherStrategy",
    "BlendedFuzzyMatcher",
    "TaxonomyResolution",
    "TaxonomyResolver",
    "create_matcher",
    "normalize_text",
    # Taxonomy
    "TaxonomySource",
    "StaticTaxonomySource",
    "MasterSheetTaxonomySource",
    "TaxonomyIndex",
    "TaxonomyIndexCache",
    # Mapping / Validation
    "ColumnMappingEngine",
    "RowValidator",
    # Progress
    "ProgressSink",
    "NullProgressSink",
    "CallbackProgressSink",
    "RedisProgressSink",
    "ProgressReporter",
    # Orchestration
    "BatchImportOrchestrator",
    "VehicleRepository",
]
