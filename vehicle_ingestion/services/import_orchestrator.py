"""Batch import orchestrator.

Drives an uploaded spreadsheet through parse → column mapping → per-row
taxonomy matching and validation → persistence, in fixed-size chunks.

Failure handling:
    - A bad file or an invalid mapping aborts the batch before any row runs
    - Any failure inside a row is recorded against that row only and the
      batch moves on to the next row
    - Progress is emitted after every chunk; sink failures are logged only
"""
import asyncio
from itertools import islice
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Protocol, Sequence, Union

import structlog

from vehicle_ingestion.config import ImportSettings, import_settings
from vehicle_ingestion.errors.exceptions import (
    FileParseError,
    MappingValidationError,
    RowError,
)
from vehicle_ingestion.models.import_batch import (
    BatchState,
    FieldError,
    ImportBatch,
    ImportSummary,
    RowFailure,
    RowOutcome,
    RowSuccess,
)
from vehicle_ingestion.models.mapping import ColumnMapping
from vehicle_ingestion.models.raw_row import ParsedSpreadsheet, RawRow
from vehicle_ingestion.models.vehicle import ImportDefaults, ValidatedVehicleRow
from vehicle_ingestion.models.vehicle_fields import VehicleField
from vehicle_ingestion.parsers import ParserInterface, SpreadsheetSource, create_parser_for_filename
from vehicle_ingestion.services.column_mapper import ColumnMappingEngine
from vehicle_ingestion.services.matching.matcher import MatcherStrategy, create_matcher
from vehicle_ingestion.services.matching.resolver import TaxonomyResolver
from vehicle_ingestion.services.progress import ProgressReporter, ProgressSink
from vehicle_ingestion.services.row_validator import RowValidator
from vehicle_ingestion.services.taxonomy_index import TaxonomyIndex, TaxonomyIndexCache

logger = structlog.get_logger(__name__)


class VehicleRepository(Protocol):
    """Persistence collaborator that stores validated vehicles.

    Implementations create the listing, or update it when it already exists
    (e.g. same seller and VIN). Raising fails only the row being stored.
    """

    async def create_or_update_vehicle(self, vehicle: ValidatedVehicleRow) -> Any:
        ...


def _chunked(rows: Iterable[RawRow], size: int) -> Iterator[List[RawRow]]:
    iterator = iter(rows)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk


class BatchImportOrchestrator:
    """Runs import batches against one repository and taxonomy.

    Example:
        orchestrator = BatchImportOrchestrator(
            repository=repo,
            taxonomy=TaxonomyIndexCache(source),
            progress_sink=CallbackProgressSink(print),
        )
        summary = await orchestrator.run(file_bytes, "stock.xlsx")
    """

    def __init__(
        self,
        repository: Optional[VehicleRepository],
        taxonomy: Union[TaxonomyIndex, TaxonomyIndexCache],
        mapping_engine: Optional[ColumnMappingEngine] = None,
        matcher: Optional[MatcherStrategy] = None,
        validator: Optional[RowValidator] = None,
        progress_sink: Optional[ProgressSink] = None,
        parser: Optional[ParserInterface] = None,
        settings: Optional[ImportSettings] = None,
    ):
        self.repository = repository
        self.taxonomy = taxonomy
        self.settings = settings or import_settings
        self.mapping_engine = mapping_engine or ColumnMappingEngine()
        self.matcher = matcher or create_matcher()
        self.validator = validator or RowValidator(settings=self.settings)
        self.progress_sink = progress_sink
        self.parser = parser
        self._batch: Optional[ImportBatch] = None
        self._running: Dict[str, ImportBatch] = {}

    @property
    def batch(self) -> Optional[ImportBatch]:
        """The batch of the most recently started run."""
        return self._batch

    def cancel(self, batch_id: str) -> bool:
        """Stop one running batch before its next chunk; finished rows are kept.

        Other batches running on this orchestrator are unaffected.

        Returns:
            True if the batch was running, False otherwise
        """
        batch = self._running.get(batch_id)
        if batch is None:
            return False
        batch.request_cancel()
        return True

    async def run(
        self,
        source: SpreadsheetSource,
        filename: str,
        mapping: Optional[ColumnMapping] = None,
        overrides: Optional[Mapping[Union[VehicleField, str], Optional[str]]] = None,
        defaults: Optional[ImportDefaults] = None,
        dry_run: bool = False,
        batch: Optional[ImportBatch] = None,
        progress_sink: Optional[ProgressSink] = None,
    ) -> ImportSummary:
        """Import one file.

        Args:
            source: File contents
            filename: Original file name (selects the parser when none is set)
            mapping: Finalized column mapping; suggested from headers when None
            overrides: Manual field → header choices applied on top of the mapping
            defaults: File-wide values for city, country, currency, incoterm
            dry_run: Validate every row without calling the repository
            batch: Pre-created batch, so callers know the id before the run
            progress_sink: Sink for this run, instead of the orchestrator's

        Returns:
            ImportSummary of the finished batch

        Raises:
            FileParseError: If the file cannot be parsed (batch ABORTED)
            MappingValidationError: If required fields are unmapped (batch ABORTED)
        """
        if self.repository is None and not dry_run:
            raise ValueError("A repository is required unless dry_run is set")

        batch = batch or ImportBatch()
        batch.dry_run = dry_run
        self._batch = batch
        self._running[batch.id] = batch
        log = logger.bind(batch_id=batch.id, filename=filename, dry_run=dry_run)
        log.info("batch_started")
        try:
            return await self._run_batch(
                batch, source, filename, mapping, overrides, defaults, dry_run, progress_sink, log
            )
        finally:
            self._running.pop(batch.id, None)

    async def _run_batch(
        self,
        batch: ImportBatch,
        source: SpreadsheetSource,
        filename: str,
        mapping: Optional[ColumnMapping],
        overrides: Optional[Mapping[Union[VehicleField, str], Optional[str]]],
        defaults: Optional[ImportDefaults],
        dry_run: bool,
        progress_sink: Optional[ProgressSink],
        log: Any,
    ) -> ImportSummary:
        try:
            parser = self.parser or create_parser_for_filename(
                filename, max_file_size_mb=self.settings.max_file_size_mb
            )
            spreadsheet = parser.parse(source, filename=filename)
        except FileParseError as e:
            self._abort(batch, log, e.message)
            raise

        try:
            column_mapping = self._finalize_mapping(spreadsheet, mapping, overrides)
        except MappingValidationError as e:
            self._abort(batch, log, e.message)
            raise

        batch.transition(BatchState.MAPPING)
        validation = self.mapping_engine.validate(column_mapping, spreadsheet.headers)
        if not validation.is_valid:
            try:
                validation.raise_if_invalid()
            except MappingValidationError as e:
                self._abort(batch, log, e.message)
                raise

        batch.transition(BatchState.VALIDATING)
        try:
            index = await self._load_taxonomy()
        except Exception as e:
            self._abort(batch, log, f"Failed to load taxonomy: {e}")
            raise

        resolver = TaxonomyResolver(self.matcher, index)
        validator = self.validator.with_defaults(defaults) if defaults else self.validator

        batch.start_importing(len(spreadsheet))
        reporter = ProgressReporter(progress_sink or self.progress_sink, batch.total_rows, batch.id)
        log.info(
            "batch_importing",
            total_rows=batch.total_rows,
            mapped_fields=[f.value for f in column_mapping.mapped_fields],
            chunk_size=self.settings.chunk_size,
        )

        for chunk in _chunked(spreadsheet, self.settings.chunk_size):
            if batch.cancel_requested:
                log.warning(
                    "batch_cancelled",
                    processed_count=batch.processed_count,
                    total_rows=batch.total_rows,
                )
                break
            outcomes = await self._process_chunk(chunk, column_mapping, resolver, validator, dry_run, log)
            batch.record_chunk(outcomes)
            await reporter.report(
                batch.processed_count,
                f"Processed {batch.processed_count} of {batch.total_rows} rows",
            )
            log.info(
                "chunk_processed",
                processed_count=batch.processed_count,
                succeeded_count=batch.succeeded_count,
                failed_count=batch.failed_count,
            )

        batch.finish(cancelled=batch.cancel_requested)
        log.info(
            "batch_completed",
            batch_state=batch.state.value,
            total_rows=batch.total_rows,
            succeeded_count=batch.succeeded_count,
            failed_count=batch.failed_count,
            cancelled=batch.cancelled,
        )
        return batch.summary()

    def _finalize_mapping(
        self,
        spreadsheet: ParsedSpreadsheet,
        mapping: Optional[ColumnMapping],
        overrides: Optional[Mapping[Union[VehicleField, str], Optional[str]]],
    ) -> ColumnMapping:
        column_mapping = mapping or self.mapping_engine.suggest_mapping(spreadsheet.headers)
        if overrides:
            column_mapping = self.mapping_engine.apply_overrides(column_mapping, overrides)
        return column_mapping

    async def _load_taxonomy(self) -> TaxonomyIndex:
        if isinstance(self.taxonomy, TaxonomyIndex):
            return self.taxonomy
        return await self.taxonomy.get_index()

    def _abort(self, batch: ImportBatch, log: Any, reason: str) -> None:
        log.warning("batch_aborted", reason=reason, from_state=batch.state.value)
        batch.abort(reason)

    async def _process_chunk(
        self,
        chunk: Sequence[RawRow],
        mapping: ColumnMapping,
        resolver: TaxonomyResolver,
        validator: RowValidator,
        dry_run: bool,
        log: Any,
    ) -> List[RowOutcome]:
        """Process a chunk's rows, at most max_concurrency at a time, keeping file order."""
        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        async def guarded(row: RawRow) -> RowOutcome:
            async with semaphore:
                return await self._process_row(row, mapping, resolver, validator, dry_run, log)

        return list(await asyncio.gather(*(guarded(row) for row in chunk)))

    async def _process_row(
        self,
        row: RawRow,
        mapping: ColumnMapping,
        resolver: TaxonomyResolver,
        validator: RowValidator,
        dry_run: bool,
        log: Any,
    ) -> RowOutcome:
        try:
            mapped = mapping.extract(row.cells)
            resolution = resolver.resolve(mapped)
            vehicle = validator.validate(mapped, resolution)
            if not dry_run:
                await self.repository.create_or_update_vehicle(vehicle)
            return RowSuccess(row_index=row.row_index, vehicle=vehicle, matches=resolution.matches)

        except RowError as e:
            errors = [FieldError(field=f, reason=r) for f, r in e.field_errors()]
            log.debug("row_failed", row_index=row.row_index, errors=[err.model_dump() for err in errors])
            return RowFailure(row_index=row.row_index, errors=tuple(errors))

        except Exception as e:
            # Repository and unexpected failures are charged to this row only
            reason = str(e) or type(e).__name__
            log.warning(
                "row_processing_failed",
                row_index=row.row_index,
                error=reason,
                error_type=type(e).__name__,
            )
            return RowFailure(row_index=row.row_index, errors=(FieldError(field=None, reason=reason),))
