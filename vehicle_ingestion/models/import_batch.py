"""Import batch state, row outcomes and the summary returned to callers.

State Transitions:
    - pending → mapping (column mapping finalized)
    - mapping → validating (mapping valid, taxonomy loading)
    - validating → importing (rows being processed)
    - importing → completed (no failed rows)
    - importing → partial (at least one failed row, or cancelled)
    - pending | mapping | validating → aborted (bad file, invalid mapping)
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Literal, Optional, Sequence, Tuple, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from vehicle_ingestion.errors.exceptions import BatchStateError
from vehicle_ingestion.models.matching import MatchResult, MatchStatus
from vehicle_ingestion.models.vehicle import ValidatedVehicleRow


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class BatchState(str, Enum):
    """Lifecycle state of an import batch."""
    PENDING = "pending"
    MAPPING = "mapping"
    VALIDATING = "validating"
    IMPORTING = "importing"
    COMPLETED = "completed"
    PARTIAL = "partial"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchState.COMPLETED, BatchState.PARTIAL, BatchState.ABORTED)


_ALLOWED_TRANSITIONS: Dict[BatchState, Tuple[BatchState, ...]] = {
    BatchState.PENDING: (BatchState.MAPPING, BatchState.ABORTED),
    BatchState.MAPPING: (BatchState.VALIDATING, BatchState.ABORTED),
    BatchState.VALIDATING: (BatchState.IMPORTING, BatchState.ABORTED),
    BatchState.IMPORTING: (BatchState.COMPLETED, BatchState.PARTIAL),
}


class FieldError(BaseModel):
    """One reason a row failed; field is None for row-level errors (e.g. persistence)."""

    model_config = ConfigDict(frozen=True)

    field: Optional[str] = None
    reason: str


class RowSuccess(BaseModel):
    """Row validated and persisted (or would have been, in a dry run)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    row_index: int = Field(..., ge=1)
    vehicle: ValidatedVehicleRow
    matches: Tuple[MatchResult, ...] = ()


class RowFailure(BaseModel):
    """Row rejected, with every field-level reason in discovery order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    row_index: int = Field(..., ge=1)
    errors: Tuple[FieldError, ...] = Field(..., min_length=1)


RowOutcome = Union[RowSuccess, RowFailure]


class ProgressEvent(BaseModel):
    """Progress update pushed to the progress sink after each chunk.

    Attributes:
        current: Rows processed so far
        total: Rows in the file (fixed at batch start)
        message: Optional human-readable status line
    """

    model_config = ConfigDict(frozen=True)

    current: int = Field(..., ge=0)
    total: int = Field(..., ge=0)
    message: Optional[str] = None

    @property
    def percentage(self) -> float:
        if self.total == 0:
            return 100.0
        return round(self.current / self.total * 100, 1)


class ImportErrorEntry(BaseModel):
    """One line of the error report: row (1-based, as in the file), field, reason."""

    row_index: int
    field: Optional[str] = None
    reason: str


class CorrectionEntry(BaseModel):
    """A taxonomy value silently corrected by fuzzy matching, for seller review."""

    row_index: int
    field: str
    original: str
    corrected: str
    confidence: float


class ImportSummary(BaseModel):
    """Summary returned when a batch reaches a terminal state."""

    batch_id: str
    batch_state: BatchState
    total_rows: int
    processed_count: int
    succeeded_count: int
    failed_count: int
    errors: List[ImportErrorEntry] = Field(default_factory=list)
    corrections: List[CorrectionEntry] = Field(default_factory=list)
    abort_reason: Optional[str] = None
    cancelled: bool = False
    dry_run: bool = False


@dataclass
class ImportBatch:
    """Mutable record of one import run, owned by a single orchestrator.

    Counters only move forward and outcomes keep file row order. Once the
    batch reaches a terminal state every mutator raises BatchStateError.
    """
    id: str = field(default_factory=lambda: uuid4().hex)
    total_rows: int = 0
    processed_count: int = 0
    succeeded_count: int = 0
    failed_count: int = 0
    outcomes: List[RowOutcome] = field(default_factory=list)
    state: BatchState = BatchState.PENDING
    state_history: List[BatchState] = field(default_factory=lambda: [BatchState.PENDING])
    abort_reason: Optional[str] = None
    cancelled: bool = False
    cancel_requested: bool = False
    dry_run: bool = False
    created_at: datetime = field(default_factory=_utc_now)
    finished_at: Optional[datetime] = None

    def transition(self, new_state: BatchState) -> None:
        """Move to new_state, enforcing the lifecycle graph."""
        if self.state.is_terminal:
            raise BatchStateError(f"Batch {self.id} is already {self.state.value}")
        if new_state not in _ALLOWED_TRANSITIONS.get(self.state, ()):
            raise BatchStateError(
                f"Illegal batch transition {self.state.value} → {new_state.value}"
            )
        self.state = new_state
        self.state_history.append(new_state)
        if new_state.is_terminal:
            self.finished_at = _utc_now()

    def start_importing(self, total_rows: int) -> None:
        self.total_rows = total_rows
        self.transition(BatchState.IMPORTING)

    def record_chunk(self, outcomes: Sequence[RowOutcome]) -> None:
        """Append the outcomes of one processed chunk and advance the counters."""
        if self.state is not BatchState.IMPORTING:
            raise BatchStateError(f"Cannot record rows while batch is {self.state.value}")
        if self.processed_count + len(outcomes) > self.total_rows:
            raise BatchStateError("Recorded more rows than the batch contains")
        for outcome in outcomes:
            self.outcomes.append(outcome)
            if isinstance(outcome, RowSuccess):
                self.succeeded_count += 1
            else:
                self.failed_count += 1
        self.processed_count += len(outcomes)

    def request_cancel(self) -> None:
        """Ask the running import to stop before its next chunk."""
        if self.state.is_terminal:
            raise BatchStateError(f"Batch {self.id} is already {self.state.value}")
        self.cancel_requested = True

    def finish(self, cancelled: bool = False) -> None:
        """Enter COMPLETED when nothing failed and nothing was skipped, else PARTIAL.

        A cancellation that arrives after the last row was processed skipped
        nothing, so it does not count.
        """
        self.cancelled = cancelled and self.processed_count < self.total_rows
        if self.failed_count == 0 and not self.cancelled:
            self.transition(BatchState.COMPLETED)
        else:
            self.transition(BatchState.PARTIAL)

    def abort(self, reason: str) -> None:
        self.abort_reason = reason
        self.transition(BatchState.ABORTED)

    def summary(self) -> ImportSummary:
        """Build the caller-facing summary from the recorded outcomes."""
        errors: List[ImportErrorEntry] = []
        corrections: List[CorrectionEntry] = []
        for outcome in self.outcomes:
            if isinstance(outcome, RowFailure):
                errors.extend(
                    ImportErrorEntry(row_index=outcome.row_index, field=e.field, reason=e.reason)
                    for e in outcome.errors
                )
                continue
            for match in outcome.matches:
                if match.status is MatchStatus.FUZZY and match.entry is not None:
                    corrections.append(CorrectionEntry(
                        row_index=outcome.row_index,
                        field=match.entry.kind.value,
                        original=match.text,
                        corrected=match.entry.name,
                        confidence=round(match.score, 4),
                    ))
        return ImportSummary(
            batch_id=self.id,
            batch_state=self.state,
            total_rows=self.total_rows,
            processed_count=self.processed_count,
            succeeded_count=self.succeeded_count,
            failed_count=self.failed_count,
            errors=errors,
            corrections=corrections,
            abort_reason=self.abort_reason,
            cancelled=self.cancelled,
            dry_run=self.dry_run,
        )
