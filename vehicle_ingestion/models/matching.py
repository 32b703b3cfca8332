"""Pydantic models for taxonomy matching results."""
from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from vehicle_ingestion.models.taxonomy import MasterTaxonomyEntry, TaxonomyKind


class MatchStatus(str, Enum):
    """Outcome of matching free text against the taxonomy.

    EXACT: normalized text equals a canonical name or synonym (score 1.0)
    FUZZY: best similarity at or above the fuzzy-accept threshold
    UNMATCHED: nothing scored high enough
    """
    EXACT = "exact"
    FUZZY = "fuzzy"
    UNMATCHED = "unmatched"


class MatchScope(BaseModel):
    """Candidate filter for a lookup: one taxonomy kind, optionally one parent."""

    model_config = ConfigDict(frozen=True)

    kind: TaxonomyKind
    parent_id: Optional[str] = None


class MatchResult(BaseModel):
    """Result of matching one text value against a taxonomy scope.

    Attributes:
        text: Input text as received
        entry: Matched taxonomy entry (None when unmatched)
        score: Confidence in [0, 1]
        status: Match status
        suggestions: Best-ranked canonical names, for manual review
    """

    model_config = ConfigDict(frozen=True)

    text: str
    entry: Optional[MasterTaxonomyEntry] = None
    score: float = Field(..., ge=0, le=1)
    status: MatchStatus
    suggestions: Tuple[str, ...] = ()

    @model_validator(mode="after")
    def check_entry_matches_status(self) -> "MatchResult":
        if self.status is MatchStatus.UNMATCHED and self.entry is not None:
            raise ValueError("unmatched results cannot carry an entry")
        if self.status is not MatchStatus.UNMATCHED and self.entry is None:
            raise ValueError(f"{self.status.value} results require an entry")
        return self

    @property
    def is_resolved(self) -> bool:
        return self.status is not MatchStatus.UNMATCHED

    @property
    def canonical_name(self) -> Optional[str]:
        return self.entry.name if self.entry else None
