"""Cascading Make → Model → Variant resolution for one row."""
from dataclasses import dataclass, field
from typing import List, Mapping, Optional, Tuple

import structlog

from vehicle_ingestion.errors.exceptions import TaxonomyUnmatchedError
from vehicle_ingestion.models.matching import MatchResult, MatchScope
from vehicle_ingestion.models.taxonomy import TaxonomyKind
from vehicle_ingestion.models.vehicle_fields import VehicleField
from vehicle_ingestion.services.matching.matcher import MatcherStrategy, TaxonomyCandidates

logger = structlog.get_logger(__name__)

_CASCADE: Tuple[Tuple[VehicleField, TaxonomyKind], ...] = (
    (VehicleField.MAKE, TaxonomyKind.MAKE),
    (VehicleField.MODEL, TaxonomyKind.MODEL),
    (VehicleField.VARIANT, TaxonomyKind.VARIANT),
)


@dataclass
class TaxonomyResolution:
    """Match results of one row's taxonomy fields plus what failed to resolve."""
    make: Optional[MatchResult] = None
    model: Optional[MatchResult] = None
    variant: Optional[MatchResult] = None
    errors: List[TaxonomyUnmatchedError] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return not self.errors

    @property
    def matches(self) -> Tuple[MatchResult, ...]:
        return tuple(m for m in (self.make, self.model, self.variant) if m is not None)

    def result_for(self, field_name: VehicleField) -> Optional[MatchResult]:
        return {
            VehicleField.MAKE: self.make,
            VehicleField.MODEL: self.model,
            VehicleField.VARIANT: self.variant,
        }.get(field_name)


class TaxonomyResolver:
    """Resolves make, then model within that make, then variant within that model.

    Empty values are skipped (the row validator reports them as required).
    A child whose parent did not resolve is reported against the child field
    without being matched, since there is no scope to search.
    """

    def __init__(self, matcher: MatcherStrategy, index: TaxonomyCandidates):
        self.matcher = matcher
        self.index = index

    def resolve(self, mapped: Mapping[VehicleField, str]) -> TaxonomyResolution:
        resolution = TaxonomyResolution()
        parent_id: Optional[str] = None
        parent_missing = False

        for field_name, kind in _CASCADE:
            text = (mapped.get(field_name) or "").strip()
            if not text:
                parent_missing = True
                continue

            if parent_missing:
                resolution.errors.append(TaxonomyUnmatchedError(
                    field_name.value,
                    text,
                    reason=f"unresolved parent {kind.parent_kind.value}",
                ))
                continue

            result = self.matcher.match(text, self.index, MatchScope(kind=kind, parent_id=parent_id))
            setattr(resolution, kind.value, result)

            if not result.is_resolved:
                reason = f"no confident match for '{text}'"
                if result.suggestions:
                    reason += f" (closest: {', '.join(result.suggestions)})"
                resolution.errors.append(TaxonomyUnmatchedError(field_name.value, text, reason=reason))
                parent_missing = True
                continue

            parent_id = result.entry.id

        if resolution.errors:
            logger.debug(
                "taxonomy_unresolved",
                fields=[e.field for e in resolution.errors],
            )
        return resolution
