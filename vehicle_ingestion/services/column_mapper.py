"""Column mapping engine: spreadsheet headers → canonical vehicle fields.

Suggestions are only ever made for headers scoring at or above the
auto-accept threshold; anything weaker is left unmapped for the seller to
resolve by hand.
"""
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

import structlog

from vehicle_ingestion.config import matching_settings
from vehicle_ingestion.errors.exceptions import MappingValidationError
from vehicle_ingestion.models.mapping import ColumnMapping, MappingValidation
from vehicle_ingestion.models.vehicle_fields import FIELD_ALIASES, VehicleField
from vehicle_ingestion.services.matching.normalizer import normalize_text
from vehicle_ingestion.services.matching.similarity import blended_score

logger = structlog.get_logger(__name__)

_SEPARATORS = re.compile(r"[_\-]+")
_FIELD_ORDER = {f: i for i, f in enumerate(VehicleField)}


def normalize_header(header: str) -> str:
    """Normalize a header for comparison ("Body_Type " → "body type")."""
    return normalize_text(_SEPARATORS.sub(" ", header or ""))


@dataclass(frozen=True)
class HeaderScore:
    """Best similarity between one header and one field's label/aliases."""
    field: VehicleField
    header: str
    score: float


class ColumnMappingEngine:
    """Suggests, overrides and validates column mappings.

    Attributes:
        auto_accept_threshold: Minimum header similarity for a suggestion
        edit_distance_weight: Weight of edit similarity in the blended score
    """

    def __init__(
        self,
        auto_accept_threshold: Optional[float] = None,
        edit_distance_weight: Optional[float] = None,
        aliases: Optional[Mapping[VehicleField, Iterable[str]]] = None,
    ):
        self.auto_accept_threshold = (
            auto_accept_threshold
            if auto_accept_threshold is not None
            else matching_settings.auto_accept_threshold
        )
        self.edit_distance_weight = (
            edit_distance_weight
            if edit_distance_weight is not None
            else matching_settings.edit_distance_weight
        )
        source = aliases if aliases is not None else FIELD_ALIASES
        self._targets: Dict[VehicleField, Tuple[str, ...]] = {}
        for field in VehicleField:
            forms = [normalize_header(field.label)]
            for alias in source.get(field, ()):
                form = normalize_header(alias)
                if form and form not in forms:
                    forms.append(form)
            self._targets[field] = tuple(forms)

    def score_header(self, header: str, field: VehicleField) -> float:
        """Similarity of header to the field's label or closest alias."""
        normalized = normalize_header(header)
        if not normalized:
            return 0.0
        return max(
            blended_score(normalized, target, self.edit_distance_weight)
            for target in self._targets[field]
        )

    def score_headers(self, headers: Iterable[str]) -> List[HeaderScore]:
        """Every (field, header) pair at or above the auto-accept threshold."""
        scores: List[HeaderScore] = []
        for header in sorted(set(headers)):
            for field in VehicleField:
                score = self.score_header(header, field)
                if score >= self.auto_accept_threshold:
                    scores.append(HeaderScore(field=field, header=header, score=score))
        return scores

    def suggest_mapping(self, headers: Iterable[str]) -> ColumnMapping:
        """Suggest a header for every field that has a confident candidate.

        Pairs are assigned greedily from the highest score down (ties by
        field order, then header text), each field and each header used at
        most once. Input order does not matter: the same header set always
        yields the same mapping.
        """
        headers = list(headers)
        assigned: Dict[VehicleField, str] = {}
        used_headers = set()
        ranked = sorted(
            self.score_headers(headers),
            key=lambda s: (-s.score, _FIELD_ORDER[s.field], s.header),
        )
        for candidate in ranked:
            if candidate.field in assigned or candidate.header in used_headers:
                continue
            assigned[candidate.field] = candidate.header
            used_headers.add(candidate.header)

        mapping = ColumnMapping(headers=assigned)
        logger.info(
            "mapping_suggested",
            header_count=len(set(headers)),
            mapped_fields=[f.value for f in mapping.mapped_fields],
            unmapped_headers=sorted(set(headers) - used_headers),
        )
        return mapping

    def mapping_confidence(self, header: str, field: VehicleField) -> str:
        """Confidence label for the UI: "high", "medium" or "low"."""
        normalized = normalize_header(header)
        if normalized in self._targets[field]:
            return "high"
        if self.score_header(header, field) >= self.auto_accept_threshold:
            return "medium"
        return "low"

    @staticmethod
    def apply_overrides(
        mapping: ColumnMapping,
        overrides: Mapping[Union[VehicleField, str], Optional[str]],
    ) -> ColumnMapping:
        """Apply manual choices on top of a mapping; an override of None unmaps the field.

        A header claimed by an override is released from any other field it
        was suggested for, so one column never feeds two fields. Keys may be
        VehicleField members or their external names ("seatingCapacity").

        Raises:
            MappingValidationError: If an override names an unknown field
        """
        resolved: Dict[VehicleField, Optional[str]] = {}
        unknown = []
        for key, header in overrides.items():
            try:
                resolved[VehicleField(key)] = header
            except ValueError:
                unknown.append(str(key))
        if unknown:
            raise MappingValidationError(f"Unknown vehicle fields in overrides: {sorted(unknown)}")

        claimed = {h for h in resolved.values() if h}
        headers: Dict[VehicleField, Optional[str]] = {
            field: (None if header in claimed else header)
            for field, header in mapping.headers.items()
        }
        headers.update(resolved)
        return ColumnMapping(headers=headers)

    @staticmethod
    def validate(mapping: ColumnMapping, headers: Optional[Iterable[str]] = None) -> MappingValidation:
        """Check that every required field is mapped.

        When the file's headers are given, mapped headers absent from the
        file make the mapping invalid too.
        """
        missing = mapping.missing_required
        unknown: List[str] = []
        if headers is not None:
            available = set(headers)
            unknown = sorted({h for h in mapping.headers.values() if h is not None and h not in available})
        return MappingValidation(
            is_valid=not missing and not unknown,
            missing_required=missing,
            mapped_fields=mapping.mapped_fields,
            unknown_headers=unknown,
        )
