"""Taxonomy matching service using fuzzy string matching.

This module implements the Strategy pattern for matching free-text
make/model/variant values against the master taxonomy.

Key Components:
    - MatcherStrategy: Abstract base class for matching algorithms
    - BlendedFuzzyMatcher: Default implementation blending Levenshtein
      similarity with token overlap
    - TaxonomyCandidates: Protocol for the candidate index being searched
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, Tuple

import structlog

from vehicle_ingestion.config import matching_settings
from vehicle_ingestion.models.matching import MatchResult, MatchScope, MatchStatus
from vehicle_ingestion.models.taxonomy import MasterTaxonomyEntry
from vehicle_ingestion.services.matching.normalizer import normalize_text
from vehicle_ingestion.services.matching.similarity import blended_score, edit_distance

logger = structlog.get_logger(__name__)


class IndexedCandidate(Protocol):
    """A taxonomy entry with its normalized name and synonyms."""
    entry: MasterTaxonomyEntry
    forms: Tuple[str, ...]


class TaxonomyCandidates(Protocol):
    """Protocol for the candidate index a matcher searches.

    Implemented by TaxonomyIndex; tests may pass any object with these
    methods.
    """

    def candidates(self, scope: MatchScope) -> Sequence[IndexedCandidate]:
        ...

    def exact(self, normalized: str, scope: MatchScope) -> Sequence[MasterTaxonomyEntry]:
        ...


@dataclass(frozen=True)
class _Ranked:
    entry: MasterTaxonomyEntry
    score: float
    distance: int

    @property
    def sort_key(self):
        return (-self.score, self.distance, self.entry.name)


class MatcherStrategy(ABC):
    """Abstract base class for taxonomy matching strategies.

    All implementations must honor the contract:
        - match() is a pure function of (text, index snapshot, scope)
        - Scores are normalized to the 0-1 range
        - Empty text or an empty candidate set returns UNMATCHED with score 0
    """

    @abstractmethod
    def match(self, text: str, index: TaxonomyCandidates, scope: MatchScope) -> MatchResult:
        """Match free text against the candidates of one taxonomy scope.

        Args:
            text: Raw cell value (e.g. "toyta")
            index: Taxonomy snapshot to search
            scope: Kind to search and, for models/variants, the resolved parent

        Returns:
            MatchResult with status, best entry and ranked suggestions
        """
        pass

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Get the name of this matching strategy."""
        pass


class BlendedFuzzyMatcher(MatcherStrategy):
    """Taxonomy matcher scoring edit similarity blended with token overlap.

    Each candidate is scored against its canonical name and every synonym,
    keeping the best. Equal top scores are broken by the smaller absolute
    edit distance, then by canonical name, so the same input always picks
    the same entry.

    Attributes:
        fuzzy_accept_threshold: Minimum score for a FUZZY match
        edit_distance_weight: Weight of edit similarity in the blend
        max_suggestions: Number of ranked names kept on each result
    """

    def __init__(
        self,
        fuzzy_accept_threshold: Optional[float] = None,
        edit_distance_weight: Optional[float] = None,
        max_suggestions: Optional[int] = None,
    ):
        self.fuzzy_accept_threshold = (
            fuzzy_accept_threshold
            if fuzzy_accept_threshold is not None
            else matching_settings.fuzzy_accept_threshold
        )
        self.edit_distance_weight = (
            edit_distance_weight
            if edit_distance_weight is not None
            else matching_settings.edit_distance_weight
        )
        self.max_suggestions = (
            max_suggestions if max_suggestions is not None else matching_settings.max_suggestions
        )
        self._log = logger.bind(matcher="BlendedFuzzyMatcher")

    def get_strategy_name(self) -> str:
        """Get the name of this matching strategy."""
        return "blended_levenshtein_token"

    def match(self, text: str, index: TaxonomyCandidates, scope: MatchScope) -> MatchResult:
        normalized = normalize_text(text)
        if not normalized:
            return MatchResult(text=text, score=0.0, status=MatchStatus.UNMATCHED)

        exact_hits = sorted(index.exact(normalized, scope), key=lambda e: e.name)
        if exact_hits:
            return MatchResult(
                text=text,
                entry=exact_hits[0],
                score=1.0,
                status=MatchStatus.EXACT,
                suggestions=tuple(e.name for e in exact_hits[: self.max_suggestions]),
            )

        candidates = index.candidates(scope)
        if not candidates:
            self._log.debug("no_candidates_in_scope", kind=scope.kind.value, parent_id=scope.parent_id)
            return MatchResult(text=text, score=0.0, status=MatchStatus.UNMATCHED)

        ranked = self._rank(normalized, candidates)
        best = ranked[0]
        suggestions = self._suggestions(ranked)

        if best.score >= self.fuzzy_accept_threshold:
            result = MatchResult(
                text=text,
                entry=best.entry,
                score=round(best.score, 6),
                status=MatchStatus.FUZZY,
                suggestions=suggestions,
            )
        else:
            result = MatchResult(
                text=text,
                score=round(best.score, 6),
                status=MatchStatus.UNMATCHED,
                suggestions=suggestions,
            )

        self._log.debug(
            "match_completed",
            text=text,
            kind=scope.kind.value,
            match_status=result.status.value,
            match_score=round(best.score, 4),
            candidates_count=len(candidates),
        )
        return result

    def _rank(self, normalized: str, candidates: Sequence[IndexedCandidate]) -> List[_Ranked]:
        ranked: List[_Ranked] = []
        for candidate in candidates:
            best: Optional[_Ranked] = None
            for form in candidate.forms:
                scored = _Ranked(
                    entry=candidate.entry,
                    score=blended_score(normalized, form, self.edit_distance_weight),
                    distance=edit_distance(normalized, form),
                )
                if best is None or scored.sort_key < best.sort_key:
                    best = scored
            if best is not None:
                ranked.append(best)
        ranked.sort(key=lambda r: r.sort_key)
        return ranked

    def _suggestions(self, ranked: Sequence[_Ranked]) -> Tuple[str, ...]:
        names: List[str] = []
        for item in ranked:
            if len(names) >= self.max_suggestions:
                break
            if item.entry.name not in names:
                names.append(item.entry.name)
        return tuple(names)


def create_matcher(strategy: str = "blended", **kwargs) -> MatcherStrategy:
    """Factory function to create a matcher instance.

    Args:
        strategy: Matching strategy name (currently only "blended")
        **kwargs: Additional arguments for the matcher

    Returns:
        MatcherStrategy instance

    Raises:
        ValueError: If strategy is not supported
    """
    if strategy == "blended":
        return BlendedFuzzyMatcher(**kwargs)
    raise ValueError(f"Unknown matching strategy: {strategy}")
