"""Taxonomy matching services using fuzzy string matching.

This module provides strategies for matching free-text make/model/variant
values to master taxonomy entries.

Key Components:
    - MatcherStrategy: Abstract base class for matching algorithms
    - BlendedFuzzyMatcher: Default implementation (Levenshtein + token overlap)
    - TaxonomyResolver: Parent-scoped Make → Model → Variant cascade
    - normalize_text: Shared text normalization
"""
from vehicle_ingestion.services.matching.normalizer import normalize_text, tokenize
from vehicle_ingestion.services.matching.similarity import (
    edit_distance,
    edit_similarity,
    token_overlap,
    blended_score,
)
from vehicle_ingestion.services.matching.matcher import (
    MatcherStrategy,
    BlendedFuzzyMatcher,
    TaxonomyCandidates,
    create_matcher,
)
from vehicle_ingestion.services.matching.resolver import TaxonomyResolution, TaxonomyResolver

__all__ = [
    "normalize_text",
    "tokenize",
    "edit_distance",
    "edit_similarity",
    "token_overlap",
    "blended_score",
    "MatcherStrategy",
    "BlendedFuzzyMatcher",
    "TaxonomyCandidates",
    "create_matcher",
    "TaxonomyResolution",
    "TaxonomyResolver",
]
