"""Similarity scores over normalized strings, all in [0, 1]."""
from rapidfuzz.distance import Levenshtein

from vehicle_ingestion.services.matching.normalizer import tokenize


def edit_distance(a: str, b: str) -> int:
    """Absolute Levenshtein distance (insert/delete/substitute all cost 1)."""
    return Levenshtein.distance(a, b)


def edit_similarity(a: str, b: str) -> float:
    """1 - Levenshtein distance / length of the longer string."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def token_overlap(a: str, b: str) -> float:
    """Fraction of distinct tokens shared by both strings (Jaccard index)."""
    tokens_a, tokens_b = tokenize(a), tokenize(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)


def blended_score(a: str, b: str, edit_weight: float = 0.5) -> float:
    """Blend edit similarity with token overlap.

    Token overlap only ever lifts the score: a single-token typo such as
    "toyot" vs "toyota" shares no whole token, so a plain weighted average
    would halve an otherwise strong edit similarity. Reordered multi-word
    names ("rover land" vs "land rover") are where the overlap term helps.
    """
    edit = edit_similarity(a, b)
    blended = edit_weight * edit + (1.0 - edit_weight) * token_overlap(a, b)
    return max(edit, blended)
