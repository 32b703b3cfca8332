"""Text normalization shared by header mapping and taxonomy matching."""
import re
import unicodedata
from typing import FrozenSet

_WHITESPACE = re.compile(r"\s+")
_TOKEN_SPLIT = re.compile(r"[^0-9a-z]+")


def normalize_text(text: str) -> str:
    """Trim, lowercase, collapse internal whitespace and strip diacritics.

    >>> normalize_text("  Citroën   C4 ")
    'citroen c4'
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFKD", str(text))
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped.lower()).strip()


def tokenize(normalized: str) -> FrozenSet[str]:
    """Split normalized text into its set of alphanumeric tokens.

    Punctuation separates tokens too, so "Mercedes-Benz" and "mercedes benz"
    share both of their tokens.
    """
    return frozenset(t for t in _TOKEN_SPLIT.split(normalized) if t)
