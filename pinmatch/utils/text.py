"""Text normalization and string similarity for table matching."""

import re
import unicodedata
from collections.abc import Iterable

from rapidfuzz.distance import Levenshtein

# Punctuation removed by the loose normalizer
LOOSE_STRIP_CHARS = "_.',!?:&"
_LOOSE_STRIP_RE = re.compile("[" + re.escape(LOOSE_STRIP_CHARS) + "]")


def strip_accents(text: str) -> str:
    """Decompose characters and drop diacritical marks."""
    text = unicodedata.normalize("NFKD", text)
    return "".join(c for c in text if not unicodedata.combining(c))


def normalize_strict(text: str | None) -> str:
    """Normalize aggressively: lowercase ASCII letters and digits only.

    Used for fingerprints and id-like comparisons where spacing and
    punctuation carry no meaning ("Twilight Zone" == "twilight-zone").

    Args:
        text: Text to normalize

    Returns:
        Normalized text, or empty string if input is empty/None
    """
    if not text:
        return ""
    return re.sub(r"[^a-z0-9]", "", strip_accents(text).lower())


def normalize_loose(text: str | None) -> str:
    """Normalize gently for similarity scoring.

    Lowercases, removes a fixed punctuation set (``_ . ' , ! ? : &``) and
    collapses whitespace. Word boundaries, hyphens and parentheses survive.

    Args:
        text: Text to normalize

    Returns:
        Normalized text, or empty string if input is empty/None
    """
    if not text:
        return ""
    text = _LOOSE_STRIP_RE.sub("", strip_accents(text).lower())
    return re.sub(r"\s+", " ", text).strip()


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (insert, delete, substitute cost 1)."""
    return Levenshtein.distance(a, b)


def similarity(a: str, b: str) -> float:
    """Similarity in [0, 1] derived from edit distance.

    Two empty strings are identical (1.0); one empty string shares nothing
    with a non-empty one (0.0).
    """
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein(a, b) / max(len(a), len(b))


def fingerprint(text: str | None, length: int = 12) -> str:
    """Truncated strict normalization used as a cheap blocking key."""
    return normalize_strict(text)[:length]


def unique(values: Iterable) -> list:
    """Drop duplicates and empty values, keeping first-seen order."""
    seen = set()
    result = []
    for value in values:
        if value is None or value == "":
            continue
        if value in seen:
            continue
        seen.add(value)
        result.append(value)
    return result
