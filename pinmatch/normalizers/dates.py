"""
Year extraction from free-form date strings.
"""

import math
import re
from typing import Optional

YEAR_MIN = 1970
YEAR_MAX = 2100

# Separators collapsed to "." before matching
_SEPARATORS_RE = re.compile(r"[,/\-]")

# Prioritized patterns; each yields a year candidate
_DAY_MONTH_YEAR = re.compile(r"(?<!\d)\d{1,2}\.\d{1,2}\.(\d{4})(?!\d)")
_YEAR_MONTH_DAY = re.compile(r"(?<!\d)(\d{4})\.\d{1,2}\.\d{1,2}(?!\d)")
_BARE_YEAR = re.compile(r"\b(\d{4})\b")
_SHORT_YEAR = re.compile(r"(?<!\d)\d{1,2}\.\d{1,2}\.(\d{2})(?!\d)")
_ANY_YEAR = re.compile(r"(?<!\d)(19[7-9]\d|20\d\d|2100)(?!\d)")


def in_range(year: int) -> bool:
    return YEAR_MIN <= year <= YEAR_MAX


def expand_short_year(value: int) -> int:
    """Two-digit year heuristic: 00-49 is 20xx, 50-99 is 19xx."""
    return 2000 + value if value <= 49 else 1900 + value


def extract_year(value) -> Optional[int]:
    """
    Extract a plausible release year from a date-like value.

    Tries, in order: DD.MM.YYYY, YYYY.MM.DD, a bare four digit year, the
    DD.MM.YY short form, then any in-range four digit run. Commas, slashes
    and dashes are treated as dots.

    Args:
        value: Date string, integer year, or None

    Returns:
        Year within [1970, 2100], or None if nothing plausible was found
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, (int, float)):
        year = int(value)
        return year if in_range(year) else None
    if not isinstance(value, str):
        return None

    text = _SEPARATORS_RE.sub(".", value.strip())
    if not text:
        return None

    for pattern in (_DAY_MONTH_YEAR, _YEAR_MONTH_DAY, _BARE_YEAR):
        for match in pattern.finditer(text):
            year = int(match.group(1))
            if in_range(year):
                return year

    for match in _SHORT_YEAR.finditer(text):
        year = expand_short_year(int(match.group(1)))
        if in_range(year):
            return year

    match = _ANY_YEAR.search(text)
    if match:
        return int(match.group(1))
    return None
