"""Table version normalization and ordering."""

import re

_LEADING_V_RE = re.compile(r"^[vV]\s*(?=[0-9])")


def normalize_version(version: str | None) -> str:
    """
    Normalize a version string for comparison.

    Commas become dots, surrounding whitespace and a leading ``v`` are
    dropped, and anything after a dash is ignored ("v1,2b-beta" -> "1.2b").
    """
    if not version:
        return ""
    text = version.replace(",", ".").strip()
    text = text.split("-", 1)[0].strip()
    return _LEADING_V_RE.sub("", text).strip(".")


def _components(version: str | None) -> list[str]:
    normalized = normalize_version(version)
    return [part.strip() or "0" for part in normalized.split(".")] if normalized else []


def compare_versions(a: str | None, b: str | None) -> int:
    """
    Compare two version strings component by component.

    Numeric components compare as integers, missing trailing components
    count as 0, and any other component pair compares lexicographically
    ("1.2b" > "1.2a").

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b
    """
    parts_a = _components(a)
    parts_b = _components(b)

    for i in range(max(len(parts_a), len(parts_b))):
        left = parts_a[i] if i < len(parts_a) else "0"
        right = parts_b[i] if i < len(parts_b) else "0"
        if left.isdecimal() and right.isdecimal():
            left_key, right_key = int(left), int(right)
        else:
            left_key, right_key = left.lower(), right.lower()
        if left_key < right_key:
            return -1
        if left_key > right_key:
            return 1
    return 0


def is_version_greater(a: str | None, b: str | None) -> bool:
    return compare_versions(a, b) > 0
