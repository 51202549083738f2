"""Normalizers for dates, versions and table titles."""

from .dates import extract_year
from .titles import (
    ROM_TITLE_OVERRIDES,
    TYPO_FIXES,
    clean_title,
    correct_typo,
    resolve_rom_alias,
    title_variants,
)
from .versions import compare_versions, is_version_greater, normalize_version

__all__ = [
    "extract_year",
    "normalize_version",
    "compare_versions",
    "is_version_greater",
    "clean_title",
    "correct_typo",
    "title_variants",
    "resolve_rom_alias",
    "TYPO_FIXES",
    "ROM_TITLE_OVERRIDES",
]
