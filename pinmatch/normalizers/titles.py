"""
Table title cleaning, typo correction and ROM based disambiguation.
"""

import re
from typing import Optional

from pinmatch.utils.text import unique

# Edition and mod markers removed wherever they appear as whole words
EDITION_MARKERS = [
    "Chrome Edition",
    "Sinister Six Edition",
    "1920 Mod",
    "Power Up Edition",
    "Never Say Die",
    "Pinball Wizard",
    "Quest for Money",
    "Premium",
    "Classic",
    "HH Mod",
]

# Model tiers, only removed as a trailing word in their usual capitalization
TIER_SUFFIXES = ["Pro", "LE"]

# Rebuild/variant tags that say nothing about which machine a file is
VARIANT_TAGS = ["remake", "remastered", "mod", "reskin", "recreation", "original", "homebrew", "test"]

_EDITION_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(m) for m in EDITION_MARKERS) + r")\b",
    re.IGNORECASE,
)
_AUTHOR_PREFIX_RE = re.compile(r"^\s*JP'?s\s+", re.IGNORECASE)
_QUALIFIER_TAIL_RE = re.compile(r"\s*(?:[(\[].*|:.*|\s-\s.*)$")
_LEADING_ARTICLE_RE = re.compile(r"^(?:the|a|an)\s+", re.IGNORECASE)
_TRAILING_VERSION_RE = re.compile(r"\s+(?:v\d+(?:\.\d+){0,3}|\d+(?:\.\d+){1,3})\s*$", re.IGNORECASE)
_VARIANT_TAG_RE = re.compile(r"\b(?:" + "|".join(VARIANT_TAGS) + r")\b", re.IGNORECASE)
_BY_AUTHOR_RE = re.compile(r"\s+by\s+.*$", re.IGNORECASE)
_TIER_SUFFIX_RE = re.compile(r"\s+(?:" + "|".join(TIER_SUFFIXES) + r")$")


# Common mistaken or shortened titles mapped to the name the corpus uses
TYPO_FIXES = {
    "bigbowski": "the big lebowski pinball",
    "bigbowsky": "the big lebowski pinball",
    "big lebowski": "the big lebowski pinball",
    "beavis and butt-head": "beavis and butt-head pinballed",
    "beavis and butt": "beavis and butt-head",
    "lord of rings": "lord of the rings",
    "queen limited": "queen limited edition",
    "queen limited edition": "queen - the show must go on",
    "last starfighter": "the last starfighter",
    "simpsons": "the simpsons",
    "friday 13th": "friday the 13th",
    "spider": "spider-man",
    "ghostbusters slimer": "jp's ghostbusters slimer",
    "id4": "independence day",
    "metallica": "metallica pro",
    "star wars trilogy": "star wars trilogy special edition",
    "goonies": "the goonies never say die pinball",
    "tommy": "tommy pinball wizard",
    "doors": "the doors",
    "it": "it pinball madness",
    "batman dark knight": "batman the dark knight",
    "ace ventura": "ace ventura pet detective",
    "cheech & chong": "cheech and chong road trippin",
    "cheech and chong": "cheech and chong road trippin",
    "scarface": "scarface balls and power",
    "walking dead": "the walking dead",
    "terminator 1": "the terminator",
    "terminator 2": "terminator 2 judgment day",
    "terminator 3": "terminator 3 rise of the machines",
    "halloween": "halloween 1978-1981",
    "!wow!": "jp's wow monopoly",
    "wow": "jp's wow monopoly",
}

# Titles whose meaning depends on the ROM shipped with the table
ROM_TITLE_OVERRIDES = {
    ("terminator", "t2_l8"): "terminator 2",
    ("terminator", "term3"): "terminator 3",
    ("x", "xfiles"): "x-files",
    ("x", "xmn_151h"): "x-men",
    ("batman the dark knight", "bdk_294"): "batman the dark knight",
}


def clean_title(title: Optional[str]) -> str:
    """
    Reduce a table title or file name to the core machine name.

    Removes edition markers and trailing model tiers, trailing qualifiers (parentheticals, brackets,
    text after a colon or a spaced dash), leading articles, version numbers,
    rebuild tags and a trailing "by <author>". The result is lowercase with
    single spaces.

    Args:
        title: Raw title or file stem

    Returns:
        Cleaned title, or empty string if nothing is left
    """
    if not title:
        return ""

    text = _AUTHOR_PREFIX_RE.sub("", title)
    text = _QUALIFIER_TAIL_RE.sub("", text)
    text = _EDITION_RE.sub(" ", text)
    text = _TRAILING_VERSION_RE.sub("", text)
    text = text.replace("_", " ").replace(".", " ")
    text = _TRAILING_VERSION_RE.sub("", text)
    text = _VARIANT_TAG_RE.sub(" ", text)
    text = _BY_AUTHOR_RE.sub("", text)
    text = re.sub(r"\s+", " ", text).strip()
    text = _TIER_SUFFIX_RE.sub("", text)
    text = _LEADING_ARTICLE_RE.sub("", text)
    return text.lower().strip()


def correct_typo(title: str) -> str:
    """Map a cleaned title through the typo table (unchanged if unknown)."""
    return TYPO_FIXES.get(title, title)


def title_variants(title: Optional[str]) -> list[str]:
    """Cleaned title plus its typo-corrected form when they differ."""
    cleaned = clean_title(title)
    return unique([cleaned, correct_typo(cleaned)])


def resolve_rom_alias(title: Optional[str], rom: Optional[str]) -> Optional[str]:
    """
    Disambiguate a title using the ROM that ships with the table.

    >>> resolve_rom_alias("Terminator", "t2_l8")
    'terminator 2'
    """
    if not title or not rom:
        return None
    return ROM_TITLE_OVERRIDES.get((clean_title(title), rom.strip().lower()))
