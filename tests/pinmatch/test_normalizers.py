# SPDX-License-Identifier: MIT
"""Tests for year, version and title normalizers."""

import pytest

from pinmatch.normalizers import (
    clean_title,
    compare_versions,
    extract_year,
    is_version_greater,
    normalize_version,
    resolve_rom_alias,
    title_variants,
)


class TestExtractYear:
    """Test year extraction from date-like values."""

    @pytest.mark.parametrize("value,expected", [
        ("12.03.1997", 1997),
        ("12/03/1997", 1997),
        ("1997-03-12", 1997),
        ("June, 1997", 1997),
        ("Williams 1997", 1997),
        ("03/04/85", 1985),
        ("01.01.20", 2020),
        (1991, 1991),
    ])
    def test_extracts_year(self, value, expected):
        """Supported formats should yield the release year."""
        assert extract_year(value) == expected

    @pytest.mark.parametrize("value", [None, "", "no date here", "June, 1962", 1800, True])
    def test_no_plausible_year(self, value):
        """Missing or out-of-range years should give None."""
        assert extract_year(value) is None


class TestVersions:
    """Test version normalization and comparison."""

    def test_normalize_version(self):
        """Commas, leading v and dash suffixes are normalized away."""
        assert normalize_version(" v1,2-beta ") == "1.2"
        assert normalize_version("V 2.0.") == "2.0"
        assert normalize_version("1.4b-final") == "1.4b"

    @pytest.mark.parametrize("a,b,expected", [
        ("1.2", "1.10", -1),
        ("1.0", "1", 0),
        ("1.2-rc1", "1.2", 0),
        ("1,5", "1.4", 1),
        ("2.0.1", "2.0", 1),
        ("a", "b", -1),
        ("1.0.beta", "1.0.alpha", 1),
        ("1.2b", "1.2a", 1),
        ("1.4b-2", "1.4B", 0),
        ("1.9a", "1.9", 1),
    ])
    def test_compare_versions(self, a, b, expected):
        """Numeric components compare as numbers, others as text, missing parts as zero."""
        assert compare_versions(a, b) == expected

    def test_is_version_greater(self):
        """Greater means strictly newer."""
        assert is_version_greater("1.3", "1.2.9")
        assert not is_version_greater("1.2", "1.2.0")


class TestCleanTitle:
    """Test title cleaning."""

    @pytest.mark.parametrize("raw,expected", [
        ("Medieval Madness (Williams 1997)", "medieval madness"),
        ("The Addams Family", "addams family"),
        ("JP's Star Trek v1.2.3", "star trek"),
        ("Twilight Zone by Dozer", "twilight zone"),
        ("Metallica Premium", "metallica"),
        ("Terminator 2: Judgment Day", "terminator 2"),
        ("Lethal Weapon 3", "lethal weapon 3"),
        ("Attack_from_Mars_Remastered", "attack from mars"),
        ("Jurassic Park - Data East", "jurassic park"),
        ("Metallica Pro v1.2", "metallica"),
        ("Stranger Things LE", "stranger things"),
        ("Le Mans (Atari 1976)", "le mans"),
        ("Pro Pool", "pro pool"),
    ])
    def test_clean_title(self, raw, expected):
        """Qualifiers, editions, versions and articles are removed."""
        assert clean_title(raw) == expected

    def test_empty(self):
        """Empty input gives an empty title."""
        assert clean_title(None) == ""

    def test_variants_include_typo_fix(self):
        """The corrected title joins the cleaned one."""
        assert title_variants("Metallica Premium") == ["metallica", "metallica pro"]

    def test_variants_without_typo(self):
        """Titles missing from the typo table have one variant."""
        assert title_variants("Medieval Madness") == ["medieval madness"]


class TestRomAlias:
    """Test ROM-based disambiguation."""

    def test_terminator_roms(self):
        """The same title means different machines depending on the ROM."""
        assert resolve_rom_alias("Terminator", "t2_l8") == "terminator 2"
        assert resolve_rom_alias("Terminator", "TERM3") == "terminator 3"

    def test_x_roms(self):
        """Single-letter titles resolve through their ROM."""
        assert resolve_rom_alias("X", "xfiles") == "x-files"

    def test_unknown(self):
        """Unlisted combinations resolve to nothing."""
        assert resolve_rom_alias("Terminator", None) is None
        assert resolve_rom_alias("Medieval Madness", "mm_109c") is None
