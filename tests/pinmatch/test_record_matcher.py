# SPDX-License-Identifier: MIT
"""Tests for matching local table files against the primary corpus."""

import pytest

from pinmatch.matching.record_matcher import (
    MismatchJournal,
    SingleRecordMatcher,
    build_candidate_names,
    cross_reference,
    derive_filename_hints,
    latest_table_version,
    needs_match,
    populate_file_metadata,
    populate_from_primary,
)
from pinmatch.models import LocalRecord, Provenance
from pinmatch.sources.corpus import CorpusCache


@pytest.fixture
def journal():
    return MismatchJournal()


@pytest.fixture
def matcher(corpora, matching, journal):
    return SingleRecordMatcher(corpora, matching=matching, journal=journal)


class TestFilenameHints:
    """Test hints parsed from file names."""

    def test_title_manufacturer_year(self, medieval_record):
        """The usual "Title (Manufacturer Year)" layout is split."""
        hints = derive_filename_hints(medieval_record)
        assert hints.stem == "Medieval Madness (Williams 1997)"
        assert hints.title == "Medieval Madness"
        assert hints.manufacturer == "Williams"
        assert hints.year == "1997"

    def test_scanner_hints_take_precedence(self):
        """Hints already present on the record are kept."""
        record = LocalRecord(path=r"C:\Tables\MM (Williams 1997).vpx", filename_title="Medieval Madness")
        hints = derive_filename_hints(record)
        assert hints.stem == "MM (Williams 1997)"
        assert hints.title == "Medieval Madness"
        assert hints.year == "1997"

    def test_plain_name(self):
        """Names without a parenthetical are the title."""
        hints = derive_filename_hints(LocalRecord(path="/t/Terminator.vpx"))
        assert hints.title == "Terminator"
        assert hints.manufacturer == ""
        assert hints.year == ""


class TestCandidateNames:
    """Test alias collection."""

    def test_rom_alias_comes_first(self):
        """ROM-disambiguated titles are tried before the raw title."""
        record = LocalRecord(path="/t/Terminator.vpx", rom_name="t2_l8")
        names = list(build_candidate_names(record, derive_filename_hints(record)))
        assert names == ["terminator 2", "terminator 2 judgment day", "terminator"]

    def test_typo_corrections_included(self):
        """Typo-corrected forms join the cleaned titles."""
        record = LocalRecord(path="/t/Simpsons.vpx")
        names = build_candidate_names(record, derive_filename_hints(record))
        assert "the simpsons" in names
        assert "simpsons" in names


class TestFileMetadata:
    """Test copying file-embedded metadata onto records."""

    def test_populates_table_fields(self):
        """Both metadata blocks and the ROM are copied."""
        record = LocalRecord(path="/t/mm.vpx")
        populate_file_metadata(record, {
            "table_info": {"table_name": "Medieval Madness", "author_name": "Tom", "table_save_rev": 12},
            "properties": {"CompanyName": "Williams", "CompanyYear": "1997"},
            "rom": " mm_109c ",
        })
        assert record.table_name == "Medieval Madness"
        assert record.table_author == "Tom"
        assert record.table_revision == "12"
        assert record.table_manufacturer == "Williams"
        assert record.rom_name == "mm_109c"
        assert record.title == "Medieval Madness"
        assert record.manufacturer == "Williams"
        assert record.year == "1997"

    def test_existing_best_fields_kept(self):
        """Best display fields already set are not replaced."""
        record = LocalRecord(path="/t/mm.vpx", title="MM")
        populate_file_metadata(record, {"metadata": {"table_name": "Medieval Madness"}})
        assert record.table_name == "Medieval Madness"
        assert record.title == "MM"

    def test_ignores_non_mapping(self):
        """Anything other than an object is ignored."""
        record = LocalRecord(path="/t/mm.vpx")
        populate_file_metadata(record, "garbage")
        assert record.table_name == ""


class TestPopulateFromPrimary:
    """Test copying the primary entry onto a record."""

    def test_primary_block(self, vpsdb_doc):
        """Every primary field is copied and provenance is set."""
        record = LocalRecord(path="/t/mm.vpx")
        populate_from_primary(record, "42run", vpsdb_doc[0], 0.834)

        assert record.vps_id == "42run"
        assert record.vps_name == "Medieval Madness"
        assert record.vps_type == "SS"
        assert record.vps_themes == "Fantasy, Medieval"
        assert record.vps_designers == "Brian Eddy"
        assert record.vps_players == "4"
        assert record.vps_year == "1997"
        assert record.vps_version == "1.2"
        assert record.vps_format == "VPX"
        assert record.vps_table_url == "https://dl.example/mm"
        assert record.vps_authors == "Tom Tower"
        assert record.vps_features == "SSF, 4K"
        assert record.vps_b2s_img_url == "https://img.example/mm_b2s.png"
        assert record.title == "Medieval Madness"
        assert record.version == "1.2"
        assert record.match_confidence == 0.83
        assert record.provenance is Provenance.COMMUNITY_MATCH

    @pytest.mark.parametrize("file_version,expected", [
        ("1.0", "1.0 (Behind: 1.2)"),
        ("1.5", "1.5 (Ahead: 1.2)"),
        ("1.2", "1.2"),
        ("1.2a", "1.2a (Ahead: 1.2)"),
    ])
    def test_version_annotation(self, vpsdb_doc, file_version, expected):
        """The file version is annotated relative to the newest primary version."""
        record = LocalRecord(path="/t/mm.vpx", table_version=file_version)
        populate_from_primary(record, "42run", vpsdb_doc[0], 1.0)
        assert record.version == expected

    def test_annotation_not_stacked(self, vpsdb_doc):
        """Re-populating an annotated version does not annotate twice."""
        record = LocalRecord(path="/t/mm.vpx", version="1.0 (Behind: 1.1)")
        populate_from_primary(record, "42run", vpsdb_doc[0], 1.0)
        assert record.version == "1.0 (Behind: 1.2)"

    def test_latest_version_prefers_vpx(self):
        """Non-VPX files are only considered when no VPX file exists."""
        files = [{"tableFormat": "FP", "version": "9.0"}, {"tableFormat": "VPX", "version": "1.10"}]
        assert latest_table_version(files) == "1.10"
        assert latest_table_version([{"tableFormat": "FP", "version": "2"}]) == "2"
        assert latest_table_version([]) == ""


class TestSingleRecordMatcher:
    """Test SingleRecordMatcher decisions."""

    def test_matches_by_file_name(self, matcher, medieval_record, journal):
        """Name, year and manufacturer from the file name are enough."""
        outcome = matcher.match(medieval_record)

        assert outcome.matched
        assert not outcome.direct
        assert outcome.vps_id == "42run"
        assert medieval_record.vps_id == "42run"
        assert medieval_record.match_confidence == pytest.approx(0.8)
        assert medieval_record.provenance is Provenance.COMMUNITY_MATCH
        assert len(journal) == 0

    def test_rom_alias_and_bonus(self, matcher):
        """A bare "Terminator" with the T2 ROM resolves to Terminator 2."""
        record = LocalRecord(path="/tables/Terminator.vpx", rom_name="t2_l8")
        outcome = matcher.match(record)
        assert outcome.matched
        assert record.vps_id == "t2jd"
        assert record.match_confidence == pytest.approx(0.65)

    def test_rom_bonus_confidence_capped(self, matcher, medieval_record):
        """Confidence never exceeds 1.0."""
        matcher.match(medieval_record, {"rom": "mm_109c"})
        assert medieval_record.match_confidence == 1.0

    def test_direct_id(self, matcher):
        """A stored primary id is re-resolved without scoring."""
        record = LocalRecord(path="/tables/whatever.vpx", vps_id="afm")
        outcome = matcher.match(record)
        assert outcome.direct
        assert record.vps_name == "Attack from Mars"
        assert record.match_confidence == 1.0

    def test_force_rebuild_rescores(self, corpora, matching, medieval_record):
        """Force rebuild ignores the stored id."""
        forced = matching.model_copy(update={"force_rebuild": True})
        medieval_record.vps_id = "afm"
        outcome = SingleRecordMatcher(corpora, matching=forced).match(medieval_record)
        assert not outcome.direct
        assert medieval_record.vps_id == "42run"

    def test_stale_id_rematches(self, matcher, medieval_record):
        """An id missing from the corpus falls back to scoring."""
        medieval_record.vps_id = "gone"
        outcome = matcher.match(medieval_record)
        assert outcome.matched
        assert medieval_record.vps_id == "42run"

    def test_near_match_journaled(self, matcher, journal):
        """Rejected matches with a plausible candidate name it."""
        record = LocalRecord(path="/tables/Medieval Madnes (Stern 2005).vpx")
        outcome = matcher.match(record)

        assert not outcome.matched
        assert 0.3 <= outcome.best_score < 0.6
        assert outcome.near_match == "Medieval Madness"
        assert record.vps_id == ""
        assert journal.entries[0].startswith(
            "No match for: title='Medieval Madnes', rom='', "
            "filename='Medieval Madnes (Stern 2005).vpx', year='2005', manufacturer='Stern', score=0."
        )
        assert journal.entries[0].endswith(", near_match='Medieval Madness'")

    def test_no_candidate_journaled(self, matcher, journal):
        """Hopeless records are journaled without a near match."""
        outcome = matcher.match(LocalRecord(path="/tables/Zzyzx.vpx"))
        assert not outcome.matched
        assert outcome.near_match is None
        assert "near_match" not in journal.entries[0]
        assert "score=0.00" in journal.entries[0]

    def test_rejected_rematch_drops_previous_match(self, corpora, matching, journal):
        """A forced rematch that fails leaves the record unmatched."""
        forced = matching.model_copy(update={"force_rebuild": True})
        record = LocalRecord(
            path="/tables/Zzyzx.vpx",
            table_name="Zzyzx",
            vps_id="42run",
            vps_name="Medieval Madness",
            vps_version="1.2",
            canonical_id="canon_000000",
            ipdb_id="4032",
            match_confidence=1.0,
            provenance=Provenance.COMMUNITY_MATCH,
        )
        outcome = SingleRecordMatcher(corpora, matching=forced, journal=journal).match(record)

        assert not outcome.matched
        assert record.vps_id == ""
        assert record.vps_name == ""
        assert record.vps_version == ""
        assert record.canonical_id == ""
        assert record.ipdb_id == ""
        assert record.match_confidence == 0.0
        assert record.provenance is Provenance.TOOL_SCAN
        assert needs_match(record)
        assert len(journal) == 1

    def test_rejected_stale_id_without_file_metadata(self, matcher):
        """Without file metadata the record falls back to a plain file scan."""
        record = LocalRecord(
            path="/tables/Zzyzx.vpx",
            vps_id="gone",
            provenance=Provenance.COMMUNITY_MATCH,
        )
        assert not matcher.match(record).matched
        assert record.vps_id == ""
        assert record.provenance is Provenance.FILE_SCAN

    def test_malformed_corpus_field_ignored(self, vpsdb_doc, matching, medieval_record):
        """A bad player count in one entry does not stop matching."""
        corpora = CorpusCache.from_documents(vpsdb=[{"id": "bad", "name": "Zzz", "players": "--4"}] + vpsdb_doc)
        summary = SingleRecordMatcher(corpora, matching=matching).match_all([medieval_record], max_workers=1)

        assert summary.failed == 0
        assert summary.matched == 1
        assert medieval_record.vps_id == "42run"

    def test_cross_reference_from_master(self, vpsdb_doc, matching, medieval_record):
        """Master catalog ids are attached after a match."""
        master = {"tables": [{
            "canonical_id": "canon_000000",
            "db_sources": {"vpsdb": ["42run"], "ipdb": ["4032"], "lbdb": ["100"]},
        }]}
        corpora = CorpusCache.from_documents(vpsdb=vpsdb_doc, master=master)
        SingleRecordMatcher(corpora, matching=matching).match(medieval_record)

        assert medieval_record.canonical_id == "canon_000000"
        assert medieval_record.ipdb_id == "4032"
        assert medieval_record.lbdb_id == "100"

    def test_cross_reference_without_master(self, corpora, medieval_record):
        """Without a master catalog nothing is attached."""
        medieval_record.vps_id = "42run"
        cross_reference(medieval_record, corpora)
        assert medieval_record.canonical_id == ""

    def test_empty_primary_corpus(self, matching, medieval_record, journal):
        """Nothing can match an empty corpus."""
        matcher = SingleRecordMatcher(CorpusCache.from_documents(), matching=matching, journal=journal)
        outcome = matcher.match(medieval_record)
        assert not outcome.matched
        assert len(journal) == 1


class TestMatchAll:
    """Test parallel matching runs."""

    def test_summary_counts(self, matcher, medieval_record):
        """Counters reflect every decision."""
        records = [
            medieval_record,
            LocalRecord(path="/tables/Zzyzx.vpx"),
            LocalRecord(path="/tables/afm.vpx", vps_id="afm"),
        ]
        summary = matcher.match_all(records, max_workers=2)

        assert summary.processed == 3
        assert summary.matched == 2
        assert summary.direct == 1
        assert summary.unmatched == 1
        assert summary.failed == 0
        assert summary.duration_seconds is not None

    def test_metadata_by_path(self, matcher):
        """File metadata is looked up by record path."""
        record = LocalRecord(path="/tables/x.vpx")
        metadata = {"/tables/x.vpx": {
            "table_info": {"table_name": "Attack from Mars"},
            "properties": {"CompanyName": "Bally", "CompanyYear": "1995"},
        }}
        matcher.match_all([record], metadata, max_workers=1)
        assert record.vps_id == "afm"

    def test_failures_counted(self, matcher, mocker, medieval_record):
        """A record that raises is counted and skipped."""
        mocker.patch.object(matcher, "match", side_effect=RuntimeError("boom"))
        summary = matcher.match_all([medieval_record], max_workers=1)
        assert summary.failed == 1
        assert summary.processed == 1
        assert summary.matched == 0


class TestMismatchJournal:
    """Test the mismatch journal."""

    def test_appends_to_file(self, tmp_path):
        """Lines are appended to the journal file, creating folders."""
        path = tmp_path / "logs" / "mismatches.log"
        journal = MismatchJournal(path)
        journal.record("A", "", "a.vpx", "", "", 0.1)
        journal.record("B", "rom", "b.vpx", "1990", "Bally", 0.45, near_match="Bee")

        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines == journal.entries
        assert lines[1] == (
            "No match for: title='B', rom='rom', filename='b.vpx', year='1990', "
            "manufacturer='Bally', score=0.45, near_match='Bee'"
        )


class TestNeedsMatch:
    """Test which records are matched on a run."""

    def test_rules(self):
        """Only community-matched records with an id are skipped."""
        matched = LocalRecord(path="a", vps_id="x", provenance=Provenance.COMMUNITY_MATCH)
        scanned = LocalRecord(path="b", vps_id="x", provenance=Provenance.TOOL_SCAN)
        assert not needs_match(matched)
        assert needs_match(matched, force_rebuild=True)
        assert needs_match(scanned)
        assert needs_match(LocalRecord(path="c"))
