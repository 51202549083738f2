"""
Matching of local table files against the primary corpus.

For each local record the matcher either re-resolves a known primary id
directly or builds a set of candidate titles (cleaned, typo-corrected and
ROM-disambiguated) and scores every primary entry. Rejected matches are
written to a mismatch journal for human review.
"""

import re
import threading
from dataclasses import dataclass, fields
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from pinmatch.config import PRIMARY_SOURCE, MatchingSettings, settings
from pinmatch.matching.scorer import MatchScorer
from pinmatch.models import CandidateNameSet, LocalRecord, MatchOutcome, MatchSummary, Provenance
from pinmatch.normalizers.dates import extract_year
from pinmatch.normalizers.titles import resolve_rom_alias, title_variants
from pinmatch.normalizers.versions import compare_versions
from pinmatch.sources.configs import field_mapper, file_metadata_mapper
from pinmatch.sources.corpus import CorpusCache
from pinmatch.sources.payloads import rom_names
from pinmatch.utils.text import normalize_strict
from pinmatch.utils.workers import run_per_item

_PARENTHETICAL_RE = re.compile(r"\(([^)]*)\)")
_VERSION_NOTE_RE = re.compile(r"\s*\((?:Behind|Ahead):[^)]*\)\s*$")


# =============================================================================
# Mismatch journal
# =============================================================================

class MismatchJournal:
    """
    Thread-safe log of rejected matches.

    Lines are kept in memory and, when a path is given, appended to a file.
    """

    def __init__(self, path: Path | None = None):
        self.path = Path(path) if path else None
        self.entries: list[str] = []
        self._lock = threading.Lock()

    def record(
        self,
        title: str,
        rom: str,
        filename: str,
        year: str,
        manufacturer: str,
        score: float,
        near_match: Optional[str] = None,
    ) -> str:
        line = (
            f"No match for: title='{title}', rom='{rom}', filename='{filename}', "
            f"year='{year}', manufacturer='{manufacturer}', score={score:.2f}"
        )
        if near_match:
            line += f", near_match='{near_match}'"

        with self._lock:
            self.entries.append(line)
            if self.path:
                try:
                    self.path.parent.mkdir(parents=True, exist_ok=True)
                    with open(self.path, "a", encoding="utf-8") as f:
                        f.write(line + "\n")
                except OSError as e:
                    logger.error(f"Could not append to mismatch journal {self.path}: {e}")
        return line

    def __len__(self) -> int:
        return len(self.entries)


# =============================================================================
# Local record preparation
# =============================================================================

@dataclass
class FilenameHints:
    """Title, manufacturer and year guessed from a table file name."""
    stem: str = ""
    title: str = ""
    manufacturer: str = ""
    year: str = ""


def file_stem(path: str) -> str:
    """File name without directory or extension (either slash style)."""
    name = re.split(r"[\\/]", path)[-1]
    return name.rsplit(".", 1)[0] if "." in name else name


def derive_filename_hints(record: LocalRecord) -> FilenameHints:
    """
    Fill filename hints, parsing "Title (Manufacturer Year)" when the scanner gave none.

    >>> derive_filename_hints(LocalRecord(path="Medieval Madness (Williams 1997).vpx")).manufacturer
    'Williams'
    """
    stem = file_stem(record.path)
    hints = FilenameHints(
        stem=stem,
        title=record.filename_title,
        manufacturer=record.filename_manufacturer,
        year=record.filename_year,
    )

    match = _PARENTHETICAL_RE.search(stem)
    if not hints.title:
        hints.title = stem[:match.start()].strip() if match else stem.strip()
    if match:
        inside = match.group(1)
        if not hints.year:
            year = extract_year(inside)
            hints.year = str(year) if year else ""
        if not hints.manufacturer:
            hints.manufacturer = re.sub(r"\b\d{4}\b", "", inside).strip(" ,-")
    return hints


def _file_value(block: Any, field_name: str, block_name: str) -> str:
    value = file_metadata_mapper.get_string(block, block_name, field_name)
    if value is None:
        number = file_metadata_mapper.get_int(block, block_name, field_name)
        value = str(number) if number is not None else ""
    return value


def populate_file_metadata(record: LocalRecord, metadata: Any) -> None:
    """
    Copy file-embedded metadata onto a record.

    ``metadata`` is the raw document from the file introspection step, with
    a ``table_info`` (or ``metadata``) block, a ``properties`` block and an
    optional top-level ``rom``. Best display fields are only filled when empty.
    """
    if not isinstance(metadata, dict):
        return

    info = metadata.get("table_info")
    if not isinstance(info, dict):
        info = metadata.get("metadata")
    properties = metadata.get("properties")

    for block, block_name in ((info, "table_info"), (properties, "properties")):
        if not isinstance(block, dict):
            continue
        for field_name in file_metadata_mapper.tables[block_name]:
            value = _file_value(block, field_name, block_name)
            if value:
                setattr(record, field_name, value)

    rom = metadata.get("rom")
    if isinstance(rom, str) and rom.strip():
        record.rom_name = rom.strip()

    for field_name in ("filename_title", "filename_manufacturer", "filename_year"):
        value = metadata.get(field_name)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value).strip():
            if not getattr(record, field_name):
                setattr(record, field_name, str(value).strip())

    record.title = record.title or record.table_name
    record.manufacturer = record.manufacturer or record.table_manufacturer
    record.year = record.year or record.table_year
    record.version = record.version or record.table_version


def build_candidate_names(record: LocalRecord, hints: FilenameHints) -> CandidateNameSet:
    """
    Collect aliases for one match attempt.

    Sources: the file-embedded title, the file name (parsed title and raw
    stem), ROM-based disambiguations of those titles, and the current best
    title. Each is cleaned and also added in typo-corrected form.
    """
    names = CandidateNameSet()
    titles = [record.table_name, hints.title, hints.stem, record.title]

    for title in titles:
        alias = resolve_rom_alias(title, record.rom_name)
        if alias:
            names.update(title_variants(alias))

    for title in titles:
        names.update(title_variants(title))
    return names


# =============================================================================
# Primary block population
# =============================================================================

def _joined(values: Any) -> str:
    if isinstance(values, list):
        return ", ".join(v.strip() for v in values if isinstance(v, str) and v.strip())
    if isinstance(values, str):
        return values.strip()
    return ""


def _first_url(file_entry: dict) -> str:
    urls = file_entry.get("urls")
    if isinstance(urls, list) and urls and isinstance(urls[0], dict):
        url = urls[0].get("url")
        return url if isinstance(url, str) else ""
    return ""


def _text(entry: dict, key: str) -> str:
    value = entry.get(key)
    return value.strip() if isinstance(value, str) else ""


def latest_table_version(table_files: list) -> str:
    """Highest version among VPX table files (all files when none are VPX)."""
    files = [f for f in table_files if isinstance(f, dict)]
    vpx = [f for f in files if _text(f, "tableFormat").upper() == "VPX"]
    latest = ""
    for table_file in vpx or files:
        version = _text(table_file, "version")
        if version and (not latest or compare_versions(version, latest) > 0):
            latest = version
    return latest


def populate_from_primary(record: LocalRecord, vps_id: str, entry: dict, confidence: float) -> None:
    """Copy the primary entry's fields onto the record and mark it community-matched."""
    mapper = field_mapper

    record.vps_id = vps_id
    record.vps_name = mapper.get_string(entry, PRIMARY_SOURCE, "name") or ""
    record.vps_type = mapper.get_string(entry, PRIMARY_SOURCE, "type") or ""
    record.vps_themes = ", ".join(mapper.get_strings(entry, PRIMARY_SOURCE, "themes"))
    record.vps_designers = ", ".join(mapper.get_strings(entry, PRIMARY_SOURCE, "authors"))
    players = mapper.get_int(entry, PRIMARY_SOURCE, "players")
    record.vps_players = str(players) if players is not None else ""
    record.vps_ipdb_url = _text(entry, "ipdbUrl")
    record.vps_manufacturer = mapper.get_string(entry, PRIMARY_SOURCE, "manufacturer") or ""
    year = mapper.get_year(entry, PRIMARY_SOURCE)
    record.vps_year = str(year) if year else ""

    table_files = entry.get("tableFiles") if isinstance(entry.get("tableFiles"), list) else []
    record.vps_version = latest_table_version(table_files)
    if table_files and isinstance(table_files[0], dict):
        first = table_files[0]
        record.vps_format = _text(first, "tableFormat")
        record.vps_table_img_url = _text(first, "imgUrl")
        record.vps_table_url = _first_url(first)
        record.vps_authors = _joined(first.get("authors"))
        record.vps_features = _joined(first.get("features"))
        record.vps_comment = _text(first, "comment")

    b2s_files = entry.get("b2sFiles") if isinstance(entry.get("b2sFiles"), list) else []
    if b2s_files and isinstance(b2s_files[0], dict):
        record.vps_b2s_img_url = _text(b2s_files[0], "imgUrl")
        record.vps_b2s_url = _first_url(b2s_files[0])

    record.title = record.title or record.vps_name
    record.manufacturer = record.manufacturer or record.vps_manufacturer
    record.year = record.year or record.vps_year

    file_version = record.table_version or _VERSION_NOTE_RE.sub("", record.version)
    if file_version and record.vps_version:
        order = compare_versions(file_version, record.vps_version)
        if order < 0:
            record.version = f"{file_version} (Behind: {record.vps_version})"
        elif order > 0:
            record.version = f"{file_version} (Ahead: {record.vps_version})"
        else:
            record.version = file_version
    elif not record.version:
        record.version = record.vps_version

    record.match_confidence = round(min(1.0, confidence), 2)
    record.provenance = Provenance.COMMUNITY_MATCH


def cross_reference(record: LocalRecord, corpora: CorpusCache) -> None:
    """Attach master catalog ids for the record's primary id, when a catalog is loaded."""
    table = corpora.master_entry(record.vps_id)
    if not table:
        return
    sources = table.get("db_sources") or {}

    def first(source: str) -> str:
        ids = sources.get(source) or []
        if isinstance(ids, str):
            return ids
        return str(ids[0]) if ids else ""

    record.canonical_id = table.get("canonical_id") or ""
    record.ipdb_id = first("ipdb")
    record.lbdb_id = first("lbdb")


def clear_primary_match(record: LocalRecord) -> None:
    """
    Drop a previous primary match from a record whose rematch was rejected.

    The primary block, cross-reference ids and confidence are reset, and a
    community-match provenance falls back to what the scan alone supports.
    """
    for f in fields(record):
        if f.name.startswith("vps_"):
            setattr(record, f.name, "")
    record.canonical_id = ""
    record.ipdb_id = ""
    record.lbdb_id = ""
    record.match_confidence = 0.0
    if record.provenance is Provenance.COMMUNITY_MATCH:
        record.provenance = Provenance.TOOL_SCAN if record.table_name else Provenance.FILE_SCAN


def needs_match(record: LocalRecord, force_rebuild: bool = False) -> bool:
    """Whether a record should go through matching on this run."""
    return force_rebuild or not record.vps_id or record.provenance != Provenance.COMMUNITY_MATCH


# =============================================================================
# Matcher
# =============================================================================

class SingleRecordMatcher:
    """
    Matches local records against the primary corpus.

    Args:
        corpora: Loaded corpora (only the primary corpus and optional
            master catalog are read)
        matching: Thresholds and weights (defaults to global settings)
        journal: Where rejected matches are recorded
    """

    def __init__(
        self,
        corpora: CorpusCache,
        matching: MatchingSettings | None = None,
        journal: MismatchJournal | None = None,
    ):
        self.corpora = corpora
        self.matching = matching or settings.matching
        self.journal = journal if journal is not None else MismatchJournal()
        self.scorer = MatchScorer(weights=self.matching.weights, name_floor=self.matching.similarity_floor)
        self._lock = threading.Lock()
        self._summary = MatchSummary()

    def match(self, record: LocalRecord, metadata: Any = None) -> MatchOutcome:
        """
        Match one record, updating it in place.

        Args:
            record: Local record to enrich
            metadata: Raw file-embedded metadata document, if available

        Returns:
            MatchOutcome describing the decision
        """
        populate_file_metadata(record, metadata)
        primary = self.corpora.primary

        if record.vps_id and not self.matching.force_rebuild:
            entry = primary.get(record.vps_id)
            if entry is not None:
                populate_from_primary(record, record.vps_id, entry, 1.0)
                cross_reference(record, self.corpora)
                logger.debug(f"Direct id match {record.vps_id} for {record.path}")
                return MatchOutcome(record.path, True, 1.0, record.vps_id, direct=True, best_score=1.0)
            logger.warning(f"Stored id {record.vps_id} for {record.path} not in {PRIMARY_SOURCE}, rematching")

        hints = derive_filename_hints(record)
        names = build_candidate_names(record, hints)
        source = record.source_view()
        source["title"] = source["title"] or hints.title
        source["manufacturer"] = hints.manufacturer or source["manufacturer"]
        source["year"] = hints.year or source["year"]
        rom = normalize_strict(record.rom_name)

        best_id, best_entry, best_total = None, None, 0.0
        for vps_id, entry in primary.entries:
            score = self.scorer.score(source, entry, names, "local", PRIMARY_SOURCE)
            total = score.total
            if rom and rom in {normalize_strict(name) for name in rom_names(entry)}:
                total += self.matching.rom_bonus
            if best_entry is None or total > best_total:
                best_id, best_entry, best_total = vps_id, entry, total

        if best_entry is not None and best_total >= self.matching.confidence_threshold:
            populate_from_primary(record, best_id, best_entry, best_total)
            cross_reference(record, self.corpora)
            logger.debug(f"Matched {record.path} -> {best_id} ({best_total:.2f})")
            return MatchOutcome(record.path, True, record.match_confidence, best_id, best_score=best_total)

        near_match = None
        if best_entry is not None and best_total >= self.matching.near_match_floor:
            near_match = field_mapper.get_string(best_entry, PRIMARY_SOURCE, "name")

        self.journal.record(
            title=record.title or hints.title,
            rom=record.rom_name,
            filename=re.split(r"[\\/]", record.path)[-1],
            year=source["year"],
            manufacturer=source["manufacturer"],
            score=best_total,
            near_match=near_match,
        )
        if record.vps_id or record.provenance is Provenance.COMMUNITY_MATCH:
            logger.info(f"Rematch rejected for {record.path}, dropping previous match {record.vps_id or '-'}")
            clear_primary_match(record)
        return MatchOutcome(record.path, False, best_score=best_total, near_match=near_match)

    def _match_counted(self, item: tuple[LocalRecord, Any]) -> MatchOutcome:
        record, metadata = item
        outcome = self.match(record, metadata)
        with self._lock:
            self._summary.processed += 1
            if outcome.matched:
                self._summary.matched += 1
                if outcome.direct:
                    self._summary.direct += 1
            else:
                self._summary.unmatched += 1
        return outcome

    def match_all(
        self,
        records: list[LocalRecord],
        metadata: dict[str, Any] | None = None,
        max_workers: int | None = None,
    ) -> MatchSummary:
        """
        Match many records in parallel, one task per record.

        Args:
            records: Records to enrich in place
            metadata: Raw file metadata documents keyed by record path
            max_workers: Pool size (defaults to hardware threads)

        Returns:
            MatchSummary with counters for this run
        """
        metadata = metadata or {}
        self._summary = MatchSummary(started_at=datetime.now())

        items = [(record, metadata.get(record.path)) for record in records]
        run = run_per_item(items, self._match_counted, max_workers=max_workers, label="tables")

        summary = self._summary
        summary.failed = len(run.failed)
        summary.processed += summary.failed
        summary.completed_at = datetime.now()
        logger.info(
            f"Matching complete: {summary.matched} matched ({summary.direct} direct), "
            f"{summary.unmatched} unmatched, {summary.failed} failed"
        )
        return summary
