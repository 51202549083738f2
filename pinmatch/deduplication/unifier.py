"""
Cross-corpus unification of one primary record.

For a spreadsheet entry the unifier finds its IPDB machine (by the id in
``ipdbUrl`` when present, else by score), its best LaunchBox entry (by
score) and its media entry (by id), and aggregates what every source says
about the table.
"""

from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from pinmatch.config import PRIMARY_SOURCE, MatchingSettings, settings
from pinmatch.matching.scorer import MatchScorer
from pinmatch.models import CandidateNameSet
from pinmatch.sources.configs import FieldMapper, field_mapper
from pinmatch.sources.corpus import CorpusCache
from pinmatch.sources.payloads import (
    collect_urls,
    extract_images,
    parse_ipdb_id,
    primary_authors,
    primary_links,
    primary_versions,
    rom_names,
)
from pinmatch.utils.text import unique

AGGREGATE_FIELDS = (
    "aliases",
    "manufacturers",
    "years",
    "themes",
    "images",
    "links",
    "roms",
    "authors",
    "player_counts",
    "table_types",
    "versions",
)


@dataclass
class Aggregates:
    """What one or more source records say about a table."""
    aliases: list[str] = field(default_factory=list)
    manufacturers: list[str] = field(default_factory=list)
    years: list[int] = field(default_factory=list)
    themes: list[str] = field(default_factory=list)
    images: list[str] = field(default_factory=list)
    links: list[str] = field(default_factory=list)
    roms: list[str] = field(default_factory=list)
    authors: list[str] = field(default_factory=list)
    player_counts: list[int] = field(default_factory=list)
    table_types: list[str] = field(default_factory=list)
    versions: list[str] = field(default_factory=list)

    def extend(self, other: "Aggregates") -> None:
        """Append another aggregate, dropping duplicates."""
        for name in AGGREGATE_FIELDS:
            setattr(self, name, unique(getattr(self, name) + getattr(other, name)))


def _optional(values: list, value: Any) -> list:
    return values + [value] if value is not None else values


def extract_aggregates(source: str, payload: Any, mapper: FieldMapper | None = None) -> Aggregates:
    """
    Read the aggregate fields of one source record.

    Args:
        source: Source tag of the payload
        payload: Source record
        mapper: FieldMapper for the simple attributes

    Returns:
        Aggregates for this record alone
    """
    mapper = mapper or field_mapper
    if not isinstance(payload, dict):
        return Aggregates()

    aliases = [mapper.get_string(payload, source, "name")]
    manufacturers = [mapper.get_string(payload, source, "manufacturer")]
    authors = [mapper.get_author(payload, source)]
    themes = mapper.get_strings(payload, source, "themes")
    table_types = [mapper.get_string(payload, source, "type")]
    roms, links, versions = [], [], []

    if source == PRIMARY_SOURCE:
        aliases.append(payload.get("title") if isinstance(payload.get("title"), str) else None)
        authors.extend(primary_authors(payload))
        table_types.append(payload.get("tableType") if isinstance(payload.get("tableType"), str) else None)
        roms = rom_names(payload)
        links = primary_links(payload)
        versions = primary_versions(payload)
    elif source == "lbdb":
        alt_names = payload.get("altNames") or payload.get("AlternateNames") or []
        if isinstance(alt_names, list):
            for alt in alt_names:
                if isinstance(alt, str):
                    aliases.append(alt)
                elif isinstance(alt, dict) and isinstance(alt.get("AlternateName"), str):
                    aliases.append(alt["AlternateName"])
    elif source == "vpinmdb":
        roms = rom_names(payload)

    return Aggregates(
        aliases=unique(a.strip() for a in aliases if isinstance(a, str) and a.strip()),
        manufacturers=unique(manufacturers),
        years=_optional([], mapper.get_year(payload, source)),
        themes=unique(themes),
        images=extract_images(source, payload),
        links=links,
        roms=roms,
        authors=unique(authors),
        player_counts=_optional([], mapper.get_int(payload, source, "players")),
        table_types=unique(table_types),
        versions=versions,
    )


def _string_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str)]


def merge_media_hints(entry: dict, media: Any, media_id: str) -> dict:
    """
    Copy of a primary entry enriched with its media record.

    Image URLs, ROMs and links are appended; author, version and table type
    are only filled when the entry lacks them.
    """
    merged = dict(entry)
    if not isinstance(media, dict):
        return merged

    merged["images"] = unique(_string_list(merged.get("images")) + collect_urls(media))
    merged["roms"] = unique(_string_list(merged.get("roms")) + rom_names(media))

    media_links = media.get("links") or media.get("urls") or []
    if isinstance(media_links, list):
        merged["links"] = unique(_string_list(merged.get("links")) + [u for u in media_links if isinstance(u, str)])

    for key in ("author", "version", "tableType"):
        if not merged.get(key) and isinstance(media.get(key), str) and media[key].strip():
            merged[key] = media[key].strip()

    merged["merged_vpin_id"] = media_id
    return merged


@dataclass
class UnifiedRecord:
    """One primary record with the secondary records linked to it."""
    canonical_id: str
    canonical_name: str
    db_sources: dict[str, str] = field(default_factory=dict)
    raw_metadata: dict[str, Any] = field(default_factory=dict)
    aggregates: Aggregates = field(default_factory=Aggregates)
    match_scores: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = {
            "canonical_id": self.canonical_id,
            "canonical_name": self.canonical_name,
            "db_sources": dict(self.db_sources),
            "raw_metadata": dict(self.raw_metadata),
        }
        for name in AGGREGATE_FIELDS:
            data[name] = list(getattr(self.aggregates, name))
        return data


def canonical_id_for(index: int) -> str:
    return f"canon_{index:06d}"


class CrossCorpusUnifier:
    """
    Finds the secondary records belonging to a primary record.

    Args:
        corpora: Loaded corpora shared by the whole build
        matching: Acceptance thresholds and weights
    """

    def __init__(self, corpora: CorpusCache, matching: MatchingSettings | None = None):
        self.corpora = corpora
        self.matching = matching or settings.matching
        self.scorer = MatchScorer(weights=self.matching.weights)
        self.mapper = field_mapper

    def find_ipdb(self, entry: dict, names: CandidateNameSet) -> tuple[str | None, float]:
        """IPDB id from the entry's own link, else the best score above threshold."""
        ipdb = self.corpora["ipdb"]
        direct_id = parse_ipdb_id(entry.get("ipdbUrl"))
        if direct_id and ipdb.get(direct_id) is not None:
            return direct_id, 1.0
        if direct_id:
            logger.debug(f"Linked IPDB id {direct_id} not in corpus, scoring instead")

        best = self.scorer.best_of(entry, ipdb.entries, names, PRIMARY_SOURCE, "ipdb")
        if best and best.score.total >= self.matching.ipdb_threshold:
            return best.source_id, best.score.total
        return None, best.score.total if best else 0.0

    def find_lbdb(self, entry: dict, names: CandidateNameSet) -> tuple[str | None, float]:
        best = self.scorer.best_of(entry, self.corpora["lbdb"].entries, names, PRIMARY_SOURCE, "lbdb")
        if best and best.score.total >= self.matching.lbdb_threshold:
            return best.source_id, best.score.total
        return None, best.score.total if best else 0.0

    def unify(self, index: int, vps_id: str, entry: dict) -> UnifiedRecord:
        """
        Build the unified record for one primary entry.

        Args:
            index: Position of the entry in the build (drives the canonical id)
            vps_id: Primary id
            entry: Primary record, already enriched with media hints

        Returns:
            UnifiedRecord listing every linked source id
        """
        names = CandidateNameSet([
            self.mapper.get_string(entry, PRIMARY_SOURCE, "name"),
            entry.get("title") if isinstance(entry.get("title"), str) else None,
        ])

        record = UnifiedRecord(
            canonical_id=canonical_id_for(index),
            canonical_name=self.mapper.get_string(entry, PRIMARY_SOURCE, "name") or "",
            db_sources={PRIMARY_SOURCE: vps_id},
            raw_metadata={PRIMARY_SOURCE: entry},
        )
        record.aggregates.extend(extract_aggregates(PRIMARY_SOURCE, entry, self.mapper))

        ipdb_id, ipdb_score = self.find_ipdb(entry, names)
        lbdb_id, lbdb_score = self.find_lbdb(entry, names)

        for source, source_id, score in (("ipdb", ipdb_id, ipdb_score), ("lbdb", lbdb_id, lbdb_score)):
            if source_id is None:
                continue
            payload = self.corpora[source].get(source_id)
            record.db_sources[source] = source_id
            record.raw_metadata[source] = payload
            record.match_scores[source] = round(score, 4)
            record.aggregates.extend(extract_aggregates(source, payload, self.mapper))

        media = self.corpora["vpinmdb"].get(vps_id)
        if media is not None:
            record.db_sources["vpinmdb"] = vps_id
            record.raw_metadata["vpinmdb"] = media
            record.aggregates.extend(extract_aggregates("vpinmdb", media, self.mapper))

        return record
