"""
Data models shared across the matching and clustering stages.

LocalRecord is the persisted catalog entry for one table file; the other
types are transient values produced while matching and clustering.
"""

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any

from pinmatch.utils.text import normalize_loose


class Provenance(str, Enum):
    """Stage that last wrote a record's authoritative fields."""

    COMMUNITY_MATCH = "community_match"
    TOOL_SCAN = "tool_scan"
    FILE_SCAN = "file_scan"
    UNKNOWN = "unknown"

    @property
    def rank(self) -> int:
        return _PROVENANCE_RANK[self]

    def outranks(self, other: "Provenance") -> bool:
        return self.rank > other.rank

    @classmethod
    def parse(cls, value: Any) -> "Provenance":
        """Read a stored tag, accepting older owner labels."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        try:
            return cls(value)
        except ValueError:
            return _LEGACY_OWNERS.get(value.strip().lower(), cls.UNKNOWN)


_PROVENANCE_RANK = {
    Provenance.COMMUNITY_MATCH: 3,
    Provenance.TOOL_SCAN: 2,
    Provenance.FILE_SCAN: 1,
    Provenance.UNKNOWN: 0,
}

_LEGACY_OWNERS = {
    "virtual pinball spreadsheet database": Provenance.COMMUNITY_MATCH,
    "vpin filescan": Provenance.TOOL_SCAN,
    "vpxtool index": Provenance.TOOL_SCAN,
    "system file scan": Provenance.FILE_SCAN,
}

# Fields owned by the user, never overwritten by a rescan
USER_FIELDS = ("play_count", "play_time_last", "play_time_total", "is_broken")

# Companion asset flags recomputed on every merge
COMPANION_FIELDS = (
    "has_ini",
    "has_b2s",
    "has_pup",
    "has_alt_color",
    "has_alt_sound",
    "has_alt_music",
    "has_ultra_dmd",
)


@dataclass
class LocalRecord:
    """Catalog entry for one table file found on disk."""
    # Identity
    path: str
    folder: str = ""

    # Best display fields
    title: str = ""
    manufacturer: str = ""
    year: str = ""
    version: str = ""
    rom_name: str = ""

    # Hints parsed from the file name by the scanner
    filename_title: str = ""
    filename_manufacturer: str = ""
    filename_year: str = ""

    # File-embedded metadata
    table_name: str = ""
    table_author: str = ""
    table_description: str = ""
    table_save_date: str = ""
    table_release_date: str = ""
    table_version: str = ""
    table_revision: str = ""
    table_blurb: str = ""
    table_rules: str = ""
    table_author_email: str = ""
    table_author_website: str = ""
    table_type: str = ""
    table_manufacturer: str = ""
    table_year: str = ""

    # Primary source block
    vps_id: str = ""
    vps_name: str = ""
    vps_type: str = ""
    vps_themes: str = ""
    vps_designers: str = ""
    vps_players: str = ""
    vps_ipdb_url: str = ""
    vps_version: str = ""
    vps_authors: str = ""
    vps_features: str = ""
    vps_comment: str = ""
    vps_manufacturer: str = ""
    vps_year: str = ""
    vps_format: str = ""
    vps_table_img_url: str = ""
    vps_table_url: str = ""
    vps_b2s_img_url: str = ""
    vps_b2s_url: str = ""

    # Cross-referenced from the master catalog
    canonical_id: str = ""
    ipdb_id: str = ""
    lbdb_id: str = ""

    match_confidence: float = 0.0
    provenance: Provenance = Provenance.UNKNOWN

    # Operational fields
    play_count: int = 0
    play_time_last: float = 0.0
    play_time_total: float = 0.0
    is_broken: bool = False
    file_last_modified: float = 0.0
    hash_from_vpx: str = ""
    hash_from_vbs: str = ""

    # Companion assets
    has_ini: bool = False
    has_b2s: bool = False
    has_pup: bool = False
    has_alt_color: bool = False
    has_alt_sound: bool = False
    has_alt_music: bool = False
    has_ultra_dmd: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["provenance"] = self.provenance.value
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "LocalRecord | None":
        """
        Build a record from its persisted form.

        Unknown keys are ignored. Returns None when the input is not a
        mapping or has no path.
        """
        if not isinstance(data, dict):
            return None
        path = data.get("path")
        if not isinstance(path, str) or not path:
            return None

        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known or value is None:
                continue
            values[key] = value
        values["provenance"] = Provenance.parse(data.get("provenance"))
        try:
            return cls(**values)
        except TypeError:
            return None

    def source_view(self) -> dict[str, Any]:
        """Flat document used when scoring this record against a corpus."""
        return {
            "title": self.title or self.table_name or self.filename_title,
            "manufacturer": self.filename_manufacturer or self.manufacturer or self.table_manufacturer,
            "year": self.filename_year or self.year or self.table_year,
            "author": self.table_author,
            "rom": self.rom_name,
        }


@dataclass(frozen=True)
class MatchScore:
    """Five sub-scores in [0, 1] and their weighted total."""
    name: float = 0.0
    year: float = 0.0
    manufacturer: float = 0.0
    players: float = 0.0
    author: float = 0.0
    total: float = 0.0

    @classmethod
    def combine(
        cls,
        name: float,
        year: float,
        manufacturer: float,
        players: float,
        author: float,
        weights: tuple[float, float, float, float, float],
    ) -> "MatchScore":
        parts = (name, year, manufacturer, players, author)
        total = sum(p * w for p, w in zip(parts, weights))
        return cls(name, year, manufacturer, players, author, min(1.0, max(0.0, total)))


class CandidateNameSet:
    """Deduplicated aliases tried during one match attempt."""

    def __init__(self, names=None):
        self._names: list[str] = []
        self._keys: set[str] = set()
        for name in names or ():
            self.add(name)

    def add(self, name: str | None) -> bool:
        """Add an alias; empty or already-present (after normalization) names are ignored."""
        if not name or not isinstance(name, str):
            return False
        key = normalize_loose(name)
        if not key or key in self._keys:
            return False
        self._keys.add(key)
        self._names.append(name.strip())
        return True

    def update(self, names) -> None:
        for name in names:
            self.add(name)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_loose(name) in self._keys

    def __iter__(self):
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"CandidateNameSet({self._names!r})"


@dataclass(frozen=True)
class CanonicalEntity:
    """
    One physical table merged across sources.

    ``db_sources`` maps a source tag to the member ids from that source and
    ``raw_metadata`` keeps the original payloads for audit.
    """
    canonical_id: str
    canonical_name: str
    db_sources: dict[str, tuple[str, ...]] = field(default_factory=dict)
    aliases: tuple[str, ...] = ()
    manufacturers: tuple[str, ...] = ()
    years: tuple[int, ...] = ()
    themes: tuple[str, ...] = ()
    images: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    roms: tuple[str, ...] = ()
    authors: tuple[str, ...] = ()
    player_counts: tuple[int, ...] = ()
    table_types: tuple[str, ...] = ()
    versions: tuple[str, ...] = ()
    raw_metadata: dict[str, tuple[Any, ...]] = field(default_factory=dict)

    def member_keys(self) -> set[str]:
        """Disjoint-set keys (``source:id``) of every member."""
        return {f"{source}:{source_id}" for source, ids in self.db_sources.items() for source_id in ids}

    def to_dict(self) -> dict[str, Any]:
        return {
            "canonical_id": self.canonical_id,
            "canonical_name": self.canonical_name,
            "db_sources": {source: list(ids) for source, ids in self.db_sources.items()},
            "aliases": list(self.aliases),
            "manufacturers": list(self.manufacturers),
            "years": list(self.years),
            "themes": list(self.themes),
            "images": list(self.images),
            "links": list(self.links),
            "roms": list(self.roms),
            "authors": list(self.authors),
            "player_counts": list(self.player_counts),
            "table_types": list(self.table_types),
            "versions": list(self.versions),
            "raw_metadata": {source: list(payloads) for source, payloads in self.raw_metadata.items()},
        }


@dataclass
class MatchOutcome:
    """Result of matching one local record against the primary corpus."""
    path: str
    matched: bool
    confidence: float = 0.0
    vps_id: str = ""
    direct: bool = False
    best_score: float = 0.0
    near_match: str | None = None


@dataclass
class MatchSummary:
    """Counters for one matching run; processed includes failed records."""
    processed: int = 0
    matched: int = 0
    direct: int = 0
    unmatched: int = 0
    failed: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None
