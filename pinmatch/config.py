"""
Configuration management for the pinmatch table identity pipeline.

Uses pydantic-settings for type-safe configuration with environment variable support.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class MatchingSettings(BaseSettings):
    """Scoring weights, thresholds and matching switches."""

    model_config = SettingsConfigDict(
        env_prefix="PINMATCH_MATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # MatchScorer weights (must sum to 1.0)
    name_weight: float = 0.40
    year_weight: float = 0.20
    manufacturer_weight: float = 0.20
    player_weight: float = 0.10
    author_weight: float = 0.10

    # Single record matching
    confidence_threshold: float = 0.6
    similarity_floor: float = 0.55
    near_match_floor: float = 0.3
    rom_bonus: float = 0.25
    force_rebuild: bool = False

    # Cross corpus unification
    ipdb_threshold: float = 0.60
    lbdb_threshold: float = 0.65
    prelink_threshold: float = 0.60
    fingerprint_length: int = 12
    prelink_fallback_limit: int = 30

    # Display name priority for merged clusters (first wins)
    source_priority: list[str] = Field(default_factory=lambda: ["vpsdb", "ipdb", "lbdb"])

    # Share of hardware threads used by the cluster build
    cluster_worker_fraction: float = 0.8

    @model_validator(mode="after")
    def check_weights(self):
        """Reject weight sets that are negative or do not sum to 1.0."""
        weights = self.weights
        if any(w < 0 for w in weights):
            raise ValueError("Match weights must be non-negative")
        if abs(sum(weights) - 1.0) > 1e-6:
            raise ValueError(f"Match weights must sum to 1.0, got {sum(weights):.4f}")
        return self

    @property
    def weights(self) -> tuple[float, float, float, float, float]:
        """Weights in sub-score order: name, year, manufacturer, players, author."""
        return (
            self.name_weight,
            self.year_weight,
            self.manufacturer_weight,
            self.player_weight,
            self.author_weight,
        )


class PathSettings(BaseSettings):
    """Input corpora and output locations."""

    model_config = SettingsConfigDict(
        env_prefix="PINMATCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_dir: Path = Field(default=Path("./data"))
    index_path: Path = Field(default=Path("./data/asapcab_index.json"))
    master_path: Path = Field(default=Path("./data/master_tables.json"))
    mismatch_log: Path = Field(default=Path("./data/logs/mismatches.log"))

    # Logging
    log_level: str = "INFO"
    log_file: Optional[Path] = None

    @field_validator("data_dir", "index_path", "master_path", "mismatch_log", mode="before")
    @classmethod
    def ensure_path(cls, v):
        """Convert string to Path."""
        return Path(v)

    def corpus_path(self, source: str) -> Path:
        """Location of a raw corpus document inside the data directory."""
        return self.data_dir / DATA_SOURCES[source]["file_name"]


class Settings(BaseSettings):
    """Main settings class that combines all settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    paths: PathSettings = Field(default_factory=PathSettings)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()


# Convenience function for quick access
settings = get_settings()


def get_worker_limit() -> int:
    """Hardware threads available to per-record work, minimum 1."""
    return max(1, os.cpu_count() or 1)


def get_cluster_worker_limit(fraction: float | None = None) -> int:
    """
    Get the worker count for the cluster build.

    Uses a fixed share of hardware threads (80% by default) so the
    machine stays responsive during long builds, with minimum 1 thread.
    """
    if fraction is None:
        fraction = settings.matching.cluster_worker_fraction
    return max(1, int(get_worker_limit() * fraction))


# =============================================================================
# Data Source Configuration
# =============================================================================

PRIMARY_SOURCE = "vpsdb"

DATA_SOURCES = {
    "vpsdb": {
        "name": "Virtual Pinball Spreadsheet",
        "description": "Community maintained spreadsheet of virtual pinball tables and their files",
        "url": "https://virtualpinballspreadsheet.github.io/",
        "file_name": "vpsdb.json",
        "id_field": "id",
        "attribution": "Virtual Pinball Spreadsheet contributors",
    },
    "ipdb": {
        "name": "Internet Pinball Database",
        "description": "Historical records of real pinball machines",
        "url": "https://www.ipdb.org/",
        "file_name": "ipdb.json",
        "id_field": "IpdbId",
        "attribution": "Internet Pinball Database",
    },
    "lbdb": {
        "name": "LaunchBox Games Database",
        "description": "Retro launcher metadata for pinball platforms",
        "url": "https://gamesdb.launchbox-app.com/",
        "file_name": "lbdb.json",
        "id_field": "Id",
        "image_base_url": "https://images.launchbox-app.com/",
        "attribution": "LaunchBox Games Database",
    },
    "vpinmdb": {
        "name": "VPin Media Database",
        "description": "Media assets keyed by spreadsheet table id",
        "url": "https://github.com/superhac/vpinmediadb",
        "file_name": "vpinmdb.json",
        "id_field": "id",
        "attribution": "vpinmediadb contributors",
    },
}
