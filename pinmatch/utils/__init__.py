"""Utility modules for pinmatch."""

from pinmatch.utils.io import atomic_write_json, load_json_document
from pinmatch.utils.logging import setup_logging
from pinmatch.utils.paths import probe_companions
from pinmatch.utils.text import (
    fingerprint,
    levenshtein,
    normalize_loose,
    normalize_strict,
    similarity,
    unique,
)
from pinmatch.utils.workers import PoolRun, run_per_item, run_with_cursor

__all__ = [
    # I/O
    "atomic_write_json",
    "load_json_document",
    # Logging
    "setup_logging",
    # Filesystem probes
    "probe_companions",
    # Text utilities
    "normalize_strict",
    "normalize_loose",
    "levenshtein",
    "similarity",
    "fingerprint",
    "unique",
    # Worker pools
    "PoolRun",
    "run_per_item",
    "run_with_cursor",
]
