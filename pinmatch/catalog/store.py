"""
Persistence of the local catalog and the master catalog.

Saves are atomic and report failure as False with a log entry; the
caller's in-memory data is left untouched so a save can be retried.
"""

from datetime import datetime
from pathlib import Path
from typing import Any

from loguru import logger

from pinmatch.config import settings
from pinmatch.models import LocalRecord
from pinmatch.utils.io import atomic_write_json, load_json_document


class CatalogStore:
    """Reads and writes the persisted list of LocalRecords."""

    def __init__(self, path: Path | None = None):
        self.path = Path(path or settings.paths.index_path)

    def load(self) -> list[LocalRecord]:
        """
        Load stored records.

        Returns:
            Records from the catalog, or an empty list when the file is
            missing, unreadable, or lacks a ``tables`` array
        """
        if not self.path.exists():
            logger.info(f"No catalog at {self.path}, starting empty")
            return []

        document = load_json_document(self.path, "catalog")
        if not isinstance(document, dict) or not isinstance(document.get("tables"), list):
            logger.warning(f"Catalog {self.path} has no 'tables' array, starting empty")
            return []

        records = []
        skipped = 0
        for item in document["tables"]:
            record = LocalRecord.from_dict(item)
            if record is None:
                skipped += 1
                continue
            records.append(record)

        if skipped:
            logger.warning(f"Skipped {skipped} malformed catalog entries")
        logger.info(f"Loaded {len(records):,} records from {self.path}")
        return records

    def save(self, records: list[LocalRecord]) -> bool:
        """Write all records atomically; False (and a log entry) on failure."""
        document = {
            "tables": [record.to_dict() for record in records],
            "metadata": {
                "saved_at": datetime.now().isoformat(),
                "count": len(records),
            },
        }
        try:
            atomic_write_json(self.path, document, indent=2)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save catalog to {self.path}: {e}")
            return False
        logger.info(f"Saved {len(records):,} records to {self.path}")
        return True


def save_master_catalog(document: dict[str, Any], path: Path | None = None) -> bool:
    """Write the master catalog document atomically; False on failure."""
    path = Path(path or settings.paths.master_path)
    try:
        atomic_write_json(path, document)
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save master catalog to {path}: {e}")
        return False
    logger.info(f"Saved master catalog ({len(document.get('tables', [])):,} tables) to {path}")
    return True


def load_scan(path: Path) -> tuple[list[LocalRecord], dict[str, Any]]:
    """
    Read a scanner document ``{"tables": [...]}``.

    Entries may embed the raw file metadata document under ``file_metadata``;
    it is returned separately, keyed by path.

    Returns:
        Scanned records and their metadata documents
    """
    document = load_json_document(path, "scan")
    if isinstance(document, dict):
        document = document.get("tables")
    if not isinstance(document, list):
        logger.warning(f"Scan {path} has no table list")
        return [], {}

    records, metadata = [], {}
    for item in document:
        record = LocalRecord.from_dict(item)
        if record is None:
            logger.debug(f"Skipping malformed scan entry: {item!r:.80}")
            continue
        records.append(record)
        if isinstance(item.get("file_metadata"), dict):
            metadata[record.path] = item["file_metadata"]
    return records, metadata
