"""
Reconciles a fresh local scan with the persisted catalog.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from loguru import logger

from pinmatch.models import COMPANION_FIELDS, USER_FIELDS, LocalRecord
from pinmatch.utils.paths import probe_companions
from pinmatch.utils.workers import run_per_item


@dataclass
class MergeReport:
    """Counters for one merge."""
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    kept: int = 0
    dropped: int = 0


def hash_changed(fresh: LocalRecord, stored: LocalRecord) -> bool:
    """A content hash from the scan differs from the stored one."""
    for name in ("hash_from_vpx", "hash_from_vbs"):
        new = getattr(fresh, name)
        if new and new != getattr(stored, name):
            return True
    return False


class IncrementalIndexMerger:
    """
    Merges scanned records into stored ones, keyed by path.

    Args:
        force_rebuild: Replace every scanned record and reset user-owned fields
        file_exists: Existence check for stored records missing from the scan
        probe: Companion asset probe returning flags by field name
        max_workers: Pool size for the companion probe
    """

    def __init__(
        self,
        force_rebuild: bool = False,
        file_exists: Callable[[str], bool] | None = None,
        probe: Callable[[Path], dict[str, bool]] | None = None,
        max_workers: int | None = None,
    ):
        self.force_rebuild = force_rebuild
        self.file_exists = file_exists or os.path.exists
        self.probe = probe or probe_companions
        self.max_workers = max_workers
        self.report = MergeReport()

    def should_update(self, fresh: LocalRecord, stored: LocalRecord) -> bool:
        """Newer file, different content, or a higher-ranked writer."""
        if fresh.file_last_modified > stored.file_last_modified:
            return True
        if hash_changed(fresh, stored):
            return True
        return fresh.provenance.outranks(stored.provenance)

    def merge(self, fresh: list[LocalRecord], stored: list[LocalRecord]) -> list[LocalRecord]:
        """
        Merge a scan into the stored catalog.

        Args:
            fresh: Records from the new scan
            stored: Records from the persisted catalog

        Returns:
            Merged records: scanned paths first (scan order), then stored
            records the scan did not cover but whose files still exist
        """
        self.report = MergeReport()
        stored_by_path = {record.path: record for record in stored}
        merged: dict[str, LocalRecord] = {}

        for record in fresh:
            if record.path in merged:
                logger.debug(f"Duplicate scan entry for {record.path}, keeping first")
                continue

            previous = stored_by_path.get(record.path)
            if previous is None:
                merged[record.path] = record
                self.report.inserted += 1
            elif self.force_rebuild:
                merged[record.path] = record
                self.report.updated += 1
            elif self.should_update(record, previous):
                carried = {name: getattr(previous, name) for name in USER_FIELDS}
                merged[record.path] = replace(record, **carried)
                self.report.updated += 1
            else:
                previous.file_last_modified = record.file_last_modified
                merged[record.path] = previous
                self.report.unchanged += 1

        for record in stored:
            if record.path in merged:
                continue
            if self.file_exists(record.path):
                merged[record.path] = record
                self.report.kept += 1
            else:
                logger.info(f"Dropping {record.path}: file no longer exists")
                self.report.dropped += 1

        records = list(merged.values())
        self.refresh_companions(records)

        logger.info(
            f"Index merge: {self.report.inserted} new, {self.report.updated} updated, "
            f"{self.report.unchanged} unchanged, {self.report.kept} kept, {self.report.dropped} dropped"
        )
        return records

    def refresh_companions(self, records: list[LocalRecord]) -> None:
        """Re-probe companion asset flags for every record."""
        def apply(record: LocalRecord) -> None:
            flags = self.probe(Path(record.path))
            for name in COMPANION_FIELDS:
                if name in flags:
                    setattr(record, name, bool(flags[name]))

        run_per_item(records, apply, max_workers=self.max_workers, label="companion probes")
