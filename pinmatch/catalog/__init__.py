"""Local catalog persistence and incremental merging."""

from pinmatch.catalog.index_merger import IncrementalIndexMerger, MergeReport
from pinmatch.catalog.store import CatalogStore, load_scan, save_master_catalog

__all__ = [
    "CatalogStore",
    "IncrementalIndexMerger",
    "MergeReport",
    "load_scan",
    "save_master_catalog",
]
