"""
Cross-corpus deduplication.

These modules link records of the four source corpora to each other and
merge each group of linked records into one canonical entity.
"""

from pinmatch.deduplication.cluster_builder import ClusterBuilder, ClusterBuildResult
from pinmatch.deduplication.disjoint_set import DisjointSetForest
from pinmatch.deduplication.prelinker import PreLinker, PreLinkResult
from pinmatch.deduplication.unifier import CrossCorpusUnifier, UnifiedRecord

__all__ = [
    "ClusterBuilder",
    "ClusterBuildResult",
    "CrossCorpusUnifier",
    "DisjointSetForest",
    "PreLinker",
    "PreLinkResult",
    "UnifiedRecord",
]
