"""
Master catalog build: unify every primary record, then cluster all links.

Phases:
1. Merge media hints into copies of the primary records.
2. Pre-link LaunchBox entries to IPDB machines.
3. Unify each primary record in parallel (fixed pool, shared cursor).
4. Union-find over every discovered link plus the pre-links (single thread,
   after all workers have joined).
5. Merge each cluster into a CanonicalEntity; emit unabsorbed records as
   single-member ``iso_<source>_<id>`` entities.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from loguru import logger

from pinmatch.config import MatchingSettings, get_cluster_worker_limit, settings
from pinmatch.deduplication.disjoint_set import DisjointSetForest
from pinmatch.deduplication.prelinker import PreLinker, PreLinkResult
from pinmatch.deduplication.unifier import (
    AGGREGATE_FIELDS,
    Aggregates,
    CrossCorpusUnifier,
    UnifiedRecord,
    extract_aggregates,
    merge_media_hints,
)
from pinmatch.models import CanonicalEntity
from pinmatch.sources.configs import field_mapper
from pinmatch.sources.corpus import CORPUS_SOURCES, CorpusCache
from pinmatch.utils.workers import run_with_cursor

CANON_TAG = "canon"


def node_key(source: str, source_id: str) -> str:
    return f"{source}:{source_id}"


def split_key(key: str) -> tuple[str, str]:
    source, _, source_id = key.partition(":")
    return source, source_id


@dataclass
class ClusterBuildResult:
    """Everything produced by one build."""
    entities: list[CanonicalEntity] = field(default_factory=list)
    unified: list[UnifiedRecord] = field(default_factory=list)
    prelinks: PreLinkResult = field(default_factory=PreLinkResult)
    failed: list[str] = field(default_factory=list)
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    @property
    def clusters(self) -> list[CanonicalEntity]:
        return [e for e in self.entities if not e.canonical_id.startswith("iso_")]

    @property
    def isolated(self) -> list[CanonicalEntity]:
        return [e for e in self.entities if e.canonical_id.startswith("iso_")]

    def entity_for(self, source: str, source_id: str) -> CanonicalEntity | None:
        """Entity holding the given source record."""
        key = node_key(source, source_id)
        for entity in self.entities:
            if key in entity.member_keys():
                return entity
        return None

    def to_document(self, corpora: CorpusCache) -> dict[str, Any]:
        """Master catalog document with the original corpora kept for audit."""
        raw = {}
        for source in CORPUS_SOURCES:
            document = corpora[source].document
            raw[source] = document if document is not None else []
        return {
            "tables": [entity.to_dict() for entity in self.entities],
            "raw": raw,
            "metadata": {
                "generated_at": (self.completed_at or datetime.now()).isoformat(),
                "clusters": len(self.clusters),
                "isolated": len(self.isolated),
                "prelinks": len(self.prelinks),
                "counts": corpora.summary(),
            },
        }


class ClusterBuilder:
    """
    Builds canonical entities across all corpora.

    Args:
        corpora: Loaded corpora
        matching: Thresholds, weights and display priority
        max_workers: Unification pool size (defaults to 80% of hardware threads)
    """

    def __init__(
        self,
        corpora: CorpusCache,
        matching: MatchingSettings | None = None,
        max_workers: int | None = None,
    ):
        self.corpora = corpora
        self.matching = matching or settings.matching
        self.max_workers = max_workers or get_cluster_worker_limit(self.matching.cluster_worker_fraction)
        self.mapper = field_mapper

    def prepare_primary(self) -> list[tuple[str, dict]]:
        """Primary entries with their media hints merged in (copies; the corpus is untouched)."""
        media = self.corpora["vpinmdb"]
        prepared = []
        merged = 0
        for vps_id, entry in self.corpora.primary.entries:
            hints = media.get(vps_id)
            if hints is not None:
                entry = merge_media_hints(entry, hints, vps_id)
                merged += 1
            prepared.append((vps_id, entry))
        logger.info(f"Merged media hints into {merged:,}/{len(prepared):,} primary records")
        return prepared

    def build(self) -> ClusterBuildResult:
        """Run every phase and return the entities in emit order."""
        result = ClusterBuildResult(started_at=datetime.now())
        logger.info(f"Cluster build starting: {self.corpora.summary()}")

        prepared = self.prepare_primary()
        result.prelinks = PreLinker(self.matching).link(self.corpora["lbdb"], self.corpora["ipdb"])

        unifier = CrossCorpusUnifier(self.corpora, self.matching)
        work = list(enumerate(prepared))
        run = run_with_cursor(
            work,
            lambda item: unifier.unify(item[0], item[1][0], item[1][1]),
            max_workers=self.max_workers,
            label="primary tables",
        )
        result.unified = run.values
        result.failed = [prepared[i][0] for i in run.failed]
        if result.failed:
            logger.warning(f"{len(result.failed)} primary records failed to unify and will be emitted alone")

        clusters = self.cluster(result.unified, result.prelinks)
        absorbed = set()
        for entity in clusters:
            absorbed |= entity.member_keys()

        result.entities = clusters + self.isolated(absorbed)
        result.completed_at = datetime.now()
        logger.info(
            f"Cluster build complete: {len(clusters):,} clusters, "
            f"{len(result.entities) - len(clusters):,} isolated records "
            f"in {result.duration_seconds:.1f}s"
        )
        return result

    def link_forest(self, unified: list[UnifiedRecord], prelinks: PreLinkResult) -> DisjointSetForest[str]:
        """
        Union every unified record with its linked ids, then apply pre-links.

        Canonical nodes are exclusive, so two primary records never share a
        cluster; a secondary record claimed by both stays with the first.
        """
        forest: DisjointSetForest[str] = DisjointSetForest()
        for record in unified:
            canon = node_key(CANON_TAG, record.canonical_id)
            forest.add(canon, exclusive=True)
            for source, source_id in record.db_sources.items():
                if not forest.union(canon, node_key(source, source_id)):
                    logger.debug(f"{source}:{source_id} already belongs to another primary record")

        for a_key, b_key in prelinks.keys():
            forest.union(a_key, b_key)
        return forest

    def cluster(self, unified: list[UnifiedRecord], prelinks: PreLinkResult) -> list[CanonicalEntity]:
        """Merge linked records into canonical entities (one per primary record)."""
        forest = self.link_forest(unified, prelinks)
        by_canon = {node_key(CANON_TAG, r.canonical_id): r for r in unified}

        entities = []
        for members in forest.groups().values():
            canons = [by_canon[m] for m in members if m in by_canon]
            if not canons:
                continue
            member_ids: dict[str, list[str]] = {}
            for key in members:
                source, source_id = split_key(key)
                if source != CANON_TAG:
                    member_ids.setdefault(source, []).append(source_id)
            entities.append(self.merge(canons, member_ids))

        entities.sort(key=lambda e: e.canonical_id)
        return entities

    def _payload(self, records: list[UnifiedRecord], source: str, source_id: str) -> Any:
        for record in records:
            if record.db_sources.get(source) == source_id:
                return record.raw_metadata.get(source)
        return self.corpora[source].get(source_id)

    def display_name(self, payloads: dict[str, list[Any]]) -> str:
        """First non-empty name in source priority order."""
        for source in self.matching.source_priority:
            for payload in payloads.get(source, []):
                name = self.mapper.get_string(payload, source, "name")
                if name:
                    return name
        for source in CORPUS_SOURCES:
            for payload in payloads.get(source, []):
                name = self.mapper.get_string(payload, source, "name")
                if name:
                    return name
        return ""

    def merge(self, records: list[UnifiedRecord], member_ids: dict[str, list[str]]) -> CanonicalEntity:
        """
        Merge one cluster.

        Args:
            records: Unified records in the cluster (normally one)
            member_ids: Member ids per source, including pre-linked ones

        Returns:
            Immutable CanonicalEntity
        """
        records = sorted(records, key=lambda r: r.canonical_id)
        aggregates = Aggregates()
        payloads: dict[str, list[Any]] = {}
        db_sources: dict[str, tuple[str, ...]] = {}

        for source in CORPUS_SOURCES:
            ids = sorted(set(member_ids.get(source, [])))
            if not ids:
                continue
            db_sources[source] = tuple(ids)
            for source_id in ids:
                payload = self._payload(records, source, source_id)
                payloads.setdefault(source, []).append(payload)
                aggregates.extend(extract_aggregates(source, payload, self.mapper))

        name = self.display_name(payloads) or records[0].canonical_name
        values = {f: tuple(getattr(aggregates, f)) for f in AGGREGATE_FIELDS}
        values["years"] = tuple(sorted(values["years"]))
        values["player_counts"] = tuple(sorted(values["player_counts"]))

        return CanonicalEntity(
            canonical_id=records[0].canonical_id,
            canonical_name=name,
            db_sources=db_sources,
            raw_metadata={source: tuple(items) for source, items in payloads.items()},
            **values,
        )

    def isolated(self, absorbed: set[str]) -> list[CanonicalEntity]:
        """Single-member entities for every record no cluster absorbed."""
        entities = []
        for source in CORPUS_SOURCES:
            for source_id, payload in self.corpora[source].entries:
                if node_key(source, source_id) in absorbed:
                    continue
                aggregates = extract_aggregates(source, payload, self.mapper)
                values = {f: tuple(getattr(aggregates, f)) for f in AGGREGATE_FIELDS}
                entities.append(CanonicalEntity(
                    canonical_id=f"iso_{source}_{source_id}",
                    canonical_name=self.mapper.get_string(payload, source, "name") or "",
                    db_sources={source: (source_id,)},
                    raw_metadata={source: (payload,)},
                    **values,
                ))
        return entities
