"""
Cheap blocking pass that links LaunchBox entries to IPDB machines.

IPDB titles are indexed by a short fingerprint. Each LaunchBox entry is
scored only against entries sharing its fingerprint, or against a bounded
set of fallback candidates when the fingerprint finds nothing. Accepted
links later pull LaunchBox entries into the clusters of their IPDB machine
(and the other way round).
"""

from dataclasses import dataclass, field

from loguru import logger

from pinmatch.config import MatchingSettings, settings
from pinmatch.matching.scorer import MatchScorer
from pinmatch.sources.configs import FieldMapper, field_mapper
from pinmatch.sources.corpus import Corpus
from pinmatch.utils.text import fingerprint, normalize_strict, similarity

# Minimum strict-normalized similarity for a manufacturer fallback candidate
MANUFACTURER_SIMILARITY = 0.8


@dataclass
class PreLinkResult:
    """Accepted links in both directions."""
    a_source: str = "lbdb"
    b_source: str = "ipdb"
    a_to_b: dict[str, str] = field(default_factory=dict)
    b_to_a: dict[str, list[str]] = field(default_factory=dict)
    scores: dict[str, float] = field(default_factory=dict)

    def add(self, a_id: str, b_id: str, score: float) -> None:
        self.a_to_b[a_id] = b_id
        self.b_to_a.setdefault(b_id, []).append(a_id)
        self.scores[a_id] = score

    def pairs(self) -> list[tuple[str, str]]:
        return list(self.a_to_b.items())

    def keys(self) -> list[tuple[str, str]]:
        """Link endpoints as disjoint-set keys."""
        return [(f"{self.a_source}:{a}", f"{self.b_source}:{b}") for a, b in self.a_to_b.items()]

    def __len__(self) -> int:
        return len(self.a_to_b)


class PreLinker:
    """
    Links records of corpus A to corpus B through a fingerprint index.

    Args:
        matching: Threshold, fingerprint length and fallback bound
        scorer: Scorer for candidate pairs
        a_source: Source tag of the probing corpus
        b_source: Source tag of the indexed corpus
    """

    def __init__(
        self,
        matching: MatchingSettings | None = None,
        scorer: MatchScorer | None = None,
        a_source: str = "lbdb",
        b_source: str = "ipdb",
        mapper: FieldMapper | None = None,
    ):
        self.matching = matching or settings.matching
        self.scorer = scorer or MatchScorer(weights=self.matching.weights)
        self.mapper = mapper or field_mapper
        self.a_source = a_source
        self.b_source = b_source

    def _fingerprint(self, text: str | None) -> str:
        return fingerprint(text, self.matching.fingerprint_length)

    def build_index(self, b_corpus: Corpus) -> dict[str, list[str]]:
        """Fingerprint -> ids of B entries with that fingerprint."""
        index: dict[str, list[str]] = {}
        for b_id, record in b_corpus.entries:
            key = self._fingerprint(self.mapper.get_string(record, self.b_source, "name"))
            if key:
                index.setdefault(key, []).append(b_id)
        return index

    def fallback_candidates(self, a_record: dict, b_corpus: Corpus) -> list[str]:
        """
        Bounded scan used when the fingerprint finds nothing.

        With a manufacturer, B entries with a similar manufacturer qualify;
        without one, entries whose name starts with the same character.
        """
        limit = self.matching.prelink_fallback_limit
        manufacturer = normalize_strict(self.mapper.get_string(a_record, self.a_source, "manufacturer"))
        first_char = self._fingerprint(self.mapper.get_string(a_record, self.a_source, "name"))[:1]

        candidates = []
        for b_id, record in b_corpus.entries:
            if len(candidates) >= limit:
                break
            if manufacturer:
                other = normalize_strict(self.mapper.get_string(record, self.b_source, "manufacturer"))
                if other and similarity(manufacturer, other) >= MANUFACTURER_SIMILARITY:
                    candidates.append(b_id)
            elif first_char:
                other = self._fingerprint(self.mapper.get_string(record, self.b_source, "name"))
                if other.startswith(first_char):
                    candidates.append(b_id)
        return candidates

    def link(self, a_corpus: Corpus, b_corpus: Corpus) -> PreLinkResult:
        """
        Link every A entry to its best B entry above the pre-link threshold.

        Args:
            a_corpus: Probing corpus
            b_corpus: Indexed corpus

        Returns:
            PreLinkResult with accepted links
        """
        result = PreLinkResult(a_source=self.a_source, b_source=self.b_source)
        if not len(a_corpus) or not len(b_corpus):
            logger.info(f"Pre-link skipped: {self.a_source}={len(a_corpus)}, {self.b_source}={len(b_corpus)}")
            return result

        index = self.build_index(b_corpus)
        logger.info(f"Pre-link index: {len(index):,} fingerprints over {len(b_corpus):,} {self.b_source} entries")

        for position, (a_id, a_record) in enumerate(a_corpus.entries, start=1):
            name = self.mapper.get_string(a_record, self.a_source, "name")
            candidates = index.get(self._fingerprint(name), [])
            if not candidates:
                candidates = self.fallback_candidates(a_record, b_corpus)

            best = self.scorer.best_of(
                a_record,
                ((b_id, b_corpus.by_id[b_id]) for b_id in candidates),
                [name] if name else [],
                self.a_source,
                self.b_source,
            )
            if best and best.score.total >= self.matching.prelink_threshold:
                result.add(a_id, best.source_id, best.score.total)

            if position % 1000 == 0:
                logger.info(f"Pre-linked {position:,}/{len(a_corpus):,} {self.a_source} entries")

        logger.info(f"Pre-link complete: {len(result):,} {self.a_source} -> {self.b_source} links")
        return result
