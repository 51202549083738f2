"""
Weighted multi-factor scoring between two records.

The total is a fixed linear combination of five sub-scores:

- name: best similarity of any candidate name to the target name
- year: 1.0 on an exact year match
- manufacturer: loose-normalized similarity (partial credit)
- players: 1.0 on an exact player count match
- author: loose-normalized similarity (partial credit)

A sub-score is 0 whenever either side lacks the field.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Optional

from pinmatch.config import settings
from pinmatch.models import CandidateNameSet, MatchScore
from pinmatch.sources.configs import FieldMapper, field_mapper
from pinmatch.utils.text import normalize_loose, similarity


@dataclass
class ScoredCandidate:
    """Best-scoring entry of a corpus scan."""
    source_id: str
    record: dict
    score: MatchScore


def text_similarity(a: Optional[str], b: Optional[str]) -> float:
    """Loose-normalized similarity; 0.0 when either side is missing."""
    left, right = normalize_loose(a), normalize_loose(b)
    if not left or not right:
        return 0.0
    return similarity(left, right)


class MatchScorer:
    """Scores a source record against target records of any source."""

    def __init__(
        self,
        weights: tuple[float, float, float, float, float] | None = None,
        mapper: FieldMapper | None = None,
        name_floor: float = 0.0,
    ):
        self.weights = weights or settings.matching.weights
        self.mapper = mapper or field_mapper
        self.name_floor = name_floor

    def name_score(self, names: Iterable[str], target_name: Optional[str]) -> float:
        target = normalize_loose(target_name)
        if not target:
            return 0.0
        best = 0.0
        for name in names:
            candidate = normalize_loose(name)
            if not candidate:
                continue
            best = max(best, similarity(candidate, target))
            if best == 1.0:
                break
        return best if best >= self.name_floor else 0.0

    def score(
        self,
        source: Any,
        target: Any,
        candidate_names: Iterable[str] | None = None,
        source_tag: str = "local",
        target_tag: str = "vpsdb",
    ) -> MatchScore:
        """
        Score ``source`` against ``target``.

        Args:
            source: Source document (read through the field table of ``source_tag``)
            target: Target document (read through the field table of ``target_tag``)
            candidate_names: Extra aliases for the source name
            source_tag: Field table for the source document
            target_tag: Field table for the target document

        Returns:
            MatchScore with sub-scores and weighted total
        """
        mapper = self.mapper

        names = CandidateNameSet(candidate_names or ())
        names.add(mapper.get_string(source, source_tag, "name"))
        name = self.name_score(names, mapper.get_string(target, target_tag, "name"))

        source_year = mapper.get_year(source, source_tag)
        target_year = mapper.get_year(target, target_tag)
        year = 1.0 if source_year and source_year == target_year else 0.0

        manufacturer = text_similarity(
            mapper.get_string(source, source_tag, "manufacturer"),
            mapper.get_string(target, target_tag, "manufacturer"),
        )

        source_players = mapper.get_int(source, source_tag, "players")
        target_players = mapper.get_int(target, target_tag, "players")
        players = 1.0 if source_players is not None and source_players == target_players else 0.0

        author = text_similarity(mapper.get_author(source, source_tag), mapper.get_author(target, target_tag))

        return MatchScore.combine(name, year, manufacturer, players, author, self.weights)

    def best_of(
        self,
        source: Any,
        entries: Iterable[tuple[str, dict]],
        candidate_names: Iterable[str] | None = None,
        source_tag: str = "local",
        target_tag: str = "vpsdb",
    ) -> Optional[ScoredCandidate]:
        """Highest scoring entry (first wins on ties), or None for an empty scan."""
        names = list(candidate_names or ())
        best = None
        for source_id, record in entries:
            score = self.score(source, record, names, source_tag, target_tag)
            if best is None or score.total > best.score.total:
                best = ScoredCandidate(source_id, record, score)
        return best
