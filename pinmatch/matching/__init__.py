"""Scoring and local record matching."""

from pinmatch.matching.record_matcher import MismatchJournal, SingleRecordMatcher, needs_match
from pinmatch.matching.scorer import MatchScorer

__all__ = ["MatchScorer", "MismatchJournal", "SingleRecordMatcher", "needs_match"]
