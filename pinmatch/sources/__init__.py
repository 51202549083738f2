"""Source corpora and per-source field access."""

from .configs import FIELD_TABLES, FieldMapper, field_mapper
from .corpus import CORPUS_SOURCES, Corpus, CorpusCache

__all__ = [
    "FIELD_TABLES",
    "FieldMapper",
    "field_mapper",
    "CORPUS_SOURCES",
    "Corpus",
    "CorpusCache",
]
