"""
Loaded source corpora, shared by reference for one session.

A corpus document may be an array of records, an id-keyed object, or an
object wrapping the array under a well-known key. Malformed documents
become empty corpora and malformed records are skipped; both are logged.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from loguru import logger

from pinmatch.config import DATA_SOURCES, PRIMARY_SOURCE, PathSettings, settings
from pinmatch.sources.configs import FieldMapper, field_mapper
from pinmatch.utils.io import load_json_document

CORPUS_SOURCES = ("vpsdb", "ipdb", "lbdb", "vpinmdb")

# Keys under which array-shaped corpora are commonly wrapped
WRAPPER_KEYS = ("tables", "Data", "data", "items", "records", "games")


@dataclass
class Corpus:
    """Well-formed records of one source with their ids."""
    source: str
    document: Any = None
    entries: list[tuple[str, dict]] = field(default_factory=list)
    by_id: dict[str, dict] = field(default_factory=dict)
    skipped: int = 0

    def __len__(self) -> int:
        return len(self.entries)

    def get(self, source_id: str | None) -> dict | None:
        if not source_id:
            return None
        return self.by_id.get(str(source_id))

    @classmethod
    def from_document(cls, source: str, document: Any, mapper: FieldMapper | None = None) -> "Corpus":
        """
        Index a parsed corpus document.

        Args:
            source: Source tag (vpsdb, ipdb, lbdb, vpinmdb)
            document: Parsed JSON document, or None for a missing corpus
            mapper: FieldMapper used to read record ids

        Returns:
            Corpus with every record that has a usable id
        """
        mapper = mapper or field_mapper
        corpus = cls(source=source, document=document)

        if document is None:
            return corpus

        for source_id, record in _iter_records(document, source, mapper):
            if source_id is None:
                corpus.skipped += 1
                continue
            if source_id in corpus.by_id:
                logger.debug(f"{source}: duplicate id {source_id}, keeping first")
                corpus.skipped += 1
                continue
            corpus.entries.append((source_id, record))
            corpus.by_id[source_id] = record

        if corpus.skipped:
            logger.warning(f"{source}: skipped {corpus.skipped} malformed or duplicate records")
        logger.info(f"{source}: {len(corpus.entries):,} records indexed")
        return corpus


def _iter_records(document: Any, source: str, mapper: FieldMapper):
    """Yield (id or None, record) pairs from any supported document shape."""
    if isinstance(document, dict):
        for key in WRAPPER_KEYS:
            if isinstance(document.get(key), list):
                document = document[key]
                break

    if isinstance(document, list):
        for record in document:
            if not isinstance(record, dict):
                yield None, record
                continue
            yield mapper.get_id(record, source), record
        return

    if isinstance(document, dict):
        for key, record in document.items():
            if not isinstance(record, dict):
                yield None, record
                continue
            yield mapper.get_id(record, source) or (str(key).strip() or None), record
        return

    logger.warning(f"{source}: unsupported document type {type(document).__name__}, treating as empty")


class CorpusCache:
    """
    All source corpora for one session.

    Constructed once (from files or from already-parsed documents) and
    passed to every component that needs corpus access.
    """

    def __init__(self, corpora: dict[str, Corpus], master: Any = None):
        self.corpora = {source: corpora.get(source) or Corpus(source) for source in CORPUS_SOURCES}
        self.master = master if isinstance(master, dict) else None
        self._master_by_vps_id = _index_master(self.master)

    def __getitem__(self, source: str) -> Corpus:
        return self.corpora[source]

    @property
    def primary(self) -> Corpus:
        return self.corpora[PRIMARY_SOURCE]

    @classmethod
    def from_documents(cls, mapper: FieldMapper | None = None, master: Any = None, **documents) -> "CorpusCache":
        """Build from parsed documents keyed by source tag (missing sources are empty)."""
        corpora = {
            source: Corpus.from_document(source, documents.get(source), mapper)
            for source in CORPUS_SOURCES
        }
        return cls(corpora, master=master)

    @classmethod
    def load(
        cls,
        paths: PathSettings | None = None,
        sources: tuple[str, ...] = CORPUS_SOURCES,
        include_master: bool = False,
    ) -> "CorpusCache":
        """Load corpus documents from the data directory."""
        paths = paths or settings.paths
        documents = {}
        for source in sources:
            documents[source] = load_json_document(paths.corpus_path(source), DATA_SOURCES[source]["name"])

        master = None
        if include_master and Path(paths.master_path).exists():
            master = load_json_document(paths.master_path, "master catalog")
        return cls.from_documents(master=master, **documents)

    def master_entry(self, vps_id: str | None) -> dict | None:
        """Master catalog cluster containing the given primary id."""
        if not vps_id:
            return None
        return self._master_by_vps_id.get(vps_id)

    def summary(self) -> dict[str, int]:
        return {source: len(corpus) for source, corpus in self.corpora.items()}


def _index_master(master: dict | None) -> dict[str, dict]:
    index: dict[str, dict] = {}
    if not master or not isinstance(master.get("tables"), list):
        return index
    for table in master["tables"]:
        if not isinstance(table, dict):
            continue
        sources = table.get("db_sources")
        if not isinstance(sources, dict):
            continue
        vps_ids = sources.get(PRIMARY_SOURCE) or []
        if isinstance(vps_ids, str):
            vps_ids = [vps_ids]
        for vps_id in vps_ids:
            if isinstance(vps_id, str):
                index.setdefault(vps_id, table)
    return index
