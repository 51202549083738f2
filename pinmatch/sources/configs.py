"""
Per-source field tables and type-checked document access.

Each corpus names the same logical attribute differently (``name`` in the
spreadsheet, ``Title`` in IPDB, ``Name`` in LaunchBox). A field table lists,
per source tag, the candidate keys for each attribute in lookup order:

- id: Record identifier
- name: Table title
- manufacturer: Manufacturer or publisher
- year: Release year or a date containing it
- players: Maximum player count
- author: Designer or table author (single string)
- authors: Designers or authors (list of strings)
- themes: Theme names (list of strings or a single string)
- type: Machine type (EM, SS, PM, ...)
"""

import re
from typing import Any, Optional, TypedDict

from pinmatch.normalizers.dates import extract_year

_INT_RE = re.compile(r"-?[0-9]+")


class FieldTableType(TypedDict, total=False):
    id: list[str]
    name: list[str]
    manufacturer: list[str]
    year: list[str]
    players: list[str]
    author: list[str]
    authors: list[str]
    themes: list[str]
    type: list[str]


FIELD_TABLES: dict[str, FieldTableType] = {
    # Primary source - community spreadsheet
    "vpsdb": {
        "id": ["id"],
        "name": ["name", "title"],
        "manufacturer": ["manufacturer", "company"],
        "year": ["year", "releaseYear"],
        "players": ["players", "playerCount"],
        "author": ["author", "designer"],
        "authors": ["designers", "authors"],
        "themes": ["theme", "themes"],
        "type": ["type", "tableType"],
    },

    # Arcade machine history
    "ipdb": {
        "id": ["IpdbId", "ipdbId", "id"],
        "name": ["Title", "title"],
        "manufacturer": ["ManufacturerShortName", "Manufacturer", "manufacturer"],
        "year": ["DateOfManufacture", "Year", "year"],
        "players": ["MaxPlayersAllowed", "Players", "playerCount"],
        "author": ["Designer", "DesignBy", "author"],
        "themes": ["Theme", "theme"],
        "type": ["Type", "TypeShortName"],
    },

    # Retro launcher games database
    "lbdb": {
        "id": ["Id", "id", "DatabaseID"],
        "name": ["Name", "name"],
        "manufacturer": ["Manufacturer", "manufacturer", "Publisher", "Developer"],
        "year": ["Year", "year", "ReleaseDate"],
        "players": ["MaxPlayers", "Players"],
        "author": ["Developer", "author"],
    },

    # Media database, keyed by spreadsheet id
    "vpinmdb": {
        "id": ["id"],
        "name": ["name", "title"],
    },

    # Flattened local file record
    "local": {
        "name": ["title"],
        "manufacturer": ["manufacturer"],
        "year": ["year"],
        "author": ["author"],
    },
}

DEFAULT_FIELDS: FieldTableType = {
    "id": ["id"],
    "name": ["name"],
    "manufacturer": ["manufacturer"],
    "year": ["year"],
    "players": ["playerCount"],
    "author": ["author"],
}


class FieldMapper:
    """
    Reads logical attributes from source documents.

    Every getter returns the first present, correctly typed, non-empty value
    for the attribute, or None/empty when no candidate qualifies. Values of
    the wrong type are treated as absent; nothing here raises on bad data.
    """

    def __init__(self, tables: dict[str, FieldTableType] | None = None):
        self.tables = tables if tables is not None else FIELD_TABLES

    def candidates(self, source: str, attribute: str) -> list[str]:
        table = self.tables.get(source, DEFAULT_FIELDS)
        return list(table.get(attribute, DEFAULT_FIELDS.get(attribute, [])))

    def _values(self, doc: Any, source: str, attribute: str):
        if not isinstance(doc, dict):
            return
        for key in self.candidates(source, attribute):
            if key in doc:
                yield doc[key]

    def get_string(self, doc: Any, source: str, attribute: str) -> Optional[str]:
        """First non-empty string value."""
        for value in self._values(doc, source, attribute):
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def get_int(self, doc: Any, source: str, attribute: str) -> Optional[int]:
        """First integer value; integral floats and numeric strings are accepted."""
        for value in self._values(doc, source, attribute):
            if isinstance(value, bool):
                continue
            if isinstance(value, int):
                return value
            if isinstance(value, float) and value.is_integer():
                return int(value)
            if isinstance(value, str) and _INT_RE.fullmatch(value.strip()):
                return int(value.strip())
        return None

    def get_strings(self, doc: Any, source: str, attribute: str) -> list[str]:
        """First non-empty list of strings; a lone string becomes a one-item list."""
        for value in self._values(doc, source, attribute):
            if isinstance(value, str) and value.strip():
                return [value.strip()]
            if isinstance(value, list):
                items = [v.strip() for v in value if isinstance(v, str) and v.strip()]
                if items:
                    return items
        return []

    def get_id(self, doc: Any, source: str) -> Optional[str]:
        """Record id as a string; integer ids are converted."""
        for value in self._values(doc, source, "id"):
            if isinstance(value, bool):
                continue
            if isinstance(value, int):
                return str(value)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    def get_year(self, doc: Any, source: str) -> Optional[int]:
        """Release year from an integer field, else extracted from a date-like string."""
        year = self.get_int(doc, source, "year")
        if year is not None:
            return extract_year(year)
        return extract_year(self.get_string(doc, source, "year"))

    def get_author(self, doc: Any, source: str) -> Optional[str]:
        """Single author string, falling back to the joined author list."""
        author = self.get_string(doc, source, "author")
        if author:
            return author
        authors = self.get_strings(doc, source, "authors")
        return ", ".join(authors) if authors else None


# Shared mapper for the built-in tables
field_mapper = FieldMapper()


# File-embedded metadata blocks, keyed by LocalRecord field name
FILE_METADATA_FIELDS: dict[str, dict[str, list[str]]] = {
    "table_info": {
        "table_name": ["table_name", "TableName"],
        "table_author": ["author_name", "AuthorName"],
        "table_description": ["table_description"],
        "table_save_date": ["table_save_date"],
        "table_release_date": ["release_date"],
        "table_version": ["table_version"],
        "table_revision": ["table_save_rev"],
        "table_blurb": ["table_blurb"],
        "table_rules": ["table_rules"],
        "table_author_email": ["author_email"],
        "table_author_website": ["author_website"],
    },
    "properties": {
        "table_type": ["TableType"],
        "table_manufacturer": ["CompanyName", "Company"],
        "table_year": ["CompanyYear", "Year"],
    },
}

file_metadata_mapper = FieldMapper(FILE_METADATA_FIELDS)
