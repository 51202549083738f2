# SPDX-License-Identifier: MIT
"""Pytest configuration and fixtures for pinmatch tests."""

import os

import pytest

# Quiet loguru before pinmatch modules configure it on import
os.environ.setdefault("DISABLE_LOGGING", "1")


@pytest.fixture
def matching():
    """Default matching settings."""
    from pinmatch.config import MatchingSettings

    return MatchingSettings()


@pytest.fixture
def vpsdb_doc() -> list:
    """Small spreadsheet corpus."""
    return [
        {
            "id": "42run",
            "name": "Medieval Madness",
            "manufacturer": "Williams",
            "year": 1997,
            "players": 4,
            "type": "SS",
            "theme": ["Fantasy", "Medieval"],
            "designers": ["Brian Eddy"],
            "ipdbUrl": "https://www.ipdb.org/machine.cgi?id=4032",
            "tableFiles": [
                {
                    "tableFormat": "VPX",
                    "version": "1.2",
                    "imgUrl": "https://img.example/mm_table.png",
                    "urls": [{"url": "https://dl.example/mm"}],
                    "authors": ["Tom Tower"],
                    "features": ["SSF", "4K"],
                    "comment": "VPW build",
                    "roms": [{"name": "mm_109c"}],
                },
                {"tableFormat": "VPX", "version": "1.0"},
            ],
            "b2sFiles": [
                {"imgUrl": "https://img.example/mm_b2s.png", "urls": [{"url": "https://dl.example/mm_b2s"}]},
            ],
        },
        {
            "id": "t2jd",
            "name": "Terminator 2: Judgment Day",
            "manufacturer": "Williams",
            "year": 1991,
            "players": 4,
            "tableFiles": [{"tableFormat": "VPX", "version": "2.0", "roms": [{"name": "t2_l8"}]}],
        },
        {
            "id": "afm",
            "name": "Attack from Mars",
            "manufacturer": "Bally",
            "year": 1995,
            "players": 4,
        },
    ]


@pytest.fixture
def ipdb_doc() -> list:
    """Small IPDB corpus."""
    return [
        {
            "IpdbId": 4032,
            "Title": "Medieval Madness",
            "ManufacturerShortName": "Williams",
            "DateOfManufacture": "June, 1997",
            "MaxPlayersAllowed": 4,
            "Theme": "Fantasy - Medieval",
            "ImageFiles": [{"Url": "https://ipdb.example/mm.jpg"}],
        },
        {
            "IpdbId": 2524,
            "Title": "Terminator 2: Judgment Day",
            "ManufacturerShortName": "Williams",
            "DateOfManufacture": "July, 1991",
            "MaxPlayersAllowed": 4,
        },
        {
            "IpdbId": 3781,
            "Title": "Attack From Mars",
            "ManufacturerShortName": "Bally",
            "DateOfManufacture": "December, 1995",
            "MaxPlayersAllowed": 4,
        },
        {
            "IpdbId": 9999,
            "Title": "Black Knight",
            "ManufacturerShortName": "Williams",
            "DateOfManufacture": "1980",
        },
    ]


@pytest.fixture
def lbdb_doc() -> list:
    """Small LaunchBox corpus."""
    return [
        {
            "Id": "100",
            "Name": "Medieval Madness",
            "Year": "1997",
            "Publisher": "Williams",
            "images": {"Box - Front": ["mm_box.png"]},
            "altNames": ["Medieval Madness (Remake)"],
        },
        {
            "Id": "200",
            "Name": "Black Knight",
            "Year": "1980",
            "Publisher": "Williams",
        },
    ]


@pytest.fixture
def vpinmdb_doc() -> dict:
    """Media corpus keyed by spreadsheet id."""
    return {
        "42run": {
            "1k": {"table": "https://media.example/mm_table.png", "wheel": "https://media.example/mm_wheel.png"},
            "roms": ["mm_109c"],
            "author": "Media Crew",
        },
    }


@pytest.fixture
def corpora(vpsdb_doc, ipdb_doc, lbdb_doc, vpinmdb_doc):
    """All four corpora loaded from the fixture documents."""
    from pinmatch.sources.corpus import CorpusCache

    return CorpusCache.from_documents(
        vpsdb=vpsdb_doc,
        ipdb=ipdb_doc,
        lbdb=lbdb_doc,
        vpinmdb=vpinmdb_doc,
    )


@pytest.fixture
def medieval_record():
    """Local table file for Medieval Madness."""
    from pinmatch.models import LocalRecord

    return LocalRecord(
        path="/tables/Medieval Madness (Williams 1997).vpx",
        folder="/tables",
        rom_name="medieval",
        file_last_modified=1_700_000_000.0,
    )
