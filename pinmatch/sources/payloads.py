"""
Source-specific payload shape extraction.

Image URLs, ROM names, links and versions are stored differently by each
corpus: flat arrays, objects of arrays, nested file lists, or plain URL
strings buried anywhere in the document.
"""

import re
from typing import Any

from pinmatch.config import DATA_SOURCES
from pinmatch.utils.text import unique

_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
_IPDB_ID_RE = re.compile(r"[?&]id=([^&#]+)", re.IGNORECASE)


def is_url(value: Any) -> bool:
    return isinstance(value, str) and bool(_URL_RE.match(value.strip()))


def collect_urls(payload: Any) -> list[str]:
    """Every http(s) string anywhere in a nested payload, in document order."""
    urls = []
    stack = [payload]
    while stack:
        node = stack.pop()
        if isinstance(node, str):
            if is_url(node):
                urls.append(node.strip())
        elif isinstance(node, dict):
            stack.extend(reversed(list(node.values())))
        elif isinstance(node, list):
            stack.extend(reversed(node))
    return unique(urls)


def _strings(value: Any) -> list[str]:
    """Strings from a string, a list, or an object of strings/lists."""
    if isinstance(value, str):
        return [value.strip()] if value.strip() else []
    if isinstance(value, list):
        result = []
        for item in value:
            result.extend(_strings(item))
        return result
    if isinstance(value, dict):
        result = []
        for item in value.values():
            result.extend(_strings(item))
        return result
    return []


def _file_entries(entry: dict, key: str) -> list[dict]:
    files = entry.get(key)
    if not isinstance(files, list):
        return []
    return [f for f in files if isinstance(f, dict)]


def _prefix_lbdb(name: str) -> str:
    if is_url(name):
        return name
    return DATA_SOURCES["lbdb"]["image_base_url"] + name.lstrip("/")


def extract_images(source: str, payload: Any) -> list[str]:
    """
    Image URLs of one source record.

    Args:
        source: Source tag deciding which payload shapes to read
        payload: Source record

    Returns:
        Deduplicated image URLs (LaunchBox file names are made absolute)
    """
    if not isinstance(payload, dict):
        return []

    if source == "vpinmdb":
        return collect_urls(payload)

    images: list[str] = []
    if source == "vpsdb":
        for key in ("tableFiles", "b2sFiles"):
            for file_entry in _file_entries(payload, key):
                if is_url(file_entry.get("imgUrl")):
                    images.append(file_entry["imgUrl"].strip())
        images.extend(u for u in _strings(payload.get("images")) if is_url(u))

    elif source == "ipdb":
        image_files = payload.get("ImageFiles")
        if isinstance(image_files, list):
            for image in image_files:
                if isinstance(image, dict):
                    url = image.get("Url") or image.get("URL")
                    if is_url(url):
                        images.append(url.strip())
                elif is_url(image):
                    images.append(image.strip())
        for key in ("Image", "Images"):
            images.extend(u for u in _strings(payload.get(key)) if is_url(u))

    elif source == "lbdb":
        for key in ("images", "Images", "Image"):
            images.extend(_prefix_lbdb(name) for name in _strings(payload.get(key)))

    return unique(images)


def rom_names(entry: Any) -> list[str]:
    """ROM names listed under a primary entry (table files, ROM files, merged roms)."""
    if not isinstance(entry, dict):
        return []
    roms = []
    for table_file in _file_entries(entry, "tableFiles"):
        for rom in table_file.get("roms") or []:
            if isinstance(rom, dict) and isinstance(rom.get("name"), str):
                roms.append(rom["name"].strip())
    for rom_file in _file_entries(entry, "romFiles"):
        for key in ("name", "version"):
            if isinstance(rom_file.get(key), str):
                roms.append(rom_file[key].strip())
    for rom in entry.get("roms") or []:
        if isinstance(rom, str):
            roms.append(rom.strip())
        elif isinstance(rom, dict) and isinstance(rom.get("name"), str):
            roms.append(rom["name"].strip())
    return unique(roms)


def primary_links(entry: Any) -> list[str]:
    """Download and reference links of a primary entry."""
    if not isinstance(entry, dict):
        return []
    links = []
    if is_url(entry.get("ipdbUrl")):
        links.append(entry["ipdbUrl"].strip())
    for key in ("tableFiles", "b2sFiles", "romFiles"):
        for file_entry in _file_entries(entry, key):
            for url in file_entry.get("urls") or []:
                if isinstance(url, dict) and is_url(url.get("url")):
                    links.append(url["url"].strip())
    links.extend(u for u in _strings(entry.get("links")) if is_url(u))
    return unique(links)


def primary_versions(entry: Any) -> list[str]:
    if not isinstance(entry, dict):
        return []
    versions = [f["version"].strip() for f in _file_entries(entry, "tableFiles") if isinstance(f.get("version"), str)]
    if isinstance(entry.get("version"), str):
        versions.append(entry["version"].strip())
    return unique(versions)


def primary_authors(entry: Any) -> list[str]:
    if not isinstance(entry, dict):
        return []
    authors = _strings(entry.get("author")) + _strings(entry.get("designers"))
    for table_file in _file_entries(entry, "tableFiles"):
        authors.extend(_strings(table_file.get("authors")))
    return unique(authors)


def parse_ipdb_id(url: Any) -> str | None:
    """
    Read the machine id from an IPDB link.

    >>> parse_ipdb_id("https://www.ipdb.org/machine.cgi?id=4032&puid=1")
    '4032'
    """
    if not isinstance(url, str):
        return None
    match = _IPDB_ID_RE.search(url)
    if not match:
        return None
    return match.group(1).strip() or None
