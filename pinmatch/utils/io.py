"""JSON document loading and atomic writes."""

import json
from pathlib import Path
from typing import Any

from loguru import logger


def load_json_document(path: Path, label: str | None = None) -> Any | None:
    """
    Load a JSON document, returning None when it is missing or unreadable.

    Args:
        path: File to read
        label: Name used in log messages (defaults to the file name)

    Returns:
        Parsed document, or None on any read or decode failure
    """
    path = Path(path)
    label = label or path.name

    if not path.exists():
        logger.warning(f"{label}: {path} not found, treating as empty")
        return None

    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"{label}: could not read {path}: {e}")
        return None


def atomic_write_json(dest_path: Path, data: Any, indent: int | None = None) -> Path:
    """
    Write JSON data atomically - only replaces target file on success.

    1. Writes to temp file in same directory
    2. Validates JSON is readable
    3. Renames temp to final (atomic on same filesystem)

    Args:
        dest_path: Final destination path
        data: Data to serialize as JSON
        indent: JSON indent (None for compact)

    Returns:
        Path to written file
    """
    dest_path = Path(dest_path)
    dest_path.parent.mkdir(parents=True, exist_ok=True)

    temp_path = dest_path.with_suffix(dest_path.suffix + ".tmp")

    try:
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=indent)

        with open(temp_path, encoding="utf-8") as f:
            json.load(f)

        temp_path.replace(dest_path)
        return dest_path

    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise
