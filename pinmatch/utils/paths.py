"""On-disk companion file probes for table files."""

from pathlib import Path


def find_child(folder: Path, name: str) -> Path | None:
    """Find a direct child of ``folder`` by name, ignoring case."""
    try:
        entries = list(folder.iterdir())
    except OSError:
        return None
    wanted = name.lower()
    for entry in entries:
        if entry.name.lower() == wanted:
            return entry
    return None


def find_nested(folder: Path, *parts: str) -> Path | None:
    """Walk ``parts`` below ``folder`` with case-insensitive matching."""
    current = folder
    for part in parts:
        current = find_child(current, part)
        if current is None:
            return None
    return current


def is_nonempty_dir(path: Path | None) -> bool:
    if path is None or not path.is_dir():
        return False
    try:
        return any(path.iterdir())
    except OSError:
        return False


def probe_companions(table_path: Path) -> dict[str, bool]:
    """
    Check which companion assets sit next to a table file.

    Args:
        table_path: Path to the table file

    Returns:
        Presence flags keyed by LocalRecord field name
    """
    table_path = Path(table_path)
    folder = table_path.parent
    stem = table_path.stem

    ini = find_child(folder, f"{stem}.ini")
    b2s = find_child(folder, f"{stem}.directb2s")

    has_ultra_dmd = False
    try:
        has_ultra_dmd = any(
            entry.is_dir() and entry.name.lower().endswith(".ultradmd")
            for entry in folder.iterdir()
        )
    except OSError:
        pass

    return {
        "has_ini": ini is not None and ini.is_file(),
        "has_b2s": b2s is not None and b2s.is_file(),
        "has_pup": is_nonempty_dir(find_child(folder, "pupvideos")),
        "has_alt_color": is_nonempty_dir(find_nested(folder, "pinmame", "altcolor")),
        "has_alt_sound": is_nonempty_dir(find_nested(folder, "pinmame", "altsound")),
        "has_alt_music": is_nonempty_dir(find_child(folder, "music")),
        "has_ultra_dmd": has_ultra_dmd,
    }
