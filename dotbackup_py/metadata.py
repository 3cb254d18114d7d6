"""
Metadata record stored at ``.backup/__init__``.

The record is a handful of ``key: value`` lines written once by ``init``.
A working directory counts as initialized when any line of the record
contains ``init: True``.
"""

import getpass
from pathlib import Path
from typing import Dict, List, Optional

METADATA_FILE_NAME = "__init__"
INIT_MARKER = "init: True"


def current_user() -> str:
    """Return the login name of the current user, or ``"unknown"``."""
    try:
        return getpass.getuser()
    except (OSError, KeyError, ImportError):
        return "unknown"


def render_metadata(folder: Path, timestamp: str, author: Optional[str] = None) -> str:
    """Return the text of a fresh metadata record."""
    lines = [
        INIT_MARKER,
        f"author: {author or current_user()}",
        f"folder: {folder}",
        f"timestamp: {timestamp}",
    ]
    return "\n".join(lines) + "\n"


def write_metadata(
    backup_root: Path, folder: Path, timestamp: str, author: Optional[str] = None
) -> Path:
    """Write (or overwrite) the metadata record and return its path."""
    path = backup_root / METADATA_FILE_NAME
    path.write_text(render_metadata(folder, timestamp, author), encoding="utf-8")
    return path


def read_metadata_lines(backup_root: Path) -> Optional[List[str]]:
    """Return the raw record lines, or None when there is no record."""
    path = backup_root / METADATA_FILE_NAME
    if not path.is_file():
        return None
    return path.read_text(encoding="utf-8").splitlines()


def read_metadata(backup_root: Path) -> Optional[Dict[str, str]]:
    """Return the record as a ``key -> value`` mapping, or None."""
    lines = read_metadata_lines(backup_root)
    if lines is None:
        return None

    record: Dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        if sep:
            record[key.strip()] = value.strip()
    return record


def is_initialized(backup_root: Path) -> bool:
    """True iff the metadata record exists and carries the init marker."""
    lines = read_metadata_lines(backup_root)
    if lines is None:
        return False
    return any(INIT_MARKER in line for line in lines)
