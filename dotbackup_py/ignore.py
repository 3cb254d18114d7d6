"""
``.backupignore`` parsing for DotBackup.

The ignore file is a flat list of literal names, one per line. Blank lines
and lines starting with ``#`` are skipped. A line naming an existing
directory contributes the names of that directory's immediate children
rather than its own name; anything else is taken verbatim. There is no
globbing.
"""

import logging
from pathlib import Path
from typing import Iterable, Set

logger = logging.getLogger("dotbackup.ignore")

IGNORE_FILE_NAME = ".backupignore"


def parse_ignore_lines(lines: Iterable[str], root: Path) -> Set[str]:
    """
    Build an ignore set from raw ignore-file lines.

    Args:
        lines: Lines of the ignore file
        root: Directory that relative directory entries are resolved against

    Returns:
        Set of entry names to skip
    """
    ignored: Set[str] = set()
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        candidate = root / line
        if candidate.is_dir():
            # The directory's own name is deliberately not added.
            children = {child.name for child in candidate.iterdir()}
            logger.debug(f"Ignoring {len(children)} entries listed under {line}/")
            ignored.update(children)
        else:
            ignored.add(line)
    return ignored


def load_ignore_set(root: Path) -> Set[str]:
    """Read ``<root>/.backupignore``; a missing file yields an empty set."""
    ignore_file = root / IGNORE_FILE_NAME
    if not ignore_file.is_file():
        return set()
    with open(ignore_file, "r", encoding="utf-8", errors="replace") as f:
        return parse_ignore_lines(f.read().splitlines(), root)
