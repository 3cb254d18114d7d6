"""
Engine package for DotBackup.

This module provides the snapshot record and the base class for backup
engines. Engines own the backup root inside a working directory.
"""

import abc
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

SNAPSHOT_PREFIX = "Backup_"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


def format_timestamp(moment: datetime) -> str:
    """Render *moment* in the fixed-width, zero-padded snapshot format."""
    return moment.strftime(TIMESTAMP_FORMAT)


def snapshot_name(moment: datetime) -> str:
    """Return the directory name of a snapshot taken at *moment*."""
    return f"{SNAPSHOT_PREFIX}{format_timestamp(moment)}"


def parse_snapshot_time(name: str) -> Optional[datetime]:
    """Recover the capture time from a snapshot directory name."""
    if not name.startswith(SNAPSHOT_PREFIX):
        return None
    try:
        return datetime.strptime(name[len(SNAPSHOT_PREFIX) :], TIMESTAMP_FORMAT)
    except ValueError:
        return None


@dataclass
class Snapshot:
    """Represents a backup snapshot."""

    name: str
    path: Path
    time: Optional[datetime]

    @classmethod
    def from_path(cls, path: Path) -> "Snapshot":
        return cls(name=path.name, path=path, time=parse_snapshot_time(path.name))

    def entries(self) -> List[Path]:
        """Top-level entries held by the snapshot, sorted by name."""
        return sorted(self.path.iterdir(), key=lambda p: p.name)


class BaseEngine(abc.ABC):
    """Base class for backup engines."""

    @abc.abstractmethod
    def init(self) -> bool:
        """Create the backup root and write a fresh metadata record."""
        pass

    @abc.abstractmethod
    def is_initialized(self) -> bool:
        """Return True when the working directory has been initialized."""
        pass

    @abc.abstractmethod
    def metadata(self) -> Optional[Dict[str, str]]:
        """Return the metadata record, or None if there is none."""
        pass

    @abc.abstractmethod
    def backup(self) -> Optional[Snapshot]:
        """
        Create a new backup snapshot.

        Returns:
            The new snapshot if successful, None otherwise
        """
        pass

    @abc.abstractmethod
    def snapshots(self) -> List[Snapshot]:
        """List all snapshots, newest first."""
        pass

    @abc.abstractmethod
    def restore(self, index: int = 0) -> bool:
        """
        Restore the working directory from a snapshot.

        Args:
            index: Position in the newest-first snapshot list (0 = newest)

        Returns:
            True if every entry was restored, False otherwise
        """
        pass

    @abc.abstractmethod
    def remove_all(self) -> bool:
        """
        Delete the backup root with every snapshot and the metadata record.

        Returns:
            True if successful, False otherwise
        """
        pass
