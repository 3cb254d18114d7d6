"""
Local filesystem engine for DotBackup.

Snapshots are plain directory copies kept under ``<root>/.backup``. Nothing
is locked and nothing is rolled back: a snapshot directory is visible as
soon as it is created and a failed copy leaves whatever was already written.
"""

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from dotbackup_py import metadata as record
from dotbackup_py.engine import BaseEngine, Snapshot, format_timestamp, snapshot_name
from dotbackup_py.eventlog import EventLog, NullEventLog
from dotbackup_py.ignore import IGNORE_FILE_NAME, load_ignore_set

logger = logging.getLogger("dotbackup.engine.local")

BACKUP_DIR_NAME = ".backup"


def _is_tree(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


def _remove(path: Path) -> None:
    if _is_tree(path):
        shutil.rmtree(path)
    else:
        path.unlink()


def copy_entry(source: Path, destination: Path) -> None:
    """
    Copy a file or a directory tree to *destination*, replacing what is there.

    Directory trees are merged into an existing destination directory; a
    destination of the other kind (file vs directory) or any symlink at the
    destination is removed first. Symlinks are copied as links.
    """
    if destination.exists() or destination.is_symlink():
        if (
            _is_tree(source) != _is_tree(destination)
            or source.is_symlink()
            or destination.is_symlink()
        ):
            _remove(destination)

    if _is_tree(source):
        shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
    else:
        shutil.copy2(source, destination, follow_symlinks=False)


class LocalEngine(BaseEngine):
    """Backup engine that copies a working directory into ``.backup``."""

    def __init__(
        self,
        root: Path,
        event_log: Optional[EventLog] = None,
        extra_ignores: Optional[Iterable[str]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the local engine.

        Args:
            root: Working directory that is backed up and restored into
            event_log: Sink for copy, skip and error events
            extra_ignores: Names skipped in addition to ``.backupignore``
            clock: Source of the current time, used to name snapshots
        """
        self.root = Path(root).resolve()
        self.backup_root = self.root / BACKUP_DIR_NAME
        self.event_log = event_log or NullEventLog()
        self.extra_ignores = set(extra_ignores or [])
        self.clock = clock

    def _fail(self, message: str) -> None:
        logger.error(message)
        self.event_log.error(message)

    def init(self) -> bool:
        """Create ``.backup`` and (over)write the metadata record."""
        try:
            self.backup_root.mkdir(parents=True, exist_ok=True)
            record.write_metadata(
                self.backup_root, self.root, format_timestamp(self.clock())
            )
        except OSError as e:
            self._fail(f"Failed to initialize backup system in {self.root}: {e}")
            return False

        logger.info(f"Backup system initialized in {self.backup_root}")
        self.event_log.record(f"Initialized backup system in {self.backup_root}")
        return True

    def is_initialized(self) -> bool:
        return record.is_initialized(self.backup_root)

    def metadata(self) -> Optional[Dict[str, str]]:
        return record.read_metadata(self.backup_root)

    def ignore_set(self) -> Set[str]:
        """Names excluded from the next snapshot."""
        return load_ignore_set(self.root) | self.extra_ignores

    def backup(self) -> Optional[Snapshot]:
        """
        Copy every top-level entry of the working directory into a new snapshot.

        Returns:
            The new snapshot if successful, None otherwise
        """
        target = self.backup_root / snapshot_name(self.clock())
        try:
            ignored = self.ignore_set()
            target.mkdir(parents=True, exist_ok=True)

            for entry in sorted(self.root.iterdir(), key=lambda p: p.name):
                if entry.name == BACKUP_DIR_NAME:
                    continue
                if entry.name in ignored and entry.name != IGNORE_FILE_NAME:
                    logger.debug(f"Skipping ignored entry: {entry.name}")
                    self.event_log.record(f"Skipped (ignored): {entry.name}")
                    continue

                copy_entry(entry, target / entry.name)
                logger.debug(f"Copied {entry.name}")
                self.event_log.record(f"Copied: {entry.name}")
        except OSError as e:
            self._fail(f"Backup to {target} failed: {e}")
            return None

        logger.info(f"Backup saved to {target}")
        self.event_log.record(f"Backup saved to: {target}")
        return Snapshot.from_path(target)

    def snapshots(self) -> List[Snapshot]:
        """
        List snapshot directories, newest first.

        Ordering is by name only; the fixed-width timestamp in each name makes
        that the same as chronological order.
        """
        if not self.backup_root.is_dir():
            return []
        dirs = [p for p in self.backup_root.iterdir() if p.is_dir()]
        dirs.sort(key=lambda p: p.name, reverse=True)
        return [Snapshot.from_path(p) for p in dirs]

    def restore(self, index: int = 0) -> bool:
        """
        Overlay a snapshot onto the working directory.

        Entries that exist only in the working directory are left alone.

        Args:
            index: Position in the newest-first snapshot list (0 = newest)

        Returns:
            True if every entry was restored, False otherwise
        """
        snapshots = self.snapshots()
        if not snapshots:
            self._fail("No backups found.")
            return False
        if index < 0 or index >= len(snapshots):
            self._fail(
                f"Backup index {index} out of range "
                f"({len(snapshots)} backups available)."
            )
            return False

        snapshot = snapshots[index]
        logger.info(f"Restoring from {snapshot.name}")

        try:
            entries = snapshot.entries()
        except OSError as e:
            self._fail(f"Cannot read backup {snapshot.path}: {e}")
            return False

        failures = 0
        for entry in entries:
            try:
                copy_entry(entry, self.root / entry.name)
                self.event_log.record(f"Restored: {entry.name}")
            except OSError as e:
                failures += 1
                self._fail(f"Failed to restore {entry.name}: {e}")

        if failures:
            logger.warning(
                f"Restored from {snapshot.name} with {failures} failed entries"
            )
            return False

        self.event_log.record(f"Restored from backup: {snapshot.path}")
        return True

    def remove_all(self) -> bool:
        """Delete ``.backup`` including every snapshot and the metadata record."""
        if not self.backup_root.exists():
            logger.info("Nothing to remove")
            return True
        try:
            shutil.rmtree(self.backup_root)
        except OSError as e:
            self._fail(f"Failed to remove {self.backup_root}: {e}")
            return False

        logger.info("All backups removed")
        self.event_log.record(f"Removed all backups in {self.backup_root}")
        return True
