"""
Event log for DotBackup.

Every command, copy, skip and error is appended as a timestamped line to a
log file that lives outside the working directory. Engines receive the log
as an ``EventLog`` so callers can swap in their own sink.
"""

import abc
import logging
from datetime import datetime
from pathlib import Path
from typing import List

logger = logging.getLogger("dotbackup.eventlog")

LOG_FILE_NAME = ".backup-logs"
LINE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class EventLog(abc.ABC):
    """Append-only sink for backup events."""

    @abc.abstractmethod
    def record(self, message: str) -> None:
        """Append *message* to the log. Must never raise."""
        pass

    @abc.abstractmethod
    def read(self) -> List[str]:
        """Return every recorded line, oldest first."""
        pass

    def error(self, message: str) -> None:
        """Record an ``ERROR:`` event."""
        self.record(f"ERROR: {message}")


class FileEventLog(EventLog):
    """Event log backed by ``<log_dir>/.backup-logs``."""

    def __init__(self, log_dir: Path):
        self.log_dir = log_dir
        self.path = log_dir / LOG_FILE_NAME

    def record(self, message: str) -> None:
        line = f"[{datetime.now().strftime(LINE_TIME_FORMAT)}] {message}\n"
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with open(
                self.path, "a", encoding="utf-8", errors="backslashreplace"
            ) as f:
                f.write(line)
        except (OSError, ValueError) as e:
            # Best effort; a broken log never interrupts a backup.
            logger.debug(f"Could not write event log {self.path}: {e}")

    def read(self) -> List[str]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8", errors="replace") as f:
            return f.read().splitlines()


class NullEventLog(EventLog):
    """Discards every event."""

    def record(self, message: str) -> None:
        pass

    def read(self) -> List[str]:
        return []
