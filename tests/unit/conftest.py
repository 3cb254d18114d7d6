"""
Shared fixtures for the unit tests.
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import List

import pytest

from dotbackup_py.engine.local import LocalEngine
from dotbackup_py.eventlog import EventLog


class RecordingEventLog(EventLog):
    """Keeps events in memory so tests can assert on them."""

    def __init__(self) -> None:
        self.events: List[str] = []

    def record(self, message: str) -> None:
        self.events.append(message)

    def read(self) -> List[str]:
        return list(self.events)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = datetime(2024, 3, 9, 14, 5, 7)) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int = 1) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def event_log() -> RecordingEventLog:
    return RecordingEventLog()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    """A working directory with a couple of files and a nested folder."""
    root = tmp_path / "work"
    root.mkdir()
    (root / "notes.txt").write_text("hello")
    (root / "src").mkdir()
    (root / "src" / "main.py").write_text("print('hi')")
    (root / "src" / "pkg").mkdir()
    (root / "src" / "pkg" / "mod.py").write_text("x = 1")
    return root


@pytest.fixture
def engine(
    workdir: Path, event_log: RecordingEventLog, clock: FakeClock
) -> LocalEngine:
    """An initialized engine over ``workdir``."""
    eng = LocalEngine(workdir, event_log=event_log, clock=clock)
    assert eng.init()
    return eng
