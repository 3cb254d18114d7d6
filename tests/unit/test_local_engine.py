"""
Tests for the local filesystem engine.
"""

import os
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from hypothesis import given
from hypothesis import strategies as st

from dotbackup_py.engine import Snapshot, parse_snapshot_time, snapshot_name
from dotbackup_py.engine.local import BACKUP_DIR_NAME, LocalEngine, copy_entry
from dotbackup_py.eventlog import FileEventLog

from .conftest import FakeClock, RecordingEventLog


def test_init_creates_root_and_metadata(workdir: Path, clock: FakeClock) -> None:
    engine = LocalEngine(workdir, clock=clock)
    assert engine.is_initialized() is False

    assert engine.init() is True
    assert (workdir / BACKUP_DIR_NAME).is_dir()
    assert engine.is_initialized() is True

    record = engine.metadata()
    assert record is not None
    assert record["init"] == "True"
    assert record["folder"] == str(workdir.resolve())
    assert record["timestamp"] == "2024-03-09_14-05-07"


def test_init_is_idempotent_and_overwrites(
    engine: LocalEngine, clock: FakeClock
) -> None:
    clock.advance(3600)
    assert engine.init() is True
    record = engine.metadata()
    assert record is not None
    assert record["timestamp"] == "2024-03-09_15-05-07"


def test_init_failure_is_reported(
    workdir: Path, event_log: RecordingEventLog, clock: FakeClock
) -> None:
    (workdir / BACKUP_DIR_NAME).write_text("a file in the way")
    engine = LocalEngine(workdir, event_log=event_log, clock=clock)

    assert engine.init() is False
    assert any(e.startswith("ERROR: Failed to initialize") for e in event_log.events)


def test_backup_copies_tree(engine: LocalEngine, workdir: Path) -> None:
    snapshot = engine.backup()

    assert snapshot is not None
    assert snapshot.name == "Backup_2024-03-09_14-05-07"
    assert snapshot.path == workdir.resolve() / BACKUP_DIR_NAME / snapshot.name
    assert (snapshot.path / "notes.txt").read_text() == "hello"
    assert (snapshot.path / "src" / "pkg" / "mod.py").read_text() == "x = 1"
    assert not (snapshot.path / BACKUP_DIR_NAME).exists()


def test_backup_records_events(
    engine: LocalEngine, event_log: RecordingEventLog
) -> None:
    snapshot = engine.backup()
    assert snapshot is not None
    assert "Copied: notes.txt" in event_log.events
    assert "Copied: src" in event_log.events
    assert event_log.events[-1] == f"Backup saved to: {snapshot.path}"


def test_same_second_backups_collide(engine: LocalEngine, workdir: Path) -> None:
    first = engine.backup()
    (workdir / "notes.txt").write_text("changed")
    second = engine.backup()

    assert first is not None and second is not None
    assert first.name == second.name
    assert len(engine.snapshots()) == 1
    assert (second.path / "notes.txt").read_text() == "changed"


def test_backups_in_different_seconds(engine: LocalEngine, clock: FakeClock) -> None:
    first = engine.backup()
    clock.advance()
    second = engine.backup()

    assert first is not None and second is not None
    assert second.name > first.name
    assert [s.name for s in engine.snapshots()] == [second.name, first.name]


def test_ignored_names_skipped_but_ignore_file_kept(
    engine: LocalEngine, workdir: Path, event_log: RecordingEventLog
) -> None:
    (workdir / "a.txt").write_text("secret")
    (workdir / ".backupignore").write_text("a.txt\n.backupignore\n")

    snapshot = engine.backup()

    assert snapshot is not None
    assert (snapshot.path / ".backupignore").is_file()
    assert not (snapshot.path / "a.txt").exists()
    assert "Skipped (ignored): a.txt" in event_log.events


def test_ignored_directory_children(engine: LocalEngine, workdir: Path) -> None:
    """Listing a directory skips top-level names equal to its children."""
    (workdir / "main.py").write_text("top-level twin of src/main.py")
    (workdir / ".backupignore").write_text("src\n")

    snapshot = engine.backup()

    assert snapshot is not None
    assert not (snapshot.path / "main.py").exists()
    # The directory itself is still copied.
    assert (snapshot.path / "src" / "main.py").exists()


def test_extra_ignores(workdir: Path, clock: FakeClock) -> None:
    engine = LocalEngine(workdir, extra_ignores=["notes.txt"], clock=clock)
    engine.init()
    snapshot = engine.backup()

    assert snapshot is not None
    assert not (snapshot.path / "notes.txt").exists()
    assert (snapshot.path / "src").is_dir()


def test_backup_failure_is_reported(
    engine: LocalEngine, event_log: RecordingEventLog
) -> None:
    with patch(
        "dotbackup_py.engine.local.copy_entry",
        side_effect=PermissionError("Permission denied"),
    ):
        assert engine.backup() is None
    errors = [e for e in event_log.events if e.startswith("ERROR:")]
    assert any("Permission denied" in e for e in errors)
    # The partial snapshot directory is left in place.
    assert len(engine.snapshots()) == 1


def test_backup_with_undecodable_file_name(
    workdir: Path, clock: FakeClock, tmp_path: Path
) -> None:
    """A name that is not valid UTF-8 is copied and still reaches the log."""
    bad_name = os.fsdecode(b"bad\xff.txt")
    (workdir / bad_name).write_text("bytes")
    event_log = FileEventLog(tmp_path / "logs")
    engine = LocalEngine(workdir, event_log=event_log, clock=clock)
    assert engine.init()

    snapshot = engine.backup()

    assert snapshot is not None
    assert (snapshot.path / bad_name).read_text() == "bytes"
    lines = event_log.read()
    assert any("Copied: bad\\udcff.txt" in line for line in lines)


def test_snapshots_empty_without_root(workdir: Path) -> None:
    assert LocalEngine(workdir).snapshots() == []


def test_snapshots_sorted_newest_first(engine: LocalEngine, workdir: Path) -> None:
    backup_root = workdir / BACKUP_DIR_NAME
    for name in (
        "Backup_2023-12-31_23-59-59",
        "Backup_2024-01-10_08-00-00",
        "Backup_2024-01-02_08-00-00",
    ):
        (backup_root / name).mkdir()

    names = [s.name for s in engine.snapshots()]

    assert names == [
        "Backup_2024-01-10_08-00-00",
        "Backup_2024-01-02_08-00-00",
        "Backup_2023-12-31_23-59-59",
    ]


def test_restore_latest_overlays(
    engine: LocalEngine, workdir: Path, clock: FakeClock
) -> None:
    engine.backup()
    clock.advance()
    (workdir / "notes.txt").write_text("second version")
    engine.backup()

    (workdir / "notes.txt").write_text("edited after backups")
    (workdir / "src" / "main.py").unlink()
    (workdir / "untracked.txt").write_text("keep me")

    assert engine.restore(0) is True
    assert (workdir / "notes.txt").read_text() == "second version"
    assert (workdir / "src" / "main.py").exists()
    assert (workdir / "untracked.txt").read_text() == "keep me"


def test_restore_specific_index(
    engine: LocalEngine, workdir: Path, clock: FakeClock
) -> None:
    engine.backup()
    clock.advance()
    (workdir / "notes.txt").write_text("second version")
    engine.backup()

    assert engine.restore(1) is True
    assert (workdir / "notes.txt").read_text() == "hello"


def test_restore_out_of_range(
    engine: LocalEngine, workdir: Path, event_log: RecordingEventLog
) -> None:
    engine.backup()
    (workdir / "notes.txt").write_text("unchanged")

    assert engine.restore(1) is False
    assert engine.restore(-1) is False
    assert (workdir / "notes.txt").read_text() == "unchanged"
    assert any("out of range" in e for e in event_log.events)


def test_restore_without_snapshots(
    engine: LocalEngine, event_log: RecordingEventLog
) -> None:
    assert engine.restore(0) is False
    assert "ERROR: No backups found." in event_log.events


def test_restore_partial_failure(
    engine: LocalEngine, workdir: Path, event_log: RecordingEventLog
) -> None:
    engine.backup()
    (workdir / "notes.txt").write_text("edited")

    def flaky_copy(source: Path, destination: Path) -> None:
        if source.name == "src":
            raise PermissionError("Permission denied")
        copy_entry(source, destination)

    with patch("dotbackup_py.engine.local.copy_entry", side_effect=flaky_copy):
        assert engine.restore(0) is False

    assert (workdir / "notes.txt").read_text() == "hello"
    assert any(e.startswith("ERROR: Failed to restore src") for e in event_log.events)


def test_remove_all(engine: LocalEngine, workdir: Path) -> None:
    engine.backup()
    assert engine.remove_all() is True
    assert not (workdir / BACKUP_DIR_NAME).exists()
    assert engine.metadata() is None
    assert engine.is_initialized() is False
    assert (workdir / "notes.txt").exists()


def test_remove_all_without_root(workdir: Path) -> None:
    assert LocalEngine(workdir).remove_all() is True


class TestCopyEntry:
    def test_file_overwrites(self, tmp_path: Path) -> None:
        (tmp_path / "src.txt").write_text("new")
        (tmp_path / "dst.txt").write_text("old")
        copy_entry(tmp_path / "src.txt", tmp_path / "dst.txt")
        assert (tmp_path / "dst.txt").read_text() == "new"

    def test_directory_merges(self, tmp_path: Path) -> None:
        source = tmp_path / "source"
        source.mkdir()
        (source / "a.txt").write_text("from source")
        destination = tmp_path / "destination"
        destination.mkdir()
        (destination / "a.txt").write_text("stale")
        (destination / "b.txt").write_text("only here")

        copy_entry(source, destination)

        assert (destination / "a.txt").read_text() == "from source"
        assert (destination / "b.txt").read_text() == "only here"

    def test_directory_replaces_file(self, tmp_path: Path) -> None:
        source = tmp_path / "source"
        source.mkdir()
        (source / "a.txt").write_text("x")
        (tmp_path / "destination").write_text("a file")

        copy_entry(source, tmp_path / "destination")

        assert (tmp_path / "destination" / "a.txt").read_text() == "x"

    def test_file_replaces_directory(self, tmp_path: Path) -> None:
        (tmp_path / "source").write_text("a file")
        (tmp_path / "destination").mkdir()
        (tmp_path / "destination" / "inner").write_text("x")

        copy_entry(tmp_path / "source", tmp_path / "destination")

        assert (tmp_path / "destination").read_text() == "a file"


def test_parse_snapshot_time() -> None:
    assert parse_snapshot_time("Backup_2024-03-09_14-05-07") == datetime(
        2024, 3, 9, 14, 5, 7
    )
    assert parse_snapshot_time("Backup_garbage") is None
    assert parse_snapshot_time("notes") is None


def test_snapshot_from_path(tmp_path: Path) -> None:
    snap = Snapshot.from_path(tmp_path / "Backup_2024-03-09_14-05-07")
    assert snap.time == datetime(2024, 3, 9, 14, 5, 7)
    assert snap.name == "Backup_2024-03-09_14-05-07"


moments = st.datetimes(
    min_value=datetime(1970, 1, 1), max_value=datetime(9999, 12, 31, 23, 59, 59)
)


@given(moments, moments)
def test_name_order_matches_time_order(a: datetime, b: datetime) -> None:
    """Lexicographic order of snapshot names is chronological order."""
    a, b = a.replace(microsecond=0), b.replace(microsecond=0)
    name_a, name_b = snapshot_name(a), snapshot_name(b)

    assert (name_a < name_b) == (a < b)
    assert (name_a == name_b) == (a == b)
    assert parse_snapshot_time(name_a) == a
