"""
Command-line interface for DotBackup.

This module provides the command-line entry point for the DotBackup backup
application.
"""

import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, Optional

import orjson
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from dotbackup_py import __version__
from dotbackup_py.config import DotbackupConfig
from dotbackup_py.engine.local import LocalEngine
from dotbackup_py.eventlog import EventLog, FileEventLog
from dotbackup_py.metadata import read_metadata_lines
from dotbackup_py.platform import is_windows
from dotbackup_py.scheduler import PeriodicBackup

# Set up the consoles and logger
console = Console()
err_console = Console(stderr=True)
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=err_console, rich_tracebacks=True)],
)
logger = logging.getLogger("dotbackup")

LOG_COPY_NAME = "backup-logs.txt"

# Create the Typer app
app = typer.Typer(
    help="Timestamped snapshots of the current directory in a hidden .backup folder.",
    add_completion=False,
    no_args_is_help=True,
)


@dataclass
class AppState:
    """Per-invocation settings shared by every command."""

    root: Path
    config: DotbackupConfig
    event_log: EventLog
    config_path: Optional[Path] = None

    def engine(self) -> LocalEngine:
        return LocalEngine(
            self.root, event_log=self.event_log, extra_ignores=self.config.exclude
        )


def report_error(state: AppState, message: str) -> None:
    """Print an error for the user and record it in the event log."""
    err_console.print(f"[red]{escape(message)}[/red]")
    state.event_log.error(message)


def require_initialized(state: AppState) -> LocalEngine:
    """Return an engine for the working directory, or exit 1 if uninitialized."""
    engine = state.engine()
    if not engine.is_initialized():
        report_error(
            state,
            "Backup system not initialized. Please run `dotbackup init` first.",
        )
        raise typer.Exit(1)
    return engine


def launch_detached(root: Path, minutes: int, config_path: Optional[Path]) -> int:
    """Start ``dotbackup auto`` in a background process and return its pid."""
    cmd = [sys.executable, "-m", "dotbackup_py", "--workdir", str(root)]
    if config_path:
        cmd.extend(["--config", str(config_path)])
    cmd.extend(["auto", "--min", str(minutes), "--foreground"])

    if is_windows():
        flags = getattr(subprocess, "DETACHED_PROCESS", 0) | getattr(
            subprocess, "CREATE_NEW_PROCESS_GROUP", 0
        )
        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            creationflags=flags,
        )
    else:
        process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    logger.debug(f"Launched detached auto backup: pid {process.pid}")
    return process.pid


def version_callback(value: bool) -> None:
    if value:
        console.print(f"DotBackup version: {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    workdir: Annotated[
        Optional[Path],
        typer.Option(
            "--workdir",
            "-C",
            exists=True,
            file_okay=False,
            dir_okay=True,
            help="Directory to back up and restore into (default: current directory).",
        ),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            help="Path to config file (default: ~/.config/dotbackup/config.yaml).",
        ),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Enable verbose output.")
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "--v",
            callback=version_callback,
            is_eager=True,
            help="Show the application version and exit.",
        ),
    ] = False,
) -> None:
    """
    DotBackup: copy what is here, put it back when you need it.
    """
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    if verbose:
        logger.debug("Verbose logging enabled")

    config = DotbackupConfig.load(config_path)
    event_log = FileEventLog(config.resolve_log_dir())
    root = (workdir or Path.cwd()).resolve()

    ctx.obj = AppState(
        root=root, config=config, event_log=event_log, config_path=config_path
    )
    if ctx.invoked_subcommand:
        event_log.record(f"Ran: {ctx.invoked_subcommand}")


@app.command()
def init(ctx: typer.Context) -> None:
    """
    Initialize the backup system in the working directory.

    Running init again rewrites the metadata record.
    """
    state: AppState = ctx.obj
    engine = state.engine()
    if engine.init():
        typer.echo("Backup system initialized in `.backup/` folder.")
    else:
        report_error(state, "Failed to initialize the backup system.")


@app.command(name="do")
def do_backup(ctx: typer.Context) -> None:
    """
    Create a new backup of the working directory.
    """
    state: AppState = ctx.obj
    engine = require_initialized(state)

    snapshot = engine.backup()
    if snapshot:
        typer.echo(f"Backup saved to: {snapshot.path}")
    else:
        report_error(state, "Backup failed. Run `dotbackup logs` for details.")


@app.command()
def auto(
    ctx: typer.Context,
    minutes: Annotated[
        Optional[int],
        typer.Option(
            "--min",
            min=1,
            help="Minutes between backups (default: auto_interval_minutes).",
        ),
    ] = None,
    foreground: Annotated[
        bool,
        typer.Option(
            "--foreground",
            help="Run in this process until Ctrl+C instead of in the background.",
        ),
    ] = False,
) -> None:
    """
    Back up every N minutes until stopped.

    The loop runs in a detached background process unless --foreground is given.
    """
    state: AppState = ctx.obj
    engine = require_initialized(state)

    interval = minutes or state.config.auto_interval_minutes
    if interval is None:
        report_error(state, "Missing interval. Usage: dotbackup auto --min <N>")
        raise typer.Exit(1)

    if not foreground:
        try:
            pid = launch_detached(state.root, interval, state.config_path)
        except OSError as e:
            report_error(state, f"Failed to start background backups: {e}")
            return
        state.event_log.record(
            f"Started automatic backup every {interval} min (pid {pid})"
        )
        typer.echo(f"Automatic backup every {interval} minutes started (pid {pid}).")
        return

    periodic = PeriodicBackup(engine, interval)
    typer.echo(f"Automatic backup every {interval} minutes. Press Ctrl+C to stop.")
    try:
        periodic.run()
    except KeyboardInterrupt:
        periodic.stop()
        state.event_log.record("Automatic backup stopped")
        typer.echo("Automatic backup stopped.")


@app.command()
def remove(
    ctx: typer.Context,
    all_: Annotated[
        bool, typer.Option("--all", help="Delete every backup and the metadata.")
    ] = False,
) -> None:
    """
    Delete backups. There is no confirmation prompt.
    """
    state: AppState = ctx.obj
    engine = require_initialized(state)

    if not all_:
        report_error(state, "Missing argument. Usage: dotbackup remove --all")
        raise typer.Exit(1)

    if engine.remove_all():
        typer.echo("All backups removed.")
    else:
        report_error(state, "Failed to remove backups.")


@app.command()
def pull(
    ctx: typer.Context,
    last: Annotated[
        bool, typer.Option("--last", help="Restore from the newest backup.")
    ] = False,
    specific: Annotated[
        Optional[int],
        typer.Option(
            "--specific",
            min=0,
            metavar="N",
            help="Restore from the Nth newest backup (0 = newest, 1 = second newest).",
        ),
    ] = None,
) -> None:
    """
    Restore a backup over the working directory.

    Files that are not in the backup are left untouched.
    """
    state: AppState = ctx.obj
    engine = require_initialized(state)

    if last and specific is not None:
        report_error(state, "Use either --last or --specific, not both.")
        raise typer.Exit(1)
    if not last and specific is None:
        report_error(
            state, "Missing argument. Usage: dotbackup pull --last | --specific <N>"
        )
        raise typer.Exit(1)

    index = 0 if last else specific
    assert index is not None

    snapshots = engine.snapshots()
    if not snapshots:
        report_error(state, "No backups found.")
        return
    if index >= len(snapshots):
        report_error(
            state,
            f"Backup index out of range: {index} ({len(snapshots)} backups available).",
        )
        return

    if engine.restore(index):
        typer.echo(f"Restored from backup: {snapshots[index].name}")
    else:
        report_error(
            state,
            f"Restore from {snapshots[index].name} was incomplete. "
            "Run `dotbackup logs` for details.",
        )


@app.command(name="list")
def list_snapshots(
    ctx: typer.Context,
    json_output: Annotated[
        bool, typer.Option("--json", help="Output backups in JSON format.")
    ] = False,
) -> None:
    """
    List available backups, newest first.
    """
    state: AppState = ctx.obj
    engine = require_initialized(state)
    snapshots = engine.snapshots()

    if json_output:
        snapshot_data = [
            {
                "index": index,
                "name": snap.name,
                "time": snap.time.isoformat() if snap.time else None,
                "path": str(snap.path),
            }
            for index, snap in enumerate(snapshots)
        ]
        typer.echo(orjson.dumps(snapshot_data, option=orjson.OPT_INDENT_2).decode())
        return

    if not snapshots:
        typer.echo("No backups found.")
        return

    table = Table(title="Available Backups")
    table.add_column("#", justify="right")
    table.add_column("Name")
    table.add_column("Time")
    table.add_column("Entries", justify="right")

    for index, snap in enumerate(snapshots):
        try:
            entry_count = str(len(snap.entries()))
        except OSError:
            entry_count = "?"
        table.add_row(
            str(index),
            snap.name,
            str(snap.time) if snap.time else "-",
            entry_count,
        )
    console.print(table)


@app.command()
def meta(ctx: typer.Context) -> None:
    """
    Show the backup metadata record.
    """
    state: AppState = ctx.obj
    lines = read_metadata_lines(state.engine().backup_root)
    if lines is None:
        typer.echo("No metadata found. Please run `dotbackup init` first.")
        return

    typer.echo("Backup Meta Information:")
    for line in lines:
        typer.echo(f"  {line}")


@app.command()
def logs(
    ctx: typer.Context,
    copy: Annotated[
        bool,
        typer.Option(
            "--copy", help=f"Copy the log into the working directory ({LOG_COPY_NAME})."
        ),
    ] = False,
) -> None:
    """
    Show the event log.
    """
    state: AppState = ctx.obj
    try:
        lines = state.event_log.read()
    except OSError as e:
        report_error(state, f"Failed to read logs: {e}")
        return

    if copy:
        destination = state.root / LOG_COPY_NAME
        try:
            destination.write_text(
                "".join(f"{line}\n" for line in lines), encoding="utf-8"
            )
        except OSError as e:
            report_error(state, f"Failed to copy logs to {destination}: {e}")
            return
        typer.echo(f"Logs copied to {destination}")
        return

    if not lines:
        typer.echo("No logs yet.")
        return
    for line in lines:
        typer.echo(line)


@app.command(name="help")
def show_help(ctx: typer.Context) -> None:
    """Show available commands."""
    parent = ctx.parent or ctx
    # With rich installed the help is printed directly and "" comes back.
    help_text = parent.get_help()
    if help_text:
        typer.echo(help_text)


@app.command()
def version() -> None:
    """Show the application version and exit."""
    console.print(f"DotBackup version: {__version__}")


if __name__ == "__main__":
    app()
