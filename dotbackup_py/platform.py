"""
Platform detection helpers for DotBackup.

Centralizes Windows, macOS and Linux differences so the rest of the codebase
can call simple functions instead of scattering ``sys.platform`` checks.
"""

import os
import sys
from pathlib import Path


def is_macos() -> bool:
    """Return True when running on macOS."""
    return sys.platform == "darwin"


def is_linux() -> bool:
    """Return True when running on Linux."""
    return sys.platform.startswith("linux")


def is_windows() -> bool:
    """Return True when running on Windows."""
    return sys.platform.startswith("win")


def app_data_dir() -> Path:
    """Return the platform-appropriate application-data directory.

    ``%APPDATA%\\dotbackup`` on Windows,
    ``~/Library/Application Support/dotbackup`` on macOS and
    ``$XDG_DATA_HOME/dotbackup`` (default ``~/.local/share/dotbackup``)
    everywhere else.
    """
    if is_windows():
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / "dotbackup"
        return Path.home() / "AppData" / "Roaming" / "dotbackup"
    if is_macos():
        return Path.home() / "Library" / "Application Support" / "dotbackup"
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "dotbackup"
    return Path.home() / ".local" / "share" / "dotbackup"
