"""
Configuration file support for DotBackup.

Loads settings from ``~/.config/dotbackup/config.yaml`` (or
``$XDG_CONFIG_HOME/dotbackup/config.yaml``) and exposes them as a typed
dataclass that the CLI can merge with command-line flags.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from dotbackup_py.platform import app_data_dir

logger = logging.getLogger("dotbackup.config")

LOG_DIR_ENV = "DOTBACKUP_LOG_DIR"


def default_config_path() -> Path:
    """Return the default configuration file path.

    Uses ``$XDG_CONFIG_HOME/dotbackup/config.yaml`` when set, otherwise
    falls back to ``~/.config/dotbackup/config.yaml``.
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "dotbackup" / "config.yaml"
    return Path.home() / ".config" / "dotbackup" / "config.yaml"


@dataclass
class DotbackupConfig:
    """Top-level configuration loaded from the YAML file."""

    log_dir: Optional[Path] = None
    auto_interval_minutes: Optional[int] = None
    exclude: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DotbackupConfig":
        """Construct a ``DotbackupConfig`` from a parsed YAML dictionary."""
        if not isinstance(data, dict):
            return cls()

        log_dir = data.get("log_dir")

        interval = data.get("auto_interval_minutes")
        if interval is not None and (
            isinstance(interval, bool) or not isinstance(interval, int) or interval < 1
        ):
            logger.warning("Ignoring invalid auto_interval_minutes: %s", interval)
            interval = None

        exclude = []
        for name in data.get("exclude") or []:
            if not isinstance(name, str) or not name.strip():
                logger.warning("Skipping invalid exclude entry: %s", name)
                continue
            exclude.append(name.strip())

        return cls(
            log_dir=Path(log_dir).expanduser() if log_dir else None,
            auto_interval_minutes=interval,
            exclude=exclude,
        )

    @classmethod
    def from_file(cls, path: Path) -> "DotbackupConfig":
        """Read a YAML file and return a ``DotbackupConfig``.

        Returns an empty default config on any error.
        """
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f.read())
            if data is None:
                return cls()
            return cls.from_dict(data)
        except (IOError, yaml.YAMLError) as e:
            logger.error("Failed to load config from %s: %s", path, e)
            return cls()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "DotbackupConfig":
        """Main entry point: load config from *config_path* or the default location.

        Returns an empty config if the file does not exist.
        """
        path = config_path or default_config_path()
        if not path.exists():
            return cls()
        return cls.from_file(path)

    def resolve_log_dir(self) -> Path:
        """Return the directory that holds the event log.

        ``$DOTBACKUP_LOG_DIR`` wins over ``log_dir`` from the file, which wins
        over the platform application-data directory.
        """
        env_dir = os.environ.get(LOG_DIR_ENV)
        if env_dir:
            return Path(env_dir).expanduser()
        if self.log_dir:
            return self.log_dir
        return app_data_dir()
