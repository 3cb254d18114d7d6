"""
DotBackup - timestamped snapshots of a working directory in a hidden folder.

Copy what is here, put it back when you need it.
"""

from importlib.metadata import version as _version

__version__ = _version("dotbackup")
