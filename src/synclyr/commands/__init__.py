"""Command groups for the SYNCLYR CLI.

This package provides the commands and sub-apps mounted by synclyr.cli.
"""

from . import config as config  # noqa: F401
from . import diag as diag  # noqa: F401
from . import lidarr as lidarr  # noqa: F401
from . import sync as sync  # noqa: F401

__all__ = [
    "sync",
    "lidarr",
    "diag",
    "config",
]
