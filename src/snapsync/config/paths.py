"""Path constants and utilities for snapsync configuration."""

import os
from pathlib import Path

from snapsync.constants import (
    CONFIG_DIR_ENV,
    DEFAULT_CONFIG_DIR,
)


class Paths:
    """Application paths and directory structure."""

    HOME_DIR = Path.home()
    CONFIG_DIR = DEFAULT_CONFIG_DIR
    DATA_DIR = HOME_DIR / "snapshots"

    @classmethod
    def config_dir(cls) -> Path:
        """Return the configuration directory, honoring SNAPSYNC_CONFIG_DIR."""
        env_dir = os.getenv(CONFIG_DIR_ENV)
        if env_dir:
            return cls.expand_path(env_dir)
        return cls.CONFIG_DIR

    @classmethod
    def expand_path(cls, path_str: str | Path) -> Path:
        """Expand and resolve path with ~ and relative path support.

        Example:
            >>> Paths.expand_path("~/snapshots")
            Path('/home/user/snapshots')
        """
        return Path(path_str).expanduser().resolve(strict=False)
