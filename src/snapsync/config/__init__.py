"""Configuration management.

- ConfigManager: settings.conf loading and saving
- Paths: Path constants and utilities
- Parser utilities: INI parser helpers
"""

from snapsync.config.manager import ConfigManager
from snapsync.config.parser import (
    CommentAwareConfigParser,
    ConfigCommentManager,
)
from snapsync.config.paths import Paths
from snapsync.domain.types import GlobalConfig

__all__ = [
    "CommentAwareConfigParser",
    "ConfigCommentManager",
    "ConfigManager",
    "GlobalConfig",
    "Paths",
]
