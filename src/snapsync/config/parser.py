"""INI parser utilities for snapsync configuration.

Helpers for reading values with inline comments and for writing a
self-documenting settings.conf.
"""

import configparser
from datetime import UTC, datetime
from typing import Any

from snapsync.constants import (
    GLOBAL_CONFIG_VERSION,
    ISO_DATETIME_FORMAT,
    KEY_CONFIG_VERSION,
    SECTION_DEFAULT,
    SECTION_DIRECTORY,
    SECTION_DOWNLOADER,
    SECTION_NETWORK,
    SECTION_SNAPSHOT,
)


def _strip_inline_comment(value: str) -> str:
    """Strip inline comments (anything after '  #') from a value."""
    if "  #" in value:
        return value.split("  #")[0].strip()
    return value


class CommentAwareConfigParser(configparser.ConfigParser):
    """ConfigParser that strips inline comments when reading values."""

    def __init__(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Create parser with inline comments and no interpolation."""
        kwargs.setdefault("inline_comment_prefixes", ("#", ";"))
        kwargs.setdefault("interpolation", None)
        super().__init__(**kwargs)

    def get(  # type: ignore[override]
        self,
        section: str,
        option: str,
        **kwargs: Any,  # noqa: ANN401
    ) -> str:
        """Get a configuration value with inline comments stripped."""
        value = super().get(section, option, **kwargs)
        return _strip_inline_comment(value)


class ConfigCommentManager:
    """Manages configuration file comments for user-friendly documentation."""

    @staticmethod
    def get_file_header() -> str:
        """Generate file header comment with description and timestamp."""
        timestamp = datetime.now(tz=UTC).strftime(ISO_DATETIME_FORMAT)
        return f"""# snapsync Configuration
# Settings for snapshot download and checksum verification.
#
# Last updated: {timestamp}
# Configuration version: {GLOBAL_CONFIG_VERSION}

"""

    @staticmethod
    def get_section_comments() -> dict[str, str]:
        """Get comments for each configuration section."""
        return {
            SECTION_DEFAULT: """# ========================================
# MAIN CONFIGURATION
# ========================================
# config_version: Version of configuration format (DO NOT EDIT)
# log_level: Detail level for log files (DEBUG, INFO, WARNING, ERROR)
# console_log_level: Console output detail level
# max_workers: Parallel hash workers (0 = number of CPUs)
# max_attempts: Redownload attempts for failed parts
# retry_delay_seconds: Pause between redownload attempts

""",
            SECTION_NETWORK: """
# ========================================
# NETWORK CONFIGURATION
# ========================================
# retry_attempts: Manifest fetch retries
# timeout_seconds: Seconds before a manifest request times out

""",
            SECTION_SNAPSHOT: """
# ========================================
# SNAPSHOT SOURCE
# ========================================
# base_url: Snapshot host
# chain_name: Chain directory on the snapshot host
# snapshot_type: Snapshot flavor (pruned, archive, ...)

""",
            SECTION_DOWNLOADER: """
# ========================================
# BULK DOWNLOADER
# ========================================
# command: Download tool executable (aria2c compatible)
# connections: Connections per server
# start_timeout_seconds: Max wait for the tool to start
# job_timeout_seconds: Max job duration (0 = unlimited)
# poll_interval_seconds: Liveness check interval

""",
            SECTION_DIRECTORY: """
# ========================================
# DIRECTORY PATHS
# ========================================
# data: Where snapshot parts and validation state live
# logs: Log files location

""",
        }

    @staticmethod
    def get_key_comments() -> dict[str, dict[str, str]]:
        """Get inline comments for specific configuration keys."""
        return {
            SECTION_DEFAULT: {
                KEY_CONFIG_VERSION: "# DO NOT MODIFY - Config format version",
            },
        }
