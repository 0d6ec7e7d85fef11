"""Application-wide constants for snapsync.

Grouped by concern: persisted state layout, hashing, configuration keys,
logging, and CLI exit codes.
"""

from enum import IntEnum
from pathlib import Path
from typing import Final

# =============================================================================
# Persisted state layout (inside the data directory)
# =============================================================================

CACHE_FILE_NAME: Final = ".checksum_cache.json"
FAILURES_FILE_NAME: Final = ".checksum_failures.txt"
MARKER_FILE_NAME: Final = ".checksums_validated"
MANIFEST_COPY_NAME: Final = ".snapshot_manifest.txt"
LOCK_FILE_NAME: Final = ".snapsync.lock"
LEDGER_SEPARATOR: Final = "|"

# Manifest lines are "<checksum>  <path>"
MANIFEST_FIELD_SEPARATOR: Final = "  "

# =============================================================================
# Hashing
# =============================================================================

HASH_ALGORITHM: Final = "sha256"
HASH_HEX_LENGTH: Final = 64
HASH_CHUNK_SIZE: Final = 1024 * 1024

# =============================================================================
# Configuration
# =============================================================================

APP_NAME: Final = "snapsync"
CONFIG_DIR_ENV: Final = "SNAPSYNC_CONFIG_DIR"
LOG_DIR_ENV: Final = "SNAPSYNC_LOG_DIR"
DEFAULT_CONFIG_DIR: Final = Path.home() / ".config" / APP_NAME
CONFIG_FILE_NAME: Final = "settings.conf"
GLOBAL_CONFIG_VERSION: Final = "1.0.0"

SECTION_DEFAULT: Final = "DEFAULT"
SECTION_NETWORK: Final = "network"
SECTION_SNAPSHOT: Final = "snapshot"
SECTION_DOWNLOADER: Final = "downloader"
SECTION_DIRECTORY: Final = "directory"

KEY_CONFIG_VERSION: Final = "config_version"
KEY_LOG_LEVEL: Final = "log_level"
KEY_CONSOLE_LOG_LEVEL: Final = "console_log_level"
KEY_MAX_WORKERS: Final = "max_workers"
KEY_MAX_ATTEMPTS: Final = "max_attempts"
KEY_RETRY_DELAY: Final = "retry_delay_seconds"

DEFAULT_LOG_LEVEL: Final = "INFO"
DEFAULT_CONSOLE_LOG_LEVEL: Final = "INFO"
DEFAULT_MAX_WORKERS: Final = 0  # 0 means host CPU count
DEFAULT_MAX_ATTEMPTS: Final = 3
DEFAULT_RETRY_DELAY_SECONDS: Final = 10
DEFAULT_RETRY_ATTEMPTS: Final = 3
DEFAULT_TIMEOUT_SECONDS: Final = 10

DEFAULT_BASE_URL: Final = "https://snapshot.arbitrum.foundation"
DEFAULT_CHAIN_NAME: Final = "arb1"
DEFAULT_SNAPSHOT_TYPE: Final = "pruned"

DEFAULT_DOWNLOADER_COMMAND: Final = "aria2c"
DEFAULT_DOWNLOADER_CONNECTIONS: Final = 16
DEFAULT_START_TIMEOUT_SECONDS: Final = 30
DEFAULT_JOB_TIMEOUT_SECONDS: Final = 0  # 0 means no limit
DEFAULT_POLL_INTERVAL_SECONDS: Final = 5

DIRECTORY_KEYS: Final = ("data", "logs")

# =============================================================================
# Logging
# =============================================================================

LOG_ROTATION_THRESHOLD_BYTES: Final = 10 * 1024 * 1024
LOG_BACKUP_COUNT: Final = 5
LOG_FILE_NAME: Final = "snapsync.log"
LOG_CONSOLE_FORMAT: Final = (
    "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
LOG_CONSOLE_DATE_FORMAT: Final = "%H:%M:%S"
LOG_FILE_FORMAT: Final = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[%(funcName)s:%(lineno)d] - %(message)s"
)
LOG_FILE_DATE_FORMAT: Final = "%Y-%m-%d %H:%M:%S"
ISO_DATETIME_FORMAT: Final = "%Y-%m-%d %H:%M:%S"

LOG_COLORS: Final = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
    "RESET": "\033[0m",
}


# =============================================================================
# CLI exit codes
# =============================================================================


class ExitCode(IntEnum):
    """Process exit codes returned by the CLI."""

    OK = 0
    ERROR = 1
    CHECKSUM_FAILED = 2
    EXHAUSTED = 3
    USAGE = 64
    INTERRUPTED = 130
