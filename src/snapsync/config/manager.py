"""Global configuration manager for INI settings."""

import configparser
import logging
from pathlib import Path

from snapsync.config.parser import (
    CommentAwareConfigParser,
    ConfigCommentManager,
)
from snapsync.config.paths import Paths
from snapsync.constants import (
    CONFIG_FILE_NAME,
    DEFAULT_BASE_URL,
    DEFAULT_CHAIN_NAME,
    DEFAULT_CONSOLE_LOG_LEVEL,
    DEFAULT_DOWNLOADER_COMMAND,
    DEFAULT_DOWNLOADER_CONNECTIONS,
    DEFAULT_JOB_TIMEOUT_SECONDS,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_MAX_WORKERS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_DELAY_SECONDS,
    DEFAULT_SNAPSHOT_TYPE,
    DEFAULT_START_TIMEOUT_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DIRECTORY_KEYS,
    GLOBAL_CONFIG_VERSION,
    KEY_CONFIG_VERSION,
    KEY_CONSOLE_LOG_LEVEL,
    KEY_LOG_LEVEL,
    KEY_MAX_ATTEMPTS,
    KEY_MAX_WORKERS,
    KEY_RETRY_DELAY,
    SECTION_DEFAULT,
    SECTION_DIRECTORY,
    SECTION_DOWNLOADER,
    SECTION_NETWORK,
    SECTION_SNAPSHOT,
)
from snapsync.domain.types import (
    DirectoryConfig,
    DownloaderConfig,
    GlobalConfig,
    NetworkConfig,
    SnapshotConfig,
)

logger = logging.getLogger(__name__)

# Type alias for raw INI config dictionary
RawConfigDict = dict[str, str | dict[str, str]]

_VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigManager:
    """Manages the global INI configuration."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize config manager.

        Args:
            config_dir: Configuration directory path
                (defaults to Paths.config_dir())

        """
        self.config_dir = config_dir or Paths.config_dir()
        self.settings_file = self.config_dir / CONFIG_FILE_NAME

    def get_default_global_config(self) -> RawConfigDict:
        """Get default global configuration values."""
        return {
            KEY_CONFIG_VERSION: GLOBAL_CONFIG_VERSION,
            KEY_LOG_LEVEL: DEFAULT_LOG_LEVEL,
            KEY_CONSOLE_LOG_LEVEL: DEFAULT_CONSOLE_LOG_LEVEL,
            KEY_MAX_WORKERS: str(DEFAULT_MAX_WORKERS),
            KEY_MAX_ATTEMPTS: str(DEFAULT_MAX_ATTEMPTS),
            KEY_RETRY_DELAY: str(DEFAULT_RETRY_DELAY_SECONDS),
            SECTION_NETWORK: {
                "retry_attempts": str(DEFAULT_RETRY_ATTEMPTS),
                "timeout_seconds": str(DEFAULT_TIMEOUT_SECONDS),
            },
            SECTION_SNAPSHOT: {
                "base_url": DEFAULT_BASE_URL,
                "chain_name": DEFAULT_CHAIN_NAME,
                "snapshot_type": DEFAULT_SNAPSHOT_TYPE,
            },
            SECTION_DOWNLOADER: {
                "command": DEFAULT_DOWNLOADER_COMMAND,
                "connections": str(DEFAULT_DOWNLOADER_CONNECTIONS),
                "start_timeout_seconds": str(DEFAULT_START_TIMEOUT_SECONDS),
                "job_timeout_seconds": str(DEFAULT_JOB_TIMEOUT_SECONDS),
                "poll_interval_seconds": str(DEFAULT_POLL_INTERVAL_SECONDS),
            },
            SECTION_DIRECTORY: {
                "data": str(Paths.DATA_DIR),
                "logs": str(self.config_dir / "logs"),
            },
        }

    def _create_config_from_defaults(
        self, defaults: RawConfigDict
    ) -> configparser.ConfigParser:
        """Create ConfigParser populated with defaults."""
        config = CommentAwareConfigParser()

        flat_defaults = {
            key: str(value)
            for key, value in defaults.items()
            if not isinstance(value, dict)
        }
        config.read_dict({SECTION_DEFAULT: flat_defaults})

        for key, value in defaults.items():
            if isinstance(value, dict):
                config.add_section(key)
                for subkey, subvalue in value.items():
                    config.set(key, subkey, str(subvalue))

        return config

    def load_global_config(self) -> GlobalConfig:
        """Load global configuration from INI file.

        Creates settings.conf with defaults when it does not exist. A file
        that cannot be parsed is reported and defaults are used instead.
        """
        defaults = self.get_default_global_config()
        config = self._create_config_from_defaults(defaults)

        if self.settings_file.exists():
            try:
                config.read(self.settings_file, encoding="utf-8")
            except configparser.Error as e:
                logger.warning(
                    "Invalid configuration file %s, using defaults: %s",
                    self.settings_file,
                    e,
                )
                config = self._create_config_from_defaults(defaults)
        else:
            try:
                self.save_global_config(self._convert_to_global_config(config))
            except OSError as e:
                logger.warning(
                    "Could not create configuration file %s: %s",
                    self.settings_file,
                    e,
                )

        return self._convert_to_global_config(config)

    def save_global_config(self, config: GlobalConfig) -> None:
        """Save global configuration to INI file with comments."""
        comment_manager = ConfigCommentManager()
        section_comments = comment_manager.get_section_comments()
        key_comments = comment_manager.get_key_comments()

        sections: dict[str, dict[str, str]] = {
            SECTION_DEFAULT: {
                KEY_CONFIG_VERSION: config["config_version"],
                KEY_LOG_LEVEL: config["log_level"],
                KEY_CONSOLE_LOG_LEVEL: config["console_log_level"],
                KEY_MAX_WORKERS: str(config["max_workers"]),
                KEY_MAX_ATTEMPTS: str(config["max_attempts"]),
                KEY_RETRY_DELAY: str(config["retry_delay_seconds"]),
            },
            SECTION_NETWORK: {
                key: str(value) for key, value in config["network"].items()
            },
            SECTION_SNAPSHOT: {
                key: str(value) for key, value in config["snapshot"].items()
            },
            SECTION_DOWNLOADER: {
                key: str(value) for key, value in config["downloader"].items()
            },
            SECTION_DIRECTORY: {
                key: str(path) for key, path in config["directory"].items()
            },
        }

        self.config_dir.mkdir(parents=True, exist_ok=True)
        with self.settings_file.open("w", encoding="utf-8") as f:
            f.write(comment_manager.get_file_header())
            for section, values in sections.items():
                f.write(section_comments[section])
                f.write(f"[{section}]\n")
                for key, value in values.items():
                    inline_comment = key_comments.get(section, {}).get(key, "")
                    if inline_comment:
                        f.write(f"{key} = {value}  {inline_comment}\n")
                    else:
                        f.write(f"{key} = {value}\n")

    def ensure_directories_from_config(self, config: GlobalConfig) -> None:
        """Ensure all directories from config exist.

        Raises:
            ValueError: If a configured path is a file

        """
        for key, directory in config["directory"].items():
            if directory.exists() and directory.is_file():
                msg = (
                    f"Configured {key} path '{directory}' is a file, "
                    "not a directory"
                )
                raise ValueError(msg)
            directory.mkdir(parents=True, exist_ok=True)

    def _convert_to_global_config(
        self, config: configparser.ConfigParser
    ) -> GlobalConfig:
        """Convert a populated ConfigParser into a typed GlobalConfig."""

        def get_int(section: str, key: str, default: int, minimum: int) -> int:
            raw = config.get(section, key, fallback=str(default))
            try:
                value = int(raw)
            except ValueError:
                logger.warning(
                    "Invalid integer for %s.%s: %r, using %d",
                    section,
                    key,
                    raw,
                    default,
                )
                return default
            if value < minimum:
                logger.warning(
                    "%s.%s must be >= %d, using %d",
                    section,
                    key,
                    minimum,
                    default,
                )
                return default
            return value

        def get_level(key: str, default: str) -> str:
            raw = config.get(SECTION_DEFAULT, key, fallback=default).upper()
            if raw not in _VALID_LEVELS:
                logger.warning(
                    "Invalid log level for %s: %r, using %s", key, raw, default
                )
                return default
            return raw

        directory = {
            key: Paths.expand_path(config.get(SECTION_DIRECTORY, key))
            for key in DIRECTORY_KEYS
            if config.has_option(SECTION_DIRECTORY, key)
        }

        return GlobalConfig(
            config_version=config.get(
                SECTION_DEFAULT,
                KEY_CONFIG_VERSION,
                fallback=GLOBAL_CONFIG_VERSION,
            ),
            log_level=get_level(KEY_LOG_LEVEL, DEFAULT_LOG_LEVEL),
            console_log_level=get_level(
                KEY_CONSOLE_LOG_LEVEL, DEFAULT_CONSOLE_LOG_LEVEL
            ),
            max_workers=get_int(
                SECTION_DEFAULT, KEY_MAX_WORKERS, DEFAULT_MAX_WORKERS, 0
            ),
            max_attempts=get_int(
                SECTION_DEFAULT, KEY_MAX_ATTEMPTS, DEFAULT_MAX_ATTEMPTS, 1
            ),
            retry_delay_seconds=get_int(
                SECTION_DEFAULT,
                KEY_RETRY_DELAY,
                DEFAULT_RETRY_DELAY_SECONDS,
                0,
            ),
            network=NetworkConfig(
                retry_attempts=get_int(
                    SECTION_NETWORK,
                    "retry_attempts",
                    DEFAULT_RETRY_ATTEMPTS,
                    1,
                ),
                timeout_seconds=get_int(
                    SECTION_NETWORK,
                    "timeout_seconds",
                    DEFAULT_TIMEOUT_SECONDS,
                    1,
                ),
            ),
            snapshot=SnapshotConfig(
                base_url=config.get(
                    SECTION_SNAPSHOT, "base_url", fallback=DEFAULT_BASE_URL
                ).rstrip("/"),
                chain_name=config.get(
                    SECTION_SNAPSHOT, "chain_name", fallback=DEFAULT_CHAIN_NAME
                ),
                snapshot_type=config.get(
                    SECTION_SNAPSHOT,
                    "snapshot_type",
                    fallback=DEFAULT_SNAPSHOT_TYPE,
                ),
            ),
            downloader=DownloaderConfig(
                command=config.get(
                    SECTION_DOWNLOADER,
                    "command",
                    fallback=DEFAULT_DOWNLOADER_COMMAND,
                ),
                connections=get_int(
                    SECTION_DOWNLOADER,
                    "connections",
                    DEFAULT_DOWNLOADER_CONNECTIONS,
                    1,
                ),
                start_timeout_seconds=get_int(
                    SECTION_DOWNLOADER,
                    "start_timeout_seconds",
                    DEFAULT_START_TIMEOUT_SECONDS,
                    1,
                ),
                job_timeout_seconds=get_int(
                    SECTION_DOWNLOADER,
                    "job_timeout_seconds",
                    DEFAULT_JOB_TIMEOUT_SECONDS,
                    0,
                ),
                poll_interval_seconds=get_int(
                    SECTION_DOWNLOADER,
                    "poll_interval_seconds",
                    DEFAULT_POLL_INTERVAL_SECONDS,
                    1,
                ),
            ),
            directory=DirectoryConfig(
                data=directory.get("data", Paths.DATA_DIR),
                logs=directory.get("logs", self.config_dir / "logs"),
            ),
        )
