"""Configuration loading and updating for logging system.

Bootstrap defaults are used while the config module is not yet loaded;
update_logger_from_config() applies settings.conf levels and the
[directory] logs location afterwards.
"""

import logging
import os
from logging.handlers import QueueListener, RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

from snapsync.constants import (
    DEFAULT_CONFIG_DIR,
    DEFAULT_LOG_LEVEL,
    LOG_DIR_ENV,
    LOG_FILE_NAME,
)
from snapsync.logger.handlers import ConfigurationError, _create_file_handler

if TYPE_CHECKING:
    from snapsync.domain.types import GlobalConfig
    from snapsync.logger.state import _LoggerState


def load_log_settings() -> tuple[str, str, Path]:
    """Load default console level, file level, and file path.

    Environment Variable Override:
        SNAPSYNC_LOG_DIR: Overrides the log directory path. Tests set this
        so they never write to the user's real log directory.

    Returns:
        Tuple of (console_level, file_level, log_path)

    """
    default_console_level = "WARNING"
    default_file_level = DEFAULT_LOG_LEVEL

    env_log_dir = os.getenv(LOG_DIR_ENV)
    if env_log_dir:
        default_path = Path(env_log_dir).expanduser() / LOG_FILE_NAME
    else:
        default_path = DEFAULT_CONFIG_DIR / "logs" / LOG_FILE_NAME

    return default_console_level, default_file_level, default_path


def apply_levels(
    state: "_LoggerState", console_level: str, file_level: str
) -> None:
    """Set handler levels on the running QueueListener.

    Only updates handler levels, never adds or removes handlers.
    """
    console = getattr(logging, console_level.upper(), logging.INFO)
    file = getattr(logging, file_level.upper(), logging.INFO)

    if state.queue_listener is None:
        return
    for handler in state.queue_listener.handlers:
        if isinstance(handler, RotatingFileHandler):
            handler.setLevel(file)
        elif isinstance(handler, logging.StreamHandler):
            handler.setLevel(console)


def relocate_log_file(state: "_LoggerState", log_dir: Path) -> bool:
    """Move file logging into ``log_dir``.

    The QueueListener is restarted with a new rotating file handler; the
    console handler and the queue itself are kept.

    Returns:
        True if the file handler was replaced

    Raises:
        ConfigurationError: If the new log file cannot be opened

    """
    listener = state.queue_listener
    if listener is None or state.log_queue is None:
        return False

    log_file = Path(log_dir).expanduser() / LOG_FILE_NAME
    handlers = list(listener.handlers)
    for index, handler in enumerate(handlers):
        if not isinstance(handler, RotatingFileHandler):
            continue
        if Path(handler.baseFilename) == log_file.absolute():
            return False

        new_handler = _create_file_handler(
            log_file, logging.getLevelName(handler.level)
        )
        listener.stop()
        handler.close()
        handlers[index] = new_handler
        state.queue_listener = QueueListener(
            state.log_queue,
            *handlers,
            respect_handler_level=True,
        )
        state.queue_listener.start()
        return True
    return False


def update_logger_from_config(
    state: "_LoggerState", config: "GlobalConfig | None" = None
) -> None:
    """Update logger handler levels and log directory from global config.

    Args:
        state: Logger state object (from logger.state module)
        config: Already loaded configuration. Loaded from disk when None.

    Note:
        Errors while loading the config are ignored so that logging setup
        never breaks application startup.

    """
    try:
        if config is None:
            # Import here to avoid circular dependency
            from snapsync.config import ConfigManager  # noqa: PLC0415

            config = ConfigManager().load_global_config()

        apply_levels(
            state,
            config.get("console_log_level", "INFO"),
            config.get("log_level", "INFO"),
        )
        # SNAPSYNC_LOG_DIR wins over the configured directory
        if not os.getenv(LOG_DIR_ENV):
            relocate_log_file(state, config["directory"]["logs"])
        state.config_applied = True

    except ConfigurationError as e:
        logging.getLogger(__name__).warning("%s", e)
    except (ImportError, KeyError, AttributeError, OSError):
        pass
