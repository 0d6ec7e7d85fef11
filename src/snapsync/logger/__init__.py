"""Logging utilities for snapsync.

Architecture:
    Application → QueueHandler → Queue → QueueListener Thread
                                              ↓
                                    Console + File Handlers

Hashing runs in worker threads and downloads run on the event loop; the
queue keeps both from blocking on handler I/O.

Usage:
    >>> from snapsync.logger import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Verifying %s", filename)  # Use %-style formatting

Environment Variables:
    SNAPSYNC_LOG_DIR: Override the log file directory (used by tests).

Rules:
    1. Always use: logger = get_logger(__name__)
    2. Never call logging.basicConfig()
    3. Never attach handlers to child loggers
    4. Never use f-strings in log calls
"""

from snapsync.logger.config import (
    update_logger_from_config as _update_config,
)
from snapsync.logger.formatters import (
    ColoredConsoleFormatter,
    HybridConsoleFormatter,
    SimpleConsoleFormatter,
)
from snapsync.logger.handlers import ConfigurationError
from snapsync.logger.logger import (
    clear_logger_state,
    flush_all_handlers,
    get_logger,
    restore_console_level,
    set_console_level,
    setup_logging,
)
from snapsync.logger.state import get_state

__all__ = [
    "ColoredConsoleFormatter",
    "ConfigurationError",
    "HybridConsoleFormatter",
    "SimpleConsoleFormatter",
    "clear_logger_state",
    "flush_all_handlers",
    "get_logger",
    "restore_console_level",
    "set_console_level",
    "setup_logging",
    "update_logger_from_config",
]


def update_logger_from_config(config=None) -> None:
    """Update logger handler levels and log directory from global config.

    Args:
        config: Already loaded GlobalConfig; read from disk when omitted.

    """
    _update_config(get_state(), config)
