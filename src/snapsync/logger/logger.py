"""Main logger module providing public API functions.

- setup_logging(): Configure logging with QueueHandler architecture
- get_logger(): Get or create a logger under the ``snapsync`` root
- flush_all_handlers(): Ensure pending log records are written
- set_console_level() / restore_console_level(): --verbose support
- clear_logger_state(): Reset global logger state for testing
"""

import atexit
import contextlib
import logging
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path

from snapsync.constants import APP_NAME
from snapsync.logger.config import load_log_settings
from snapsync.logger.handlers import setup_root_logger
from snapsync.logger.state import get_state


def flush_all_handlers() -> None:
    """Flush all handlers in the QueueListener to ensure writes complete.

    Waits (up to five seconds) for the queue to drain, then flushes each
    handler. Safe to call from any thread.
    """
    state = get_state()
    if state.queue_listener is not None and state.log_queue is not None:
        timeout = 5.0
        start_time = time.time()
        while not state.log_queue.empty():
            if time.time() - start_time > timeout:
                break
            time.sleep(0.01)

        time.sleep(0.1)

        for handler in state.queue_listener.handlers:
            with contextlib.suppress(OSError, ValueError):
                handler.flush()


def _cleanup_logging() -> None:
    """Stop the QueueListener on interpreter exit."""
    state = get_state()
    if state.queue_listener is not None:
        flush_all_handlers()
        state.queue_listener.stop()
        state.queue_listener = None


atexit.register(_cleanup_logging)


def setup_logging(
    name: str = APP_NAME,
    console_level: str | None = None,
    file_level: str | None = None,
    log_file: Path | None = None,
    enable_file_logging: bool = True,  # noqa: FBT001, FBT002
) -> logging.Logger:
    """Configure logging and return the named logger.

    The root ``snapsync`` logger is initialized exactly once; child loggers
    such as ``snapsync.core.cache`` propagate to it.

    Args:
        name: Logger name, typically __name__ for module-level loggers
        console_level: Console log level ("DEBUG", "INFO", "WARNING")
        file_level: File log level ("DEBUG", "INFO")
        log_file: Path to log file
            (default: ~/.config/snapsync/logs/snapsync.log)
        enable_file_logging: Whether to enable file logging

    Returns:
        Logger instance

    Raises:
        ConfigurationError: If file logging setup fails

    """
    state = get_state()
    with state.lock:
        if not state.root_initialized:
            if console_level is None or file_level is None or log_file is None:
                cfg_console, cfg_file, cfg_path = load_log_settings()
                console_level = console_level or cfg_console
                file_level = file_level or cfg_file
                log_file = log_file or cfg_path

            setup_root_logger(
                state,
                console_level,
                file_level,
                log_file,
                enable_file_logging,
            )

    return logging.getLogger(name)


def get_logger(
    name: str = APP_NAME,
    enable_file_logging: bool = True,  # noqa: FBT001, FBT002
) -> logging.Logger:
    """Get or create logger instance.

    Example:
        >>> from snapsync.logger import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Verifying %d parts", count)

    """
    return setup_logging(
        name=name,
        enable_file_logging=enable_file_logging,
    )


def _console_handler() -> logging.Handler | None:
    state = get_state()
    if state.queue_listener is None:
        return None
    for handler in state.queue_listener.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, RotatingFileHandler
        ):
            return handler
    return None


def set_console_level(level: str) -> None:
    """Temporarily change the console handler level.

    The previous level is remembered for restore_console_level().
    """
    handler = _console_handler()
    if handler is None:
        return
    state = get_state()
    if state.saved_console_level is None:
        state.saved_console_level = handler.level
    handler.setLevel(getattr(logging, level.upper(), logging.DEBUG))


def restore_console_level() -> None:
    """Restore the console level saved by set_console_level()."""
    state = get_state()
    handler = _console_handler()
    if handler is None or state.saved_console_level is None:
        return
    handler.setLevel(state.saved_console_level)
    state.saved_console_level = None


def clear_logger_state() -> None:
    """Clear global logger state for testing purposes.

    Stops the QueueListener, closes handlers, and removes ``snapsync``
    loggers from the logging manager so the next call starts fresh.

    Warning:
        Intended for tests only.

    """
    state = get_state()
    with state.lock:
        if state.queue_listener is not None:
            flush_all_handlers()
            state.queue_listener.stop()
            state.queue_listener = None

        state.log_queue = None
        state.root_initialized = False
        state.config_applied = False
        state.saved_console_level = None

        for logger_name in list(logging.Logger.manager.loggerDict.keys()):
            if logger_name.startswith(APP_NAME):
                log_instance = logging.getLogger(logger_name)
                for handler in log_instance.handlers[:]:
                    handler.close()
                    log_instance.removeHandler(handler)
                if logger_name in logging.Logger.manager.loggerDict:
                    del logging.Logger.manager.loggerDict[logger_name]
