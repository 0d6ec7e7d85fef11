"""Pytest configuration and fixtures for snapsync tests."""

import logging
import os
import tempfile

import pytest

# Keep test runs out of the user's real log directory. Must happen before
# the first snapsync logger is created.
os.environ.setdefault(
    "SNAPSYNC_LOG_DIR", tempfile.mkdtemp(prefix="snapsync-test-logs-")
)


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Enable log propagation for all loggers during tests.

    This allows pytest's caplog fixture to capture logs from all loggers,
    even those created with propagate=False in production code.
    """
    original_propagation = {}
    for name in list(logging.Logger.manager.loggerDict.keys()):
        if name.startswith("snapsync"):
            logger = logging.getLogger(name)
            original_propagation[name] = logger.propagate
            logger.propagate = True

    yield

    for name, propagate_value in original_propagation.items():
        logger = logging.getLogger(name)
        logger.propagate = propagate_value


@pytest.fixture
def isolated_config_dir(tmp_path, monkeypatch):
    """Point SNAPSYNC_CONFIG_DIR at a temporary directory."""
    config_dir = tmp_path / "config"
    monkeypatch.setenv("SNAPSYNC_CONFIG_DIR", str(config_dir))
    return config_dir
