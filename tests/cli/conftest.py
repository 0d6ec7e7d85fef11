"""Fixtures for CLI tests: isolated config and an in-process downloader."""

import hashlib
from pathlib import Path

import pytest

from snapsync.cli.runner import CLIRunner
from snapsync.config import ConfigManager

PARTS = {
    "pruned.tar.part1": b"first part " * 20,
    "pruned.tar.part2": b"second part " * 20,
}


class InProcessDownloader:
    """Writes canned bytes instead of running aria2c."""

    def __init__(self, data_dir: Path, contents: dict[str, bytes]) -> None:
        self.data_dir = data_dir
        self.contents = contents
        self.jobs: list[str] = []

    async def download(self, entries, job_name):
        self.jobs.append(job_name)
        for entry in entries:
            target = self.data_dir / entry.filename
            target.write_bytes(self.contents[entry.filename])


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Provide the data directory passed with --dir."""
    path = tmp_path / "snapshots"
    path.mkdir()
    return path


@pytest.fixture
def manifest_text() -> str:
    """Manifest text describing PARTS."""
    return "".join(
        f"{hashlib.sha256(content).hexdigest()}  2024-06-01/{name}\n"
        for name, content in PARTS.items()
    )


@pytest.fixture
def downloader(data_dir: Path) -> InProcessDownloader:
    """Downloader producing the canonical parts."""
    return InProcessDownloader(data_dir, dict(PARTS))


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """ConfigManager with zero retry delay."""
    manager = ConfigManager(config_dir=tmp_path / "config")
    config = manager.load_global_config()
    config["retry_delay_seconds"] = 0
    manager.save_global_config(config)
    return manager


@pytest.fixture
def make_runner(config_manager, downloader):
    """Build a CLIRunner wired to the in-process downloader."""

    def _make(fake=downloader) -> CLIRunner:
        return CLIRunner(config_manager, downloader=fake)

    return _make


@pytest.fixture
def part_contents() -> dict[str, bytes]:
    """Canonical bytes of every part in the manifest."""
    return dict(PARTS)
