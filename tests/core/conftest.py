"""Pytest configuration and fixtures for core module tests.

Provides:
- Part factories that write files and matching manifest entries
- A scripted Bulk Downloader double that records every job
- Wired verifier, coordinator and state store for a temp data directory
"""

import hashlib
from pathlib import Path

import pytest

from snapsync.constants import CACHE_FILE_NAME
from snapsync.core.cache import ChecksumCache
from snapsync.core.state import StateStore
from snapsync.core.verification import HashVerifier, VerificationCoordinator
from snapsync.domain.types import ManifestEntry
from snapsync.exceptions import DownloadJobError


def sha256_hex(content: bytes) -> str:
    """Return the SHA-256 hex digest of ``content``."""
    return hashlib.sha256(content).hexdigest()


def entry_for(
    filename: str, content: bytes, base: str = "https://host/arb1"
) -> ManifestEntry:
    """Build the manifest entry a file with ``content`` should match."""
    return ManifestEntry(
        checksum=sha256_hex(content),
        source_url=f"{base}/{filename}",
        filename=filename,
    )


class ScriptedDownloader:
    """Bulk Downloader double driven by a per-job script.

    ``script`` is a list consumed one item per download() call. Each item is
    either a dict mapping filename to the bytes to write, or an exception
    instance to raise. When the script runs out, ``default`` is used.
    """

    def __init__(
        self,
        data_dir: Path,
        script: list | None = None,
        default: dict[str, bytes] | None = None,
    ) -> None:
        self.data_dir = data_dir
        self.script = list(script or [])
        self.default = default or {}
        self.calls: list[tuple[str, list[str]]] = []

    async def download(
        self, entries: list[ManifestEntry], job_name: str
    ) -> None:
        self.calls.append((job_name, [e.filename for e in entries]))
        step = self.script.pop(0) if self.script else self.default
        if isinstance(step, DownloadJobError):
            raise step
        for entry in entries:
            if entry.filename in step:
                (self.data_dir / entry.filename).write_bytes(
                    step[entry.filename]
                )


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Provide an empty snapshot data directory."""
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def write_part(data_dir: Path):
    """Write a part file and return its matching manifest entry."""

    def _write(filename: str, content: bytes) -> ManifestEntry:
        (data_dir / filename).write_bytes(content)
        return entry_for(filename, content)

    return _write


@pytest.fixture
def cache(data_dir: Path) -> ChecksumCache:
    """Provide a checksum cache stored in the data directory."""
    return ChecksumCache(data_dir / CACHE_FILE_NAME)


@pytest.fixture
def state(data_dir: Path) -> StateStore:
    """Provide a state store for the data directory."""
    return StateStore(data_dir)


@pytest.fixture
def verifier(data_dir: Path, cache: ChecksumCache) -> HashVerifier:
    """Provide a hash verifier for the data directory."""
    return HashVerifier(data_dir, cache)


@pytest.fixture
def coordinator(
    verifier: HashVerifier, state: StateStore
) -> VerificationCoordinator:
    """Provide a coordinator with a small worker pool."""
    return VerificationCoordinator(verifier, state, max_workers=4)


@pytest.fixture
def make_entry():
    """Return the entry_for() factory."""
    return entry_for


@pytest.fixture
def make_downloader(data_dir: Path):
    """Return a factory for ScriptedDownloader bound to the data dir."""

    def _make(
        script: list | None = None, default: dict[str, bytes] | None = None
    ) -> ScriptedDownloader:
        return ScriptedDownloader(data_dir, script, default)

    return _make
