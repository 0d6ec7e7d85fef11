"""Dependency injection container for engine wiring.

All components for one data directory are built lazily and shared for the
lifetime of a command. The HTTP session is the only resource that needs
explicit cleanup.

Usage:
    >>> container = ServiceContainer(global_config, data_dir)
    >>> try:
    ...     engine = container.engine
    ...     await engine.sync(entries)
    ... finally:
    ...     await container.cleanup()
"""

from __future__ import annotations

from contextlib import AsyncExitStack
from typing import TYPE_CHECKING

from snapsync.constants import CACHE_FILE_NAME, LOCK_FILE_NAME
from snapsync.core.cache import ChecksumCache
from snapsync.core.download import Aria2Downloader, BulkDownloader
from snapsync.core.engine import SnapshotEngine
from snapsync.core.http_session import create_http_session
from snapsync.core.locking import LockManager
from snapsync.core.manifest import ManifestSource
from snapsync.core.state import StateStore
from snapsync.core.verification import HashVerifier, VerificationCoordinator
from snapsync.logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from snapsync.domain.types import GlobalConfig

logger = get_logger(__name__)


class ServiceContainer:
    """Lazily builds and shares engine components for one data directory.

    Attributes:
        config: Loaded global configuration (CLI overrides applied)
        data_dir: Directory holding the parts and state files

    """

    def __init__(
        self,
        config: GlobalConfig,
        data_dir: Path,
        downloader: BulkDownloader | None = None,
    ) -> None:
        """Initialize container.

        Args:
            config: Global configuration
            data_dir: Data directory for this run
            downloader: Optional downloader override (tests)

        """
        self.config = config
        self.data_dir = data_dir
        self._downloader = downloader
        self._cache: ChecksumCache | None = None
        self._state: StateStore | None = None
        self._verifier: HashVerifier | None = None
        self._coordinator: VerificationCoordinator | None = None
        self._engine: SnapshotEngine | None = None
        self._manifest_source: ManifestSource | None = None
        self._exit_stack = AsyncExitStack()

    @property
    def cache(self) -> ChecksumCache:
        """Checksum cache for the data directory."""
        if self._cache is None:
            self._cache = ChecksumCache(self.data_dir / CACHE_FILE_NAME)
        return self._cache

    @property
    def state(self) -> StateStore:
        """Ledger, marker and manifest copy store."""
        if self._state is None:
            self._state = StateStore(self.data_dir)
        return self._state

    @property
    def verifier(self) -> HashVerifier:
        """Single-file hash verifier."""
        if self._verifier is None:
            self._verifier = HashVerifier(self.data_dir, self.cache)
        return self._verifier

    @property
    def coordinator(self) -> VerificationCoordinator:
        """Parallel verification coordinator."""
        if self._coordinator is None:
            self._coordinator = VerificationCoordinator(
                self.verifier,
                self.state,
                max_workers=self.config["max_workers"] or None,
            )
        return self._coordinator

    @property
    def downloader(self) -> BulkDownloader:
        """Bulk Downloader (aria2c unless overridden)."""
        if self._downloader is None:
            self._downloader = Aria2Downloader(
                self.data_dir, self.config["downloader"]
            )
        return self._downloader

    @property
    def engine(self) -> SnapshotEngine:
        """Fully wired snapshot engine."""
        if self._engine is None:
            self._engine = SnapshotEngine(
                self.coordinator,
                self.downloader,
                self.state,
                max_attempts=self.config["max_attempts"],
                retry_delay=self.config["retry_delay_seconds"],
            )
        return self._engine

    def lock(self) -> LockManager:
        """Return a lock manager for the data directory."""
        return LockManager(self.data_dir / LOCK_FILE_NAME)

    async def manifest_source(self) -> ManifestSource:
        """Return the manifest source, opening the HTTP session on demand."""
        if self._manifest_source is None:
            session = await self._exit_stack.enter_async_context(
                create_http_session(self.config)
            )
            self._manifest_source = ManifestSource(
                session, self.config["snapshot"], self.config["network"]
            )
        return self._manifest_source

    async def cleanup(self) -> None:
        """Flush the cache and close the HTTP session."""
        if self._cache is not None:
            await self._cache.flush()
        await self._exit_stack.aclose()
        self._manifest_source = None
