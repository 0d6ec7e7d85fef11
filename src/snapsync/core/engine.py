"""Snapshot retrieval engine.

State machine::

    Unverified -> Verifying -> AllValid
                            -> SomeFailed -> Recovering -> AllValid
                                             Recovering -> Recovering
                                             Recovering -> Exhausted

The manifest is parsed once per run and treated as immutable until the run
ends; recovery resolves redownload URLs against that same parsed copy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from snapsync.core.recovery import RecoveryController
from snapsync.domain.types import EngineState, ManifestEntry, PassResult
from snapsync.exceptions import ChecksumValidationExhausted, DownloadJobError
from snapsync.logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from snapsync.core.download import BulkDownloader
    from snapsync.core.state import StateStore
    from snapsync.core.verification import VerificationCoordinator

logger = get_logger(__name__)


@dataclass(slots=True)
class EngineResult:
    """Summary of one engine run."""

    state: EngineState
    entries: list[ManifestEntry]
    short_circuited: bool = False
    downloaded: bool = False
    initial_pass: PassResult | None = None
    final_pass: PassResult | None = None
    history: list[EngineState] = field(default_factory=list)


class SnapshotEngine:
    """Downloads, verifies and repairs a multi-part snapshot."""

    def __init__(
        self,
        coordinator: VerificationCoordinator,
        downloader: BulkDownloader,
        state: StateStore,
        max_attempts: int = 3,
        retry_delay: float = 10,
    ) -> None:
        """Create engine.

        Args:
            coordinator: Parallel verification coordinator
            downloader: Bulk Downloader for full and scoped jobs
            state: Ledger, marker and manifest copy persistence
            max_attempts: Recovery cycles allowed before giving up
            retry_delay: Fixed delay between recovery cycles

        """
        self.coordinator = coordinator
        self.downloader = downloader
        self.state_store = state
        self.max_attempts = max_attempts
        self.state = EngineState.UNVERIFIED
        self.history: list[EngineState] = [self.state]
        self.recovery = RecoveryController(
            coordinator,
            downloader,
            state,
            retry_delay=retry_delay,
            on_state=self._transition,
        )

    @property
    def data_dir(self) -> Path:
        """Directory holding the parts."""
        return self.coordinator.verifier.data_dir

    def _transition(self, new_state: EngineState) -> None:
        if new_state != self.state:
            logger.debug(
                "Engine state: %s -> %s", self.state.value, new_state.value
            )
        self.state = new_state
        self.history.append(new_state)

    def prepare(self, manifest_text: str) -> bool:
        """Reset validation state when the manifest changed.

        Returns:
            True if the manifest differs from the one seen last run

        """
        if not self.state_store.manifest_changed(manifest_text):
            return False
        logger.info("Manifest changed, validation will be repeated")
        self.state_store.remove_marker()
        self.state_store.clear_ledger()
        self.state_store.save_manifest(manifest_text)
        return True

    def missing_parts(
        self, entries: list[ManifestEntry]
    ) -> list[ManifestEntry]:
        """Return entries whose part is not on disk."""
        return [
            entry
            for entry in entries
            if not (self.data_dir / entry.filename).exists()
        ]

    async def _initial_download(self, entries: list[ManifestEntry]) -> bool:
        """Download the full set when no part exists yet."""
        missing = self.missing_parts(entries)
        if len(missing) < len(entries):
            logger.info(
                "%d of %d parts already present, skipping full download",
                len(entries) - len(missing),
                len(entries),
            )
            return False

        try:
            await self.downloader.download(entries, job_name="initial")
        except DownloadJobError as e:
            # Missing parts surface as NotFound and go through recovery
            logger.warning("Initial download did not complete: %s", e)

        still_missing = self.missing_parts(entries)
        if still_missing:
            logger.warning(
                "Not all snapshot parts were downloaded: %d of %d missing",
                len(still_missing),
                len(entries),
            )
        return True

    async def sync(
        self,
        entries: list[ManifestEntry],
        manifest_text: str | None = None,
        download: bool = True,  # noqa: FBT001, FBT002
    ) -> EngineResult:
        """Run the engine to a terminal state.

        Args:
            entries: Parsed manifest
            manifest_text: Raw manifest, used for change detection
            download: Fetch the full set first when no part is present

        Returns:
            Result in the AllValid state

        Raises:
            ChecksumValidationExhausted: Recovery ran out of attempts

        """
        if manifest_text is not None:
            self.prepare(manifest_text)

        result = EngineResult(state=self.state, entries=entries)

        if self.state_store.is_validated():
            logger.info("Checksums already validated, nothing to do")
            self._transition(EngineState.ALL_VALID)
            result.state = self.state
            result.short_circuited = True
            result.history = list(self.history)
            return result

        if download:
            result.downloaded = await self._initial_download(entries)

        self._transition(EngineState.VERIFYING)
        result.initial_pass = await self.coordinator.verify_all(entries)
        result.final_pass = result.initial_pass

        if result.initial_pass.all_passed:
            self._transition(EngineState.ALL_VALID)
        else:
            self._transition(EngineState.SOME_FAILED)
            try:
                recovered = await self.recovery.recover(
                    self.state_store.read_ledger(),
                    entries,
                    self.max_attempts,
                )
            except ChecksumValidationExhausted:
                self._transition(EngineState.EXHAUSTED)
                raise
            result.final_pass = recovered or result.final_pass
            self._transition(EngineState.ALL_VALID)

        result.state = self.state
        result.history = list(self.history)
        return result

    async def recover_only(
        self, entries: list[ManifestEntry]
    ) -> EngineResult:
        """Run only the recovery phase from the ledger on disk."""
        result = EngineResult(state=self.state, entries=entries)
        ledger = self.state_store.read_ledger()
        if not ledger:
            logger.info("Failure ledger is empty, nothing to recover")
            if self.state_store.is_validated():
                self._transition(EngineState.ALL_VALID)
            result.state = self.state
            result.history = list(self.history)
            return result

        self._transition(EngineState.SOME_FAILED)
        try:
            result.final_pass = await self.recovery.recover(
                ledger, entries, self.max_attempts
            )
        except ChecksumValidationExhausted:
            self._transition(EngineState.EXHAUSTED)
            raise
        self._transition(EngineState.ALL_VALID)
        result.state = self.state
        result.history = list(self.history)
        return result
