"""Failure recovery: redownload and reverify only the parts that failed.

Protocol per attempt:

1. delete every ledger-listed part and its cache record (missing files
   are fine);
2. map ledger filenames back to manifest URLs;
3. run a scoped download job for just those parts;
4. reverify (the checksum cache confirms untouched parts without hashing).

Attempts are bounded. When they run out the parts that still fail are
deleted, the ledger is left on disk for inspection, and
ChecksumValidationExhausted is raised.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from snapsync.domain.types import EngineState, LedgerEntry, PassResult
from snapsync.exceptions import (
    ChecksumValidationExhausted,
    DownloadJobError,
    StaleLedgerError,
)
from snapsync.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

    from snapsync.core.download import BulkDownloader
    from snapsync.core.state import StateStore
    from snapsync.core.verification import VerificationCoordinator
    from snapsync.domain.types import ManifestEntry

logger = get_logger(__name__)


class RecoveryController:
    """Runs bounded redownload-and-reverify cycles."""

    def __init__(
        self,
        coordinator: VerificationCoordinator,
        downloader: BulkDownloader,
        state: StateStore,
        retry_delay: float = 10,
        on_state: Callable[[EngineState], None] | None = None,
    ) -> None:
        """Create recovery controller.

        Args:
            coordinator: Verification coordinator used to reverify
            downloader: Bulk Downloader used for scoped jobs
            state: Ledger persistence
            retry_delay: Fixed delay in seconds between attempts
            on_state: Callback notified of engine state changes

        """
        self.coordinator = coordinator
        self.downloader = downloader
        self.state = state
        self.retry_delay = retry_delay
        self.on_state = on_state or (lambda _state: None)

    def resolve(
        self, ledger: list[LedgerEntry], manifest: list[ManifestEntry]
    ) -> list[ManifestEntry]:
        """Map ledger entries to their manifest entries by filename.

        Raises:
            StaleLedgerError: If a ledger entry is not in the manifest or
                expects a different checksum

        """
        by_name = {entry.filename: entry for entry in manifest}
        resolved: list[ManifestEntry] = []
        for item in ledger:
            entry = by_name.get(item.filename)
            if entry is None:
                msg = "not present in the current manifest"
                raise StaleLedgerError(msg, target=item.filename)
            if entry.checksum.lower() != item.expected_checksum.lower():
                msg = (
                    f"ledger expects {item.expected_checksum}, "
                    f"manifest expects {entry.checksum}"
                )
                raise StaleLedgerError(msg, target=item.filename)
            resolved.append(entry)
        return resolved

    async def _delete_parts(self, entries: list[ManifestEntry]) -> None:
        verifier = self.coordinator.verifier
        await verifier.cache.discard([entry.filename for entry in entries])
        data_dir = verifier.data_dir
        for entry in entries:
            path = data_dir / entry.filename
            with contextlib.suppress(FileNotFoundError):
                path.unlink()
                logger.info("Deleted failed file: %s", entry.filename)

    async def recover(
        self,
        ledger: list[LedgerEntry],
        manifest: list[ManifestEntry],
        max_attempts: int,
    ) -> PassResult | None:
        """Recover every ledger-listed part or give up.

        Args:
            ledger: Parts that failed the most recent pass
            manifest: Full manifest of the current run
            max_attempts: Number of recovery cycles allowed

        Returns:
            The passing verification result, or None for an empty ledger

        Raises:
            ChecksumValidationExhausted: Parts still fail after the last
                attempt
            StaleLedgerError: The ledger does not match the manifest

        """
        if not ledger:
            logger.debug("Failure ledger is empty, nothing to recover")
            return None

        pending = self.resolve(ledger, manifest)

        for attempt in range(1, max_attempts + 1):
            self.on_state(EngineState.RECOVERING)
            logger.info(
                "Recovery attempt %d/%d for %d files",
                attempt,
                max_attempts,
                len(pending),
            )

            await self._delete_parts(pending)

            try:
                await self.downloader.download(
                    pending, job_name=f"recovery-{attempt}"
                )
            except DownloadJobError as e:
                logger.warning("Recovery attempt %d: %s", attempt, e)
            else:
                result = await self.coordinator.verify_all(manifest)
                if result.all_passed:
                    logger.info(
                        "Recovered %d files on attempt %d",
                        len(pending),
                        attempt,
                    )
                    return result
                pending = self.resolve(self.state.read_ledger(), manifest)

            if attempt < max_attempts and self.retry_delay > 0:
                logger.info("Retrying in %s seconds...", self.retry_delay)
                await asyncio.sleep(self.retry_delay)

        await self._delete_parts(pending)
        self.state.write_ledger(
            [
                LedgerEntry(
                    filename=entry.filename, expected_checksum=entry.checksum
                )
                for entry in pending
            ]
        )
        failed = [entry.filename for entry in pending]
        logger.error(
            "Checksum validation failed after %d recovery attempts: %s",
            max_attempts,
            ", ".join(failed),
        )
        msg = (
            f"{len(failed)} files still invalid after {max_attempts} attempts"
        )
        raise ChecksumValidationExhausted(
            msg, failed=failed, attempts=max_attempts
        )
