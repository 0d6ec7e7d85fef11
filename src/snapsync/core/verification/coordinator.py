"""Parallel verification of every manifest entry.

Every entry is verified even when earlier ones fail, so the failure ledger
always names every part that needs redownloading. Concurrency is bounded
by a semaphore sized to the host's CPU count; hashing itself runs in
worker threads.
"""

from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING

from snapsync.domain.types import (
    FailureKind,
    LedgerEntry,
    PassResult,
    VerificationFailure,
    VerificationOutcome,
)
from snapsync.logger import get_logger

if TYPE_CHECKING:
    from snapsync.core.state import StateStore
    from snapsync.core.verification.verifier import HashVerifier
    from snapsync.domain.types import ManifestEntry

logger = get_logger(__name__)


def default_worker_count() -> int:
    """Return the host's available CPU parallelism (at least 1)."""
    if hasattr(os, "process_cpu_count"):
        count = os.process_cpu_count()
    else:
        count = os.cpu_count()
    return max(1, count or 1)


class VerificationCoordinator:
    """Fans verification out over a bounded worker pool."""

    def __init__(
        self,
        verifier: HashVerifier,
        state: StateStore,
        max_workers: int | None = None,
    ) -> None:
        """Create coordinator.

        Args:
            verifier: Single-file verifier
            state: Ledger and marker persistence
            max_workers: Concurrent verifications; None or 0 means CPU count

        """
        self.verifier = verifier
        self.state = state
        self.max_workers = max_workers or default_worker_count()

    async def verify_all(self, entries: list[ManifestEntry]) -> PassResult:
        """Verify every entry and record the pass result.

        On success the validation marker is created and the ledger removed.
        On failure the ledger is rewritten with one line per failed entry
        and the marker is left absent.
        """
        self.state.clear_ledger()
        self.state.remove_marker()

        logger.info(
            "Starting checksum validation for %d files with %d workers",
            len(entries),
            self.max_workers,
        )
        semaphore = asyncio.Semaphore(self.max_workers)

        async def verify_one(entry: ManifestEntry) -> VerificationOutcome:
            async with semaphore:
                try:
                    return await self.verifier.verify(entry)
                except Exception as error:
                    logger.exception(
                        "Unexpected error verifying %s", entry.filename
                    )
                    return VerificationFailure(
                        filename=entry.filename,
                        expected_hash=entry.checksum.lower(),
                        actual_hash=None,
                        kind=FailureKind.IO_ERROR,
                        detail=str(error),
                    )

        async with self.verifier.cache.batch():
            outcomes = await asyncio.gather(
                *(verify_one(entry) for entry in entries)
            )

        result = PassResult(
            outcomes=tuple(outcomes),
            all_passed=all(outcome.passed for outcome in outcomes),
        )
        self._record(result, entries)
        return result

    def _record(
        self, result: PassResult, entries: list[ManifestEntry]
    ) -> None:
        total = len(result.outcomes)
        if result.all_passed:
            self.state.create_marker(total)
            logger.info(
                "All %d checksums validated successfully (%d from cache)",
                total,
                result.cache_hits,
            )
            return

        failures = result.failures
        # Ledger lines carry the checksum exactly as it was requested
        requested = {entry.filename: entry.checksum for entry in entries}
        self.state.write_ledger(
            [
                LedgerEntry(
                    filename=failure.filename,
                    expected_checksum=requested[failure.filename],
                )
                for failure in failures
            ]
        )
        logger.warning(
            "Checksum validation failed for %d of %d files",
            len(failures),
            total,
        )
        logger.warning("Failed files written to %s", self.state.ledger_file)
