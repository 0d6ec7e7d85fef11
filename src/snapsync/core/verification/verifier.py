"""Single-file hash verification with checksum cache support.

The verifier never mutates the file it checks. Missing and unreadable files
are reported as failure outcomes rather than raised, so one bad part never
aborts a verification pass.
"""

from __future__ import annotations

import asyncio
import hashlib
from typing import TYPE_CHECKING

from snapsync.constants import HASH_ALGORITHM, HASH_CHUNK_SIZE
from snapsync.core.fingerprint import probe
from snapsync.domain.types import (
    FailureKind,
    ManifestEntry,
    VerificationFailure,
    VerificationOutcome,
    VerificationSuccess,
)
from snapsync.logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from snapsync.core.cache import ChecksumCache
    from snapsync.domain.types import FileFingerprint

logger = get_logger(__name__)

BYTES_PER_UNIT = 1024.0


def format_bytes(num_bytes: float) -> str:
    """Convert a byte count to a human-readable string.

    Raises ``ValueError`` if the input is negative.
    """
    if num_bytes < 0:
        message = "Byte size cannot be negative"
        raise ValueError(message)

    units = ["B", "KB", "MB", "GB", "TB", "PB", "EB"]
    size = float(num_bytes)
    unit_index = 0

    while size >= BYTES_PER_UNIT and unit_index < len(units) - 1:
        size /= BYTES_PER_UNIT
        unit_index += 1

    return f"{size:.1f} {units[unit_index]}"


def compute_hash(path: Path, algorithm: str = HASH_ALGORITHM) -> str:
    """Read ``path`` fully and return its hex digest.

    Blocking; run it in a worker thread from async code.

    Raises:
        FileNotFoundError: If the file does not exist
        OSError: If the file cannot be read

    """
    hasher = hashlib.new(algorithm)
    bytes_processed = 0

    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            hasher.update(chunk)
            bytes_processed += len(chunk)

    digest = hasher.hexdigest()
    logger.debug(
        "Hashed %s: %s (%s)", path.name, digest, format_bytes(bytes_processed)
    )
    return digest


class HashVerifier:
    """Verifies one manifest entry against its expected checksum."""

    def __init__(
        self,
        data_dir: Path,
        cache: ChecksumCache,
        algorithm: str = HASH_ALGORITHM,
    ) -> None:
        """Create verifier.

        Args:
            data_dir: Directory holding the parts; absolute filenames are
                used as-is
            cache: Checksum cache consulted before hashing
            algorithm: hashlib algorithm name

        """
        self.data_dir = data_dir
        self.cache = cache
        self.algorithm = algorithm

    def path_for(self, filename: str) -> Path:
        """Return the on-disk path of a part."""
        return self.data_dir / filename

    async def verify(self, entry: ManifestEntry) -> VerificationOutcome:
        """Verify ``entry`` and return its outcome.

        Uses the cached hash when the file's fingerprint is unchanged,
        otherwise hashes the file and refreshes the cache.
        """
        path = self.path_for(entry.filename)
        expected = entry.checksum.lower()

        try:
            fingerprint = probe(path)
        except FileNotFoundError:
            return self._failure(
                entry, None, FailureKind.NOT_FOUND, f"File not found: {path}"
            )
        except OSError as e:
            return self._failure(entry, None, FailureKind.IO_ERROR, str(e))

        computed = await self.cache.lookup(entry.filename, fingerprint)
        cached = computed is not None

        if computed is None:
            logger.debug("Computing checksum for %s", entry.filename)
            try:
                computed = await asyncio.to_thread(
                    compute_hash, path, self.algorithm
                )
            except FileNotFoundError:
                return self._failure(
                    entry,
                    None,
                    FailureKind.NOT_FOUND,
                    f"File disappeared while hashing: {path}",
                )
            except OSError as e:
                return self._failure(entry, None, FailureKind.IO_ERROR, str(e))

            await self._remember(entry.filename, path, computed, fingerprint)
        else:
            logger.debug("Using cached checksum for %s", entry.filename)

        if computed.lower() != expected:
            return self._failure(
                entry,
                computed.lower(),
                FailureKind.CHECKSUM_MISMATCH,
                "Checksum mismatch",
            )

        logger.debug("Checksum validation successful for %s", entry.filename)
        return VerificationSuccess(
            filename=entry.filename, hash=computed.lower(), cached=cached
        )

    async def _remember(
        self,
        filename: str,
        path: Path,
        digest: str,
        fingerprint: FileFingerprint,
    ) -> None:
        """Cache ``digest`` unless the file changed while it was hashed."""
        try:
            after = probe(path)
        except OSError:
            return
        if after != fingerprint:
            logger.debug(
                "%s changed while hashing, not caching its checksum", filename
            )
            return
        await self.cache.store(filename, digest, fingerprint)

    def _failure(
        self,
        entry: ManifestEntry,
        actual: str | None,
        kind: FailureKind,
        detail: str,
    ) -> VerificationFailure:
        logger.error("Checksum validation failed for %s", entry.filename)
        logger.error("   Reason:   %s (%s)", kind.value, detail)
        logger.error("   Expected: %s", entry.checksum)
        logger.error("   Computed: %s", actual or "-")
        return VerificationFailure(
            filename=entry.filename,
            expected_hash=entry.checksum.lower(),
            actual_hash=actual,
            kind=kind,
            detail=detail,
        )
