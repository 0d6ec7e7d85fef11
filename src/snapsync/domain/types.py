"""Domain types for snapshot verification.

Pure value types with no IO. Everything here is immutable once built.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, TypedDict


@dataclass(slots=True, frozen=True)
class ManifestEntry:
    """One part of a multi-part snapshot archive.

    Attributes:
        checksum: Expected hex digest as given; compared case-insensitively.
        source_url: Where the Bulk Downloader fetches the part from.
        filename: Basename of the part on disk.

    """

    checksum: str
    source_url: str
    filename: str


@dataclass(slots=True, frozen=True)
class FileFingerprint:
    """Cheap (mtime, size) proxy for file content."""

    modified_time: int
    size_bytes: int

    def to_dict(self) -> dict[str, int]:
        """Convert to the cache document representation."""
        return {"mtime": self.modified_time, "size": self.size_bytes}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileFingerprint:
        """Build from the cache document representation.

        Raises:
            KeyError: If a field is missing.
            TypeError, ValueError: If a field is not an integer.

        """
        mtime = data["mtime"]
        size = data["size"]
        if isinstance(mtime, bool) or isinstance(size, bool):
            msg = "fingerprint fields must be integers"
            raise TypeError(msg)
        return cls(modified_time=int(mtime), size_bytes=int(size))


@dataclass(slots=True, frozen=True)
class CacheRecord:
    """Verified hash of a file, valid while its fingerprint is unchanged."""

    checksum: str
    fingerprint: FileFingerprint


class FailureKind(Enum):
    """Why a file failed verification."""

    NOT_FOUND = "not_found"
    CHECKSUM_MISMATCH = "checksum_mismatch"
    IO_ERROR = "io_error"


@dataclass(slots=True, frozen=True)
class VerificationSuccess:
    """File content matched its expected checksum."""

    filename: str
    hash: str
    cached: bool = False

    @property
    def passed(self) -> bool:
        """Always True for a success outcome."""
        return True


@dataclass(slots=True, frozen=True)
class VerificationFailure:
    """File is missing, unreadable, or does not match.

    ``actual_hash`` is None when no digest could be computed.
    """

    filename: str
    expected_hash: str
    actual_hash: str | None
    kind: FailureKind = FailureKind.CHECKSUM_MISMATCH
    detail: str = ""

    @property
    def passed(self) -> bool:
        """Always False for a failure outcome."""
        return False


VerificationOutcome = VerificationSuccess | VerificationFailure


@dataclass(slots=True, frozen=True)
class LedgerEntry:
    """A (filename, expected checksum) pair awaiting redownload."""

    filename: str
    expected_checksum: str


@dataclass(slots=True, frozen=True)
class PassResult:
    """Result of one full verification pass.

    Attributes:
        outcomes: One outcome per entry, in manifest order.
        all_passed: True iff every outcome is a success.

    """

    outcomes: tuple[VerificationOutcome, ...]
    all_passed: bool

    @property
    def failures(self) -> list[VerificationFailure]:
        """Return only the failed outcomes."""
        return [o for o in self.outcomes if isinstance(o, VerificationFailure)]

    @property
    def cache_hits(self) -> int:
        """Count successes served from the checksum cache."""
        return sum(
            1
            for o in self.outcomes
            if isinstance(o, VerificationSuccess) and o.cached
        )


class EngineState(Enum):
    """States of the retrieval engine."""

    UNVERIFIED = "unverified"
    VERIFYING = "verifying"
    ALL_VALID = "all_valid"
    SOME_FAILED = "some_failed"
    RECOVERING = "recovering"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        """Return True for AllValid and Exhausted."""
        return self in (EngineState.ALL_VALID, EngineState.EXHAUSTED)


# =============================================================================
# Configuration types
# =============================================================================


class NetworkConfig(TypedDict):
    """Manifest HTTP settings."""

    retry_attempts: int
    timeout_seconds: int


class SnapshotConfig(TypedDict):
    """Where snapshots are published."""

    base_url: str
    chain_name: str
    snapshot_type: str


class DownloaderConfig(TypedDict):
    """Bulk Downloader invocation settings."""

    command: str
    connections: int
    start_timeout_seconds: int
    job_timeout_seconds: int
    poll_interval_seconds: int


class DirectoryConfig(TypedDict):
    """Directory paths."""

    data: Path
    logs: Path


class GlobalConfig(TypedDict):
    """Complete settings.conf content."""

    config_version: str
    log_level: str
    console_log_level: str
    max_workers: int
    max_attempts: int
    retry_delay_seconds: int
    network: NetworkConfig
    snapshot: SnapshotConfig
    downloader: DownloaderConfig
    directory: DirectoryConfig
