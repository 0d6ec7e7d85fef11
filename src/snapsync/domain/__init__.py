"""Domain types for snapshot verification."""

from snapsync.domain.types import (
    CacheRecord,
    EngineState,
    FailureKind,
    FileFingerprint,
    LedgerEntry,
    ManifestEntry,
    PassResult,
    VerificationFailure,
    VerificationOutcome,
    VerificationSuccess,
)

__all__ = [
    "CacheRecord",
    "EngineState",
    "FailureKind",
    "FileFingerprint",
    "LedgerEntry",
    "ManifestEntry",
    "PassResult",
    "VerificationFailure",
    "VerificationOutcome",
    "VerificationSuccess",
]
