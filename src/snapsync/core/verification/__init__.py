"""Checksum verification: single-file verifier and parallel coordinator."""

from snapsync.core.verification.coordinator import (
    VerificationCoordinator,
    default_worker_count,
)
from snapsync.core.verification.verifier import (
    HashVerifier,
    compute_hash,
    format_bytes,
)

__all__ = [
    "HashVerifier",
    "VerificationCoordinator",
    "compute_hash",
    "default_worker_count",
    "format_bytes",
]
