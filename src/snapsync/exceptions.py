"""Exception classes for snapsync operations."""


class SnapsyncError(Exception):
    """Base exception for snapsync operations."""

    error_prefix: str = "Operation failed"

    def __init__(self, message: str, target: str | None = None) -> None:
        """Initialize error with message and optional target.

        Args:
            message: Error message describing the failure.
            target: Optional name of the target that failed.

        """
        super().__init__(message)
        self.message = message
        self.target = target

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.target:
            return f"{self.error_prefix} for '{self.target}': {self.message}"
        return f"{self.error_prefix}: {self.message}"


class UsageError(SnapsyncError):
    """Raised when command-line arguments are inconsistent."""

    error_prefix = "Invalid usage"


class ManifestParseError(SnapsyncError):
    """Raised when a manifest line is malformed or ambiguous."""

    error_prefix = "Manifest parse failed"

    def __init__(
        self, message: str, target: str | None = None, line_number: int = 0
    ) -> None:
        """Initialize with the offending 1-based line number."""
        super().__init__(message, target)
        self.line_number = line_number


class ManifestFetchError(SnapsyncError):
    """Raised when the manifest source cannot be reached."""

    error_prefix = "Manifest fetch failed"


class DownloadJobError(SnapsyncError):
    """Raised when a Bulk Downloader job does not complete."""

    error_prefix = "Download job failed"


class DownloadJobTimeout(DownloadJobError):
    """Raised when a download job did not start or finish in time."""

    error_prefix = "Download job timed out"


class DownloadJobVanished(DownloadJobError):
    """Raised when a download job process exits with work incomplete."""

    error_prefix = "Download job vanished"


class ChecksumValidationExhausted(SnapsyncError):
    """Raised when recovery attempts run out with files still failing."""

    error_prefix = "Checksum validation exhausted"

    def __init__(
        self, message: str, failed: list[str], attempts: int
    ) -> None:
        """Initialize with the filenames still failing.

        Args:
            message: Error message describing the failure.
            failed: Filenames that never verified.
            attempts: Number of recovery cycles performed.

        """
        super().__init__(message)
        self.failed = failed
        self.attempts = attempts


class LockError(SnapsyncError):
    """Raised when the working directory lock cannot be acquired."""

    error_prefix = "Lock failed"

    def __init__(
        self, message: str, cause: BaseException | None = None
    ) -> None:
        """Initialize with the underlying OS error, if any."""
        super().__init__(message)
        self.cause = cause


class StaleLedgerError(SnapsyncError):
    """Raised when the failure ledger does not match the manifest."""

    error_prefix = "Stale failure ledger"
