"""Persisted verification state inside the data directory.

Three artifacts live next to the snapshot parts:

- the failure ledger: ``filename|expectedChecksum`` per line, rewritten
  (never appended) by every verification pass;
- the validation marker: its existence means the current manifest has been
  fully verified; its content is a human-readable summary only;
- a copy of the manifest text, used to notice when the published manifest
  changes between runs.
"""

import contextlib
from datetime import UTC, datetime
from pathlib import Path

from snapsync.constants import (
    FAILURES_FILE_NAME,
    ISO_DATETIME_FORMAT,
    LEDGER_SEPARATOR,
    MANIFEST_COPY_NAME,
    MARKER_FILE_NAME,
)
from snapsync.domain.types import LedgerEntry
from snapsync.logger import get_logger

logger = get_logger(__name__)


class StateStore:
    """Reads and writes the ledger, marker and manifest copy."""

    def __init__(self, data_dir: Path) -> None:
        """Initialize state store rooted at ``data_dir``."""
        self.data_dir = data_dir
        self.ledger_file = data_dir / FAILURES_FILE_NAME
        self.marker_file = data_dir / MARKER_FILE_NAME
        self.manifest_copy = data_dir / MANIFEST_COPY_NAME

    # Failure ledger

    def read_ledger(self) -> list[LedgerEntry]:
        """Return ledger entries in file order (empty if no ledger)."""
        if not self.ledger_file.exists():
            return []

        entries: list[LedgerEntry] = []
        text = self.ledger_file.read_text(encoding="utf-8")
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            filename, sep, checksum = line.rpartition(LEDGER_SEPARATOR)
            if not sep or not filename or not checksum:
                logger.warning("Ignoring malformed ledger line: %r", line)
                continue
            entries.append(
                LedgerEntry(filename=filename, expected_checksum=checksum)
            )
        return entries

    def write_ledger(self, entries: list[LedgerEntry]) -> None:
        """Replace the ledger with ``entries``; remove it when empty."""
        if not entries:
            self.clear_ledger()
            return
        lines = [
            f"{e.filename}{LEDGER_SEPARATOR}{e.expected_checksum}\n"
            for e in entries
        ]
        temp_file = self.ledger_file.with_suffix(".tmp")
        temp_file.write_text("".join(lines), encoding="utf-8")
        temp_file.replace(self.ledger_file)
        logger.debug(
            "Wrote %d entries to failure ledger %s",
            len(entries),
            self.ledger_file,
        )

    def clear_ledger(self) -> None:
        """Remove the ledger file if present."""
        with contextlib.suppress(FileNotFoundError):
            self.ledger_file.unlink()

    # Validation marker

    def is_validated(self) -> bool:
        """Return True when the validation marker exists."""
        return self.marker_file.exists()

    def create_marker(self, file_count: int) -> None:
        """Create the validation marker with an advisory summary."""
        timestamp = datetime.now(tz=UTC).strftime(ISO_DATETIME_FORMAT)
        self.marker_file.write_text(
            f"validated {file_count} files at {timestamp} UTC\n",
            encoding="utf-8",
        )
        logger.debug("Created validation marker %s", self.marker_file)

    def remove_marker(self) -> None:
        """Delete the validation marker if present."""
        with contextlib.suppress(FileNotFoundError):
            self.marker_file.unlink()
            logger.debug("Removed validation marker %s", self.marker_file)

    # Manifest copy

    def manifest_changed(self, manifest_text: str) -> bool:
        """Return True if ``manifest_text`` differs from the stored copy.

        A missing copy counts as changed.
        """
        if not self.manifest_copy.exists():
            return True
        return self.manifest_copy.read_text(encoding="utf-8") != manifest_text

    def save_manifest(self, manifest_text: str) -> None:
        """Store ``manifest_text`` for change detection on later runs."""
        self.manifest_copy.write_text(manifest_text, encoding="utf-8")

    def load_manifest(self) -> str | None:
        """Return the stored manifest text, or None if never saved."""
        if not self.manifest_copy.exists():
            return None
        return self.manifest_copy.read_text(encoding="utf-8")
