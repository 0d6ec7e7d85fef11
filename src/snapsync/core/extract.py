"""Extraction of a verified multi-part tar archive.

The parts are byte slices of a single tar stream, so they are read back to
back in manifest order and fed to tarfile in streaming mode; nothing is
concatenated on disk.
"""

from __future__ import annotations

import asyncio
import io
import tarfile
from typing import TYPE_CHECKING

from snapsync.exceptions import SnapsyncError
from snapsync.logger import get_logger

if TYPE_CHECKING:
    from pathlib import Path

    from snapsync.core.state import StateStore
    from snapsync.domain.types import ManifestEntry

logger = get_logger(__name__)


class ExtractionError(SnapsyncError):
    """Raised when parts cannot be extracted."""

    error_prefix = "Extraction failed"


class ConcatenatedReader(io.RawIOBase):
    """Read-only stream over several files in sequence."""

    def __init__(self, paths: list[Path]) -> None:
        """Create reader over ``paths`` in the given order."""
        super().__init__()
        self._paths = list(paths)
        self._index = 0
        self._current: io.BufferedReader | None = None

    def readable(self) -> bool:
        """Return True; this stream only supports reading."""
        return True

    def readinto(self, buffer) -> int:  # noqa: ANN001
        """Fill ``buffer`` from the current file, advancing as files end."""
        while self._index < len(self._paths):
            if self._current is None:
                self._current = self._paths[self._index].open("rb")
            count = self._current.readinto(buffer)
            if count:
                return count
            self._current.close()
            self._current = None
            self._index += 1
        return 0

    def close(self) -> None:
        """Close the file currently being read."""
        if self._current is not None:
            self._current.close()
            self._current = None
        super().close()


def _extract(paths: list[Path], target: Path) -> int:
    count = 0
    with (
        ConcatenatedReader(paths) as raw,
        io.BufferedReader(raw, buffer_size=1024 * 1024) as stream,
        tarfile.open(fileobj=stream, mode="r|*") as archive,
    ):
        for member in archive:
            archive.extract(member, path=target, filter="data")
            count += 1
    return count


async def extract_parts(
    entries: list[ManifestEntry],
    data_dir: Path,
    target: Path,
    state: StateStore,
) -> int:
    """Extract the snapshot into ``target``.

    Args:
        entries: Manifest entries in archive order
        data_dir: Directory holding the parts
        target: Extraction directory
        state: Used to require a validated part set

    Returns:
        Number of archive members extracted; 0 if skipped

    Raises:
        ExtractionError: If the parts are not validated or the archive
            is unreadable

    """
    if not state.is_validated():
        msg = "parts have not been fully verified"
        raise ExtractionError(msg, target=str(data_dir))

    if target.exists() and any(target.iterdir()):
        logger.info(
            "%s already contains files, skipping extraction", target
        )
        return 0

    target.mkdir(parents=True, exist_ok=True)
    paths = [data_dir / entry.filename for entry in entries]
    logger.info("Extracting %d parts into %s", len(paths), target)

    try:
        count = await asyncio.to_thread(_extract, paths, target)
    except (tarfile.TarError, OSError) as e:
        raise ExtractionError(str(e), target=str(target)) from e

    logger.info("Extracted %d entries into %s", count, target)
    return count
