"""Metadata probe for cheap file fingerprints.

A fingerprint is the file's whole-second modification time plus its size.
It is read from a single stat() call and never touches file contents.

Two files with different content but identical mtime and size produce the
same fingerprint. That collision is an accepted trade-off: it is what lets
the checksum cache skip rehashing multi-gigabyte parts on every run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from snapsync.domain.types import FileFingerprint

if TYPE_CHECKING:
    from pathlib import Path


def probe(path: Path) -> FileFingerprint:
    """Return the (mtime, size) fingerprint of ``path``.

    Raises:
        FileNotFoundError: If the path does not exist.

    """
    stat_result = path.stat()
    return FileFingerprint(
        modified_time=int(stat_result.st_mtime),
        size_bytes=stat_result.st_size,
    )
