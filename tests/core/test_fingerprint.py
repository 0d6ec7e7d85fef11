"""Tests for the metadata probe."""

import os

import pytest

from snapsync.core.fingerprint import probe
from snapsync.domain.types import FileFingerprint


def test_probe_returns_whole_second_mtime_and_size(tmp_path):
    """Test probe reads size and truncates mtime to whole seconds."""
    path = tmp_path / "part.tar"
    path.write_bytes(b"x" * 1234)
    os.utime(path, (1_700_000_000.75, 1_700_000_000.75))

    assert probe(path) == FileFingerprint(
        modified_time=1_700_000_000, size_bytes=1234
    )


def test_probe_missing_file_raises(tmp_path):
    """Test probe raises FileNotFoundError for a missing path."""
    with pytest.raises(FileNotFoundError):
        probe(tmp_path / "missing.tar")


def test_probe_does_not_read_content(tmp_path):
    """Same mtime and size means same fingerprint, whatever the bytes."""
    first = tmp_path / "a"
    second = tmp_path / "b"
    first.write_bytes(b"aaaa")
    second.write_bytes(b"bbbb")
    os.utime(first, (1000, 1000))
    os.utime(second, (1000, 1000))

    assert probe(first) == probe(second)
