"""Tests for the cache and extract maintenance commands."""

import orjson
import pytest

from snapsync.constants import ExitCode


@pytest.fixture
def cache_file(data_dir):
    """Write a cache document with two records."""
    path = data_dir / ".checksum_cache.json"
    record = {"checksum": "ab" * 32, "metadata": {"mtime": 1, "size": 2}}
    path.write_bytes(orjson.dumps({"a": record, "b": record}))
    return path


@pytest.mark.asyncio
async def test_cache_stats(make_runner, data_dir, cache_file, caplog):
    """Test --stats reports the entry count."""
    code = await make_runner().run(
        ["cache", "--stats", "--dir", str(data_dir)]
    )

    assert code == ExitCode.OK
    assert "Entries: 2" in caplog.text


@pytest.mark.asyncio
async def test_cache_clear(make_runner, data_dir, cache_file):
    """Test --clear empties the cache document."""
    code = await make_runner().run(
        ["cache", "--clear", "--dir", str(data_dir)]
    )

    assert code == ExitCode.OK
    assert orjson.loads(cache_file.read_bytes()) == {}


@pytest.mark.asyncio
async def test_extract_without_manifest(make_runner, data_dir):
    """Test extract needs a stored manifest."""
    code = await make_runner().run(["extract", "--dir", str(data_dir)])
    assert code == ExitCode.ERROR


@pytest.mark.asyncio
async def test_extract_unvalidated_parts(
    make_runner, data_dir, manifest_text
):
    """Test extract refuses parts without the validation marker."""
    (data_dir / ".snapshot_manifest.txt").write_text(manifest_text)

    code = await make_runner().run(["extract", "--dir", str(data_dir)])

    assert code == ExitCode.ERROR
