"""Tests for the fingerprint-validated checksum cache."""

import asyncio

import orjson
import pytest

from snapsync.core.cache import ChecksumCache
from snapsync.domain.types import FileFingerprint

FP = FileFingerprint(modified_time=100, size_bytes=10)
DIGEST = "ab" * 32


@pytest.fixture
def cache_file(tmp_path):
    """Provide the cache document path."""
    return tmp_path / ".checksum_cache.json"


class TestChecksumCache:
    """Test suite for ChecksumCache."""

    def test_missing_document_is_empty(self, cache_file):
        """Test a cache without a document starts empty."""
        assert len(ChecksumCache(cache_file)) == 0

    @pytest.mark.asyncio
    async def test_store_then_lookup_hits(self, cache_file):
        """Test a stored hash is returned for the same fingerprint."""
        cache = ChecksumCache(cache_file)
        await cache.store("part1.tar", DIGEST.upper(), FP)

        assert await cache.lookup("part1.tar", FP) == DIGEST

    @pytest.mark.asyncio
    async def test_lookup_stale_fingerprint_misses(self, cache_file):
        """Test a changed size or mtime invalidates the record."""
        cache = ChecksumCache(cache_file)
        await cache.store("part1.tar", DIGEST, FP)

        assert (
            await cache.lookup(
                "part1.tar", FileFingerprint(modified_time=100, size_bytes=11)
            )
            is None
        )
        assert (
            await cache.lookup(
                "part1.tar", FileFingerprint(modified_time=101, size_bytes=10)
            )
            is None
        )

    @pytest.mark.asyncio
    async def test_lookup_unknown_file_misses(self, cache_file):
        """Test lookup of an unknown filename returns None."""
        assert await ChecksumCache(cache_file).lookup("nope", FP) is None

    @pytest.mark.asyncio
    async def test_store_persists_document_format(self, cache_file):
        """Test the on-disk document uses checksum and metadata keys."""
        cache = ChecksumCache(cache_file)
        await cache.store("part1.tar", DIGEST, FP)

        data = orjson.loads(cache_file.read_bytes())
        assert data == {
            "part1.tar": {
                "checksum": DIGEST,
                "metadata": {"mtime": 100, "size": 10},
            }
        }
        assert not cache_file.with_suffix(".tmp").exists()

    @pytest.mark.asyncio
    async def test_reload_from_disk(self, cache_file):
        """Test a new instance sees records written by an earlier one."""
        await ChecksumCache(cache_file).store("part1.tar", DIGEST, FP)

        reloaded = ChecksumCache(cache_file)
        assert await reloaded.lookup("part1.tar", FP) == DIGEST

    def test_corrupt_document_is_treated_as_empty(self, cache_file, caplog):
        """Test unparseable JSON yields an empty cache and a warning."""
        cache_file.write_text("{not json")

        cache = ChecksumCache(cache_file)

        assert len(cache) == 0
        assert "unreadable" in caplog.text

    def test_non_object_document_is_treated_as_empty(self, cache_file):
        """Test a JSON array is rejected as a cache document."""
        cache_file.write_text("[1, 2, 3]")
        assert len(ChecksumCache(cache_file)) == 0

    def test_malformed_entries_are_dropped(self, cache_file):
        """Test bad entries are skipped while good ones load."""
        cache_file.write_bytes(
            orjson.dumps(
                {
                    "good.tar": {
                        "checksum": DIGEST,
                        "metadata": {"mtime": 1, "size": 2},
                    },
                    "no_meta.tar": {"checksum": DIGEST},
                    "bad_size.tar": {
                        "checksum": DIGEST,
                        "metadata": {"mtime": 1, "size": "big"},
                    },
                    "bool_size.tar": {
                        "checksum": DIGEST,
                        "metadata": {"mtime": 1, "size": True},
                    },
                }
            )
        )

        cache = ChecksumCache(cache_file)

        assert len(cache) == 1
        assert cache.get_record("good.tar") is not None

    @pytest.mark.asyncio
    async def test_batch_defers_write_until_exit(self, cache_file):
        """Test stores inside batch() are written once at the end."""
        cache = ChecksumCache(cache_file)

        async with cache.batch():
            await cache.store("a.tar", DIGEST, FP)
            await cache.store("b.tar", DIGEST, FP)
            assert not cache_file.exists()

        data = orjson.loads(cache_file.read_bytes())
        assert set(data) == {"a.tar", "b.tar"}

    @pytest.mark.asyncio
    async def test_concurrent_stores_keep_every_record(self, cache_file):
        """Test parallel writers never lose each other's records."""
        cache = ChecksumCache(cache_file)

        await asyncio.gather(
            *(cache.store(f"part{i}.tar", DIGEST, FP) for i in range(25))
        )

        data = orjson.loads(cache_file.read_bytes())
        assert len(data) == 25

    @pytest.mark.asyncio
    async def test_clear_removes_all_records(self, cache_file):
        """Test clear empties memory and disk and reports the count."""
        cache = ChecksumCache(cache_file)
        await cache.store("a.tar", DIGEST, FP)
        await cache.store("b.tar", DIGEST, FP)

        removed = await cache.clear()

        assert removed == 2
        assert len(cache) == 0
        assert orjson.loads(cache_file.read_bytes()) == {}

    @pytest.mark.asyncio
    async def test_stats(self, cache_file):
        """Test stats reports entry count and file size."""
        cache = ChecksumCache(cache_file)
        assert cache.stats()["exists"] is False

        await cache.store("a.tar", DIGEST, FP)
        stats = cache.stats()

        assert stats["entries"] == 1
        assert stats["exists"] is True
        assert stats["size_bytes"] == cache_file.stat().st_size

    @pytest.mark.asyncio
    async def test_discard_drops_named_records(self, cache_file):
        """Test discard removes only the named records."""
        cache = ChecksumCache(cache_file)
        await cache.store("a.tar", DIGEST, FP)
        await cache.store("b.tar", DIGEST, FP)

        removed = await cache.discard(["a.tar", "unknown.tar"])

        assert removed == 1
        assert await cache.lookup("a.tar", FP) is None
        assert set(orjson.loads(cache_file.read_bytes())) == {"b.tar"}
