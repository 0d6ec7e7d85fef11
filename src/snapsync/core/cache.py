"""Persistent checksum cache keyed on file fingerprints.

The cache maps a part filename to the hash it was last verified with and
the fingerprint the file had at that moment. A record is only evidence of
the file's hash while the current fingerprint still equals the stored one.

The whole cache is one JSON document. Concurrent verification workers all
store into it, so every mutation goes through an asyncio.Lock and every
write replaces the document atomically (temp file + rename). Callers that
verify many files can wrap the pass in ``batch()`` to write once at the
end instead of once per file.
"""

import asyncio
import contextlib
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import orjson

from snapsync.config.schemas import CacheValidator, SchemaValidationError
from snapsync.domain.types import CacheRecord, FileFingerprint
from snapsync.logger import get_logger

logger = get_logger(__name__)


class ChecksumCache:
    """Fingerprint-validated hash cache stored as a single JSON document.

    Document layout::

        {
          "part1.tar": {
            "checksum": "ab12...",
            "metadata": {"mtime": 1, "size": 2}
          },
          ...
        }

    Usage:
        cache = ChecksumCache(data_dir / ".checksum_cache.json")
        cached = await cache.lookup("part1.tar", probe(path))
        if cached is None:
            ...
            await cache.store("part1.tar", digest, fingerprint)
    """

    def __init__(self, cache_file: Path) -> None:
        """Initialize the cache and load the document from disk.

        Args:
            cache_file: Location of the JSON document

        """
        self.cache_file = cache_file
        self._validator = CacheValidator()
        self._lock = asyncio.Lock()
        self._records: dict[str, CacheRecord] = self._load()
        self._batch_depth = 0
        self._dirty = False

    def _load(self) -> dict[str, CacheRecord]:
        """Read the document, treating any corruption as an empty cache."""
        if not self.cache_file.exists():
            logger.debug("No checksum cache at %s", self.cache_file)
            return {}

        try:
            data = orjson.loads(self.cache_file.read_bytes())  # pylint: disable=no-member
        except (OSError, ValueError) as e:
            # orjson raises ValueError for JSON errors
            logger.warning(
                "Checksum cache %s is unreadable, starting empty: %s",
                self.cache_file,
                e,
            )
            return {}

        if not isinstance(data, dict):
            logger.warning(
                "Checksum cache %s is not a JSON object, starting empty",
                self.cache_file,
            )
            return {}

        records: dict[str, CacheRecord] = {}
        for filename, entry in data.items():
            try:
                self._validator.validate_entry(entry, filename)
                records[filename] = CacheRecord(
                    checksum=entry["checksum"].lower(),
                    fingerprint=FileFingerprint.from_dict(entry["metadata"]),
                )
            except (SchemaValidationError, TypeError, ValueError) as e:
                logger.warning(
                    "Dropping malformed cache entry for %s: %s", filename, e
                )

        logger.debug(
            "Loaded %d checksum cache entries from %s",
            len(records),
            self.cache_file,
        )
        return records

    def __len__(self) -> int:
        """Return the number of cached records."""
        return len(self._records)

    def get_record(self, filename: str) -> CacheRecord | None:
        """Return the raw record for ``filename`` without validation."""
        return self._records.get(filename)

    async def lookup(
        self, filename: str, fingerprint: FileFingerprint
    ) -> str | None:
        """Return the cached hash if the fingerprint is unchanged.

        Args:
            filename: Part filename (cache key)
            fingerprint: The file's current fingerprint

        Returns:
            Cached hex digest, or None on a miss or stale record

        """
        record = self._records.get(filename)
        if record is None:
            return None
        if record.fingerprint != fingerprint:
            logger.debug(
                "Cache record for %s is stale (cached %s, current %s)",
                filename,
                record.fingerprint,
                fingerprint,
            )
            return None
        return record.checksum

    async def store(
        self, filename: str, checksum: str, fingerprint: FileFingerprint
    ) -> None:
        """Upsert the record for ``filename`` and persist the document."""
        async with self._lock:
            self._records[filename] = CacheRecord(
                checksum=checksum.lower(), fingerprint=fingerprint
            )
            self._dirty = True
            if self._batch_depth == 0:
                await self._flush_locked()

    async def clear(self) -> int:
        """Remove every record and persist the empty document.

        Returns:
            Number of records removed

        """
        async with self._lock:
            removed = len(self._records)
            self._records.clear()
            self._dirty = True
            await self._flush_locked()
        logger.debug("Cleared %d checksum cache entries", removed)
        return removed

    async def discard(self, filenames: list[str]) -> int:
        """Drop the records for ``filenames``, e.g. before a redownload.

        Returns:
            Number of records removed

        """
        async with self._lock:
            removed = 0
            for filename in filenames:
                if self._records.pop(filename, None) is not None:
                    removed += 1
            if removed:
                self._dirty = True
                if self._batch_depth == 0:
                    await self._flush_locked()
        return removed

    @contextlib.asynccontextmanager
    async def batch(self) -> AsyncIterator["ChecksumCache"]:
        """Defer document writes until the outermost batch exits."""
        async with self._lock:
            self._batch_depth += 1
        try:
            yield self
        finally:
            async with self._lock:
                self._batch_depth -= 1
                if self._batch_depth == 0 and self._dirty:
                    await self._flush_locked()

    async def flush(self) -> None:
        """Write pending changes to disk."""
        async with self._lock:
            if self._dirty:
                await self._flush_locked()

    async def _flush_locked(self) -> None:
        """Write the document atomically. Caller must hold the lock."""
        payload = {
            filename: {
                "checksum": record.checksum,
                "metadata": record.fingerprint.to_dict(),
            }
            for filename, record in self._records.items()
        }
        await asyncio.to_thread(self._write_document, payload)
        self._dirty = False

    def _write_document(self, payload: dict[str, Any]) -> None:
        """Write payload to a temp file and rename it over the document."""
        temp_file = self.cache_file.with_suffix(".tmp")
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            temp_file.write_bytes(
                orjson.dumps(  # pylint: disable=no-member
                    payload,
                    option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS,  # pylint: disable=no-member
                )
            )
            temp_file.replace(self.cache_file)
        except OSError as e:
            logger.error(
                "Failed to save checksum cache %s: %s", self.cache_file, e
            )
            with contextlib.suppress(OSError):
                temp_file.unlink()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics for display."""
        return {
            "entries": len(self._records),
            "cache_file": str(self.cache_file),
            "exists": self.cache_file.exists(),
            "size_bytes": (
                self.cache_file.stat().st_size
                if self.cache_file.exists()
                else 0
            ),
        }
