"""Manifest parsing and retrieval.

A manifest is plain text with one part per line::

    <hex-checksum>  <relative-or-absolute-path>

The basename of the path becomes the on-disk filename. Relative paths are
resolved against the chain's URL prefix on the snapshot host; paths that
already carry a URL scheme are used as-is. Blank lines are ignored; any
other malformed line rejects the whole manifest.
"""

import asyncio
import re
from collections.abc import Awaitable, Callable
from typing import TypeVar
from urllib.parse import urlparse

import aiohttp

from snapsync.constants import HASH_HEX_LENGTH, MANIFEST_FIELD_SEPARATOR
from snapsync.domain.types import ManifestEntry, NetworkConfig, SnapshotConfig
from snapsync.exceptions import ManifestFetchError, ManifestParseError
from snapsync.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")

CONTENT_PREVIEW_MAX = 200


def _join_url(prefix: str, path: str) -> str:
    if urlparse(path).scheme:
        return path
    if not prefix:
        return path
    return f"{prefix.rstrip('/')}/{path.lstrip('/')}"


def parse_manifest(
    text: str,
    url_prefix: str = "",
    digest_length: int = HASH_HEX_LENGTH,
) -> list[ManifestEntry]:
    """Parse manifest text into entries, preserving manifest order.

    Args:
        text: Raw manifest content
        url_prefix: Prefix joined with relative paths to form part URLs
        digest_length: Required length of every hex checksum

    Returns:
        Parsed entries

    Raises:
        ManifestParseError: On a malformed line or a duplicate filename

    """
    entries: list[ManifestEntry] = []
    seen: dict[str, int] = {}

    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line:
            continue

        checksum, sep, path = line.partition(MANIFEST_FIELD_SEPARATOR)
        checksum = checksum.strip()
        path = path.strip()

        if not sep or not path:
            msg = f"line {line_number}: expected '<checksum>  <path>'"
            raise ManifestParseError(msg, line_number=line_number)

        if not _HEX_RE.match(checksum) or len(checksum) != digest_length:
            msg = (
                f"line {line_number}: invalid checksum {checksum!r} "
                f"(expected {digest_length} hex characters)"
            )
            raise ManifestParseError(msg, line_number=line_number)

        filename = path.rstrip("/").rsplit("/", 1)[-1]
        if not filename or filename in {".", ".."}:
            msg = f"line {line_number}: path {path!r} has no filename"
            raise ManifestParseError(msg, line_number=line_number)

        if filename in seen:
            msg = (
                f"line {line_number}: duplicate filename "
                f"(first seen on line {seen[filename]})"
            )
            raise ManifestParseError(
                msg, target=filename, line_number=line_number
            )
        seen[filename] = line_number

        entries.append(
            ManifestEntry(
                checksum=checksum,
                source_url=_join_url(url_prefix, path),
                filename=filename,
            )
        )

    logger.debug("Parsed %d manifest entries", len(entries))
    return entries


def entries_from_lists(
    checksums: list[str], filenames: list[str]
) -> list[ManifestEntry]:
    """Pair checksums and filenames by position.

    Used by the script-compatible ``verify`` command, which receives the
    manifest already split into two comma-separated lists.

    Raises:
        ManifestParseError: If the lists differ in length, a checksum is not
            hex, or a filename repeats

    """
    if len(checksums) != len(filenames):
        msg = (
            f"{len(checksums)} checksums but {len(filenames)} filenames"
        )
        raise ManifestParseError(msg)

    entries: list[ManifestEntry] = []
    seen: set[str] = set()
    for position, (checksum, filename) in enumerate(
        zip(checksums, filenames, strict=True), start=1
    ):
        checksum = checksum.strip()
        filename = filename.strip()
        if not checksum or not _HEX_RE.match(checksum):
            msg = f"position {position}: invalid checksum {checksum!r}"
            raise ManifestParseError(msg, line_number=position)
        if not filename:
            msg = f"position {position}: empty filename"
            raise ManifestParseError(msg, line_number=position)
        if filename in seen:
            msg = f"position {position}: duplicate filename"
            raise ManifestParseError(
                msg, target=filename, line_number=position
            )
        seen.add(filename)
        entries.append(
            ManifestEntry(
                checksum=checksum, source_url="", filename=filename
            )
        )
    return entries


class ManifestSource:
    """Fetches manifests from the snapshot host over HTTP."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        snapshot_config: SnapshotConfig,
        network_config: NetworkConfig,
    ) -> None:
        """Initialize manifest source.

        Args:
            session: aiohttp session for requests
            snapshot_config: Snapshot host settings
            network_config: Retry and timeout settings

        """
        self.session = session
        self.snapshot_config = snapshot_config
        self.network_config = network_config

    @property
    def base_url(self) -> str:
        """Snapshot host root URL without trailing slash."""
        return self.snapshot_config["base_url"].rstrip("/")

    @property
    def part_url_prefix(self) -> str:
        """Prefix that relative manifest paths are joined with."""
        return f"{self.base_url}/{self.snapshot_config['chain_name']}"

    async def resolve_latest(self) -> str:
        """Return the latest snapshot path published for the chain.

        The host publishes ``<chain>/latest-<type>.txt`` whose content is the
        snapshot path, e.g. ``arb1/2024-06-01-abcd/pruned.tar``.
        """
        chain = self.snapshot_config["chain_name"]
        snapshot_type = self.snapshot_config["snapshot_type"]
        url = f"{self.base_url}/{chain}/latest-{snapshot_type}.txt"
        snapshot_dir = (await self.fetch_text(url)).strip()
        if not snapshot_dir:
            msg = "latest snapshot pointer is empty"
            raise ManifestFetchError(msg, target=url)
        logger.info("Latest %s snapshot: %s", snapshot_type, snapshot_dir)
        return snapshot_dir

    def manifest_url(self, snapshot_dir: str) -> str:
        """Return the manifest URL for a snapshot path."""
        return f"{self.base_url}/{snapshot_dir.strip('/')}.manifest.txt"

    async def fetch_latest(self) -> tuple[str, str]:
        """Resolve the latest snapshot and fetch its manifest.

        Returns:
            Tuple of (manifest_url, manifest_text)

        """
        url = self.manifest_url(await self.resolve_latest())
        return url, await self.fetch_text(url)

    async def fetch_text(self, url: str) -> str:
        """Fetch a text document with retry logic.

        Raises:
            ManifestFetchError: If the request fails after all retries

        """

        async def process(response: aiohttp.ClientResponse) -> str:
            content = await response.text()
            logger.debug("Fetched %s (%d characters)", url, len(content))
            logger.debug(
                "   Content preview: %s%s",
                content[:CONTENT_PREVIEW_MAX],
                "..." if len(content) > CONTENT_PREVIEW_MAX else "",
            )
            return content

        return await self._make_request_with_retry(url, process)

    def _timeout(self) -> aiohttp.ClientTimeout:
        timeout_seconds = self.network_config["timeout_seconds"]
        return aiohttp.ClientTimeout(
            total=timeout_seconds * 6,
            sock_read=timeout_seconds * 3,
            sock_connect=timeout_seconds,
        )

    async def _make_request_with_retry(
        self,
        url: str,
        process_callback: Callable[[aiohttp.ClientResponse], Awaitable[T]],
    ) -> T:
        """Make HTTP GET request with exponential backoff retries."""
        retry_attempts = self.network_config["retry_attempts"]
        timeout = self._timeout()

        for attempt in range(1, retry_attempts + 1):
            try:
                async with self.session.get(url, timeout=timeout) as response:
                    response.raise_for_status()
                    return await process_callback(response)

            except (aiohttp.ClientError, TimeoutError) as e:
                logger.warning(
                    "Attempt %s/%s failed for %s: %s",
                    attempt,
                    retry_attempts,
                    url,
                    e,
                )

                if attempt == retry_attempts:
                    msg = f"failed after {retry_attempts} attempts: {e}"
                    raise ManifestFetchError(msg, target=url) from e

                backoff = 2**attempt
                logger.info("Retrying in %s seconds...", backoff)
                await asyncio.sleep(backoff)

        msg = "no request attempted"
        raise ManifestFetchError(msg, target=url)
