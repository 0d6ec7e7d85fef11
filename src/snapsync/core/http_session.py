"""HTTP session utilities for snapsync."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import aiohttp

from snapsync.domain.types import GlobalConfig


@asynccontextmanager
async def create_http_session(
    global_config: GlobalConfig,
) -> AsyncIterator[aiohttp.ClientSession]:
    """Create configured HTTP session for manifest requests.

    Args:
        global_config: Global configuration dictionary

    Yields:
        Configured aiohttp.ClientSession

    """
    timeout_seconds = global_config["network"]["timeout_seconds"]

    timeout = aiohttp.ClientTimeout(
        total=timeout_seconds * 6,
        sock_read=timeout_seconds * 3,
        sock_connect=timeout_seconds,
    )
    connector = aiohttp.TCPConnector(limit=4, limit_per_host=2)

    async with aiohttp.ClientSession(
        timeout=timeout,
        connector=connector,
    ) as session:
        yield session
