"""Cache command: inspect or clear the checksum cache."""

from argparse import Namespace

from snapsync.constants import ExitCode
from snapsync.logger import get_logger

from .base import BaseCommandHandler

logger = get_logger(__name__)


class CacheHandler(BaseCommandHandler):
    """Thin coordinator for checksum cache maintenance."""

    async def execute(self, args: Namespace) -> ExitCode:
        """Execute the cache command."""
        container = self._container(args)
        try:
            async with container.lock():
                if args.clear:
                    removed = await container.cache.clear()
                    logger.info("Removed %d checksum cache entries", removed)
                else:
                    self._show_stats(container.cache.stats())
        finally:
            await container.cleanup()
        return ExitCode.OK

    def _show_stats(self, stats: dict) -> None:
        logger.info("Checksum cache: %s", stats["cache_file"])
        logger.info("   Entries: %d", stats["entries"])
        logger.info("   Size:    %d bytes", stats["size_bytes"])
