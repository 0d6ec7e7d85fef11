"""Sync command: full download, verification and recovery run."""

from argparse import Namespace

from snapsync.constants import ExitCode
from snapsync.logger import get_logger

from .base import BaseCommandHandler

logger = get_logger(__name__)


class SyncHandler(BaseCommandHandler):
    """Drives the engine from manifest fetch to a terminal state."""

    async def execute(self, args: Namespace) -> ExitCode:
        """Execute the sync command.

        ChecksumValidationExhausted propagates to the runner.
        """
        container = self._container(args)
        try:
            async with container.lock():
                text, entries = await self._fetch_manifest(args, container)
                logger.info(
                    "Snapshot has %d parts in %s",
                    len(entries),
                    container.data_dir,
                )
                result = await container.engine.sync(
                    entries,
                    manifest_text=text,
                    download=not args.no_download,
                )
        finally:
            await container.cleanup()

        if not result.short_circuited:
            logger.info("✅ All %d parts verified", len(entries))
        return ExitCode.OK
