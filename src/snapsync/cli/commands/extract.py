"""Extract command: unpack a validated snapshot."""

from argparse import Namespace

from snapsync.config import Paths
from snapsync.constants import ExitCode
from snapsync.core.extract import extract_parts
from snapsync.logger import get_logger

from .base import BaseCommandHandler

logger = get_logger(__name__)

DEFAULT_TARGET_NAME = "nitro"


class ExtractHandler(BaseCommandHandler):
    """Streams the parts, in manifest order, through tar."""

    async def execute(self, args: Namespace) -> ExitCode:
        """Execute the extract command."""
        container = self._container(args)
        target = (
            Paths.expand_path(args.target)
            if args.target
            else container.data_dir / DEFAULT_TARGET_NAME
        )
        try:
            async with container.lock():
                stored = self._stored_manifest(container)
                if stored is None:
                    logger.error(
                        "No stored manifest in %s; run sync first",
                        container.data_dir,
                    )
                    return ExitCode.ERROR
                _, entries = stored
                await extract_parts(
                    entries, container.data_dir, target, container.state
                )
        finally:
            await container.cleanup()
        return ExitCode.OK
