"""Recover command: rerun only the recovery phase from the ledger."""

from argparse import Namespace

from snapsync.constants import ExitCode
from snapsync.logger import get_logger

from .base import BaseCommandHandler

logger = get_logger(__name__)


class RecoverHandler(BaseCommandHandler):
    """Redownloads ledger-listed parts using the stored manifest."""

    async def execute(self, args: Namespace) -> ExitCode:
        """Execute the recover command."""
        container = self._container(args)
        try:
            async with container.lock():
                if args.manifest_url:
                    text, entries = await self._fetch_manifest(
                        args, container
                    )
                    if container.state.manifest_changed(text):
                        logger.error(
                            "Manifest differs from the one the ledger was "
                            "written for; run sync instead"
                        )
                        return ExitCode.ERROR
                else:
                    stored = self._stored_manifest(container)
                    if stored is None:
                        logger.error(
                            "No stored manifest in %s; run sync first",
                            container.data_dir,
                        )
                        return ExitCode.ERROR
                    _, entries = stored

                result = await container.engine.recover_only(entries)
        finally:
            await container.cleanup()

        if result.final_pass is None and not container.state.is_validated():
            logger.info("Nothing recovered; directory is not validated yet")
        return ExitCode.OK
