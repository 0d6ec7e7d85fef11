"""Verify command: script-compatible checksum validation.

Accepts a file count plus comma-separated checksum and filename lists,
paired by position. Exit status 0 means every file is valid (or the
directory was already validated), 2 means one or more files failed.
"""

from argparse import Namespace
from pathlib import Path

from snapsync.constants import ExitCode
from snapsync.core.manifest import entries_from_lists
from snapsync.exceptions import UsageError
from snapsync.logger import get_logger

from .base import BaseCommandHandler

logger = get_logger(__name__)


def split_list(value: str) -> list[str]:
    """Split a comma-separated argument, dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


class VerifyHandler(BaseCommandHandler):
    """Runs one verification pass over explicit lists."""

    def _data_dir(self, args: Namespace) -> Path:
        # Relative filenames resolve against the current directory unless
        # --dir is given, like the shell tooling this replaces.
        if args.data_dir:
            return super()._data_dir(args)
        return Path.cwd()

    async def execute(self, args: Namespace) -> ExitCode:
        """Execute the verify command."""
        checksums = split_list(args.checksums)
        filenames = split_list(args.filenames)

        if args.count != len(checksums) or args.count != len(filenames):
            msg = (
                f"expected {args.count} files, got {len(checksums)} "
                f"checksums and {len(filenames)} filenames"
            )
            raise UsageError(msg)

        entries = entries_from_lists(checksums, filenames)
        container = self._container(args)

        try:
            async with container.lock():
                if container.state.is_validated() and not args.force:
                    logger.info("Checksums already validated, nothing to do")
                    return ExitCode.OK

                result = await container.coordinator.verify_all(entries)
        finally:
            await container.cleanup()

        if result.all_passed:
            logger.info(
                "Validation details stored in cache file: %s",
                container.cache.cache_file,
            )
            return ExitCode.OK
        return ExitCode.CHECKSUM_FAILED
