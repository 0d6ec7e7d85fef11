"""CLI runner for snapsync.

Orchestrates the execution of CLI commands by routing parsed
arguments to the appropriate command handlers, and maps their outcome
to a process exit code.
"""

from argparse import Namespace

from snapsync import __version__
from snapsync.cli.commands import (
    CacheHandler,
    ExtractHandler,
    RecoverHandler,
    SyncHandler,
    VerifyHandler,
)
from snapsync.cli.parser import CLIParser
from snapsync.config import ConfigManager
from snapsync.constants import ExitCode
from snapsync.exceptions import (
    ChecksumValidationExhausted,
    SnapsyncError,
    UsageError,
)
from snapsync.logger import (
    get_logger,
    restore_console_level,
    set_console_level,
    update_logger_from_config,
)

logger = get_logger(__name__)


class CLIRunner:
    """CLI command runner and orchestrator."""

    def __init__(
        self, config_manager: ConfigManager | None = None, downloader=None
    ) -> None:
        """Initialize CLI runner with shared dependencies.

        Args:
            config_manager: Configuration manager; default location when
                omitted
            downloader: Optional Bulk Downloader override for all commands

        """
        self.config_manager = config_manager or ConfigManager()
        self.global_config = self.config_manager.load_global_config()
        update_logger_from_config(self.global_config)
        self._init_command_handlers(downloader)

    def _init_command_handlers(self, downloader) -> None:
        shared = (self.config_manager, self.global_config, downloader)
        self.command_handlers = {
            "verify": VerifyHandler(*shared),
            "sync": SyncHandler(*shared),
            "recover": RecoverHandler(*shared),
            "extract": ExtractHandler(*shared),
            "cache": CacheHandler(*shared),
        }

    async def run(self, argv: list[str] | None = None) -> ExitCode:
        """Run the CLI application.

        Args:
            argv: Arguments to parse; sys.argv[1:] when None.

        Returns:
            Exit code for the process

        """
        parser = CLIParser(self.global_config)
        try:
            args = parser.parse_args(argv)
        except SystemExit as e:
            # argparse exits 2 on bad usage, which would read as
            # "checksum failed"; --help exits 0.
            return ExitCode.OK if e.code == 0 else ExitCode.USAGE

        if getattr(args, "version", False):
            print(__version__)
            return ExitCode.OK

        if not args.command:
            print("❌ No command specified. Use --help.")
            return ExitCode.USAGE

        try:
            return await self._execute_command(args)
        except UsageError as e:
            logger.error("%s", e)
            return ExitCode.USAGE
        except ChecksumValidationExhausted as e:
            logger.error("%s", e)
            for filename in e.failed:
                logger.error("   Still failing: %s", filename)
            return ExitCode.EXHAUSTED
        except SnapsyncError as e:
            logger.error("%s", e)
            return ExitCode.ERROR
        except KeyboardInterrupt:
            print("\n⏹️  Operation cancelled by user")
            return ExitCode.INTERRUPTED

    async def _execute_command(self, args: Namespace) -> ExitCode:
        """Execute the specified command with the appropriate handler.

        Args:
            args: Parsed command-line arguments namespace.

        """
        handler = self.command_handlers[args.command]
        verbose = getattr(args, "verbose", False)

        if verbose:
            set_console_level("DEBUG")
        try:
            return await handler.execute(args)
        finally:
            if verbose:
                restore_console_level()
