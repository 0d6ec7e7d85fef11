"""Main CLI entry point for snapsync.

Provides the minimal entry point for the command-line interface,
delegating all functionality to the CLI runner and its command handlers.
"""

import sys

import uvloop

from snapsync.cli import CLIRunner
from snapsync.constants import ExitCode
from snapsync.logger import flush_all_handlers, get_logger

logger = get_logger(__name__)


async def async_main(argv: list[str] | None = None) -> ExitCode:
    """Run the CLI asynchronously and return its exit code."""
    logger.debug("CLI started")
    runner = CLIRunner()
    try:
        code = await runner.run(argv)
    except Exception:
        logger.exception("CLI encountered an error")
        raise
    logger.debug("CLI finished with exit code %d", code)
    return code


def main() -> None:
    """Run the CLI application on uvloop and exit with its code."""
    try:
        code = uvloop.run(async_main())
    except KeyboardInterrupt:
        logger.info("CLI cancelled by user")
        code = ExitCode.INTERRUPTED
    except Exception:
        logger.exception("❌ Unexpected error")
        code = ExitCode.ERROR
    finally:
        flush_all_handlers()
    sys.exit(int(code))


if __name__ == "__main__":
    main()
