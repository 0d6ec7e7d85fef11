"""CLI argument parser for snapsync."""

import argparse
from argparse import Namespace
from typing import Any


class CLIParser:
    """Command-line argument parser for snapsync."""

    def __init__(self, global_config: dict[str, Any]) -> None:
        """Initialize the CLI parser with global configuration.

        Args:
            global_config: Loaded configuration, used for help defaults.

        """
        self.global_config = global_config

    def parse_args(self, argv: list[str] | None = None) -> Namespace:
        """Parse command-line arguments.

        Args:
            argv: Arguments to parse; sys.argv[1:] when None.

        """
        parser = self.build()
        return parser.parse_args(argv)

    def build(self) -> argparse.ArgumentParser:
        """Build the full parser with all subcommands."""
        parser = self._create_main_parser()
        self._add_global_options(parser)
        self._add_subcommands(parser)
        return parser

    def _create_main_parser(self) -> argparse.ArgumentParser:
        return argparse.ArgumentParser(
            prog="snapsync",
            description="Snapshot download and checksum verification",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Download, verify and repair the latest snapshot
  %(prog)s sync --dir /data/arbitrum

  # Verify parts against explicit checksum and filename lists
  %(prog)s verify 2 "abc...,def..." "part1.tar,part2.tar"

  # Redownload parts listed in the failure ledger
  %(prog)s recover --dir /data/arbitrum

  # Unpack a validated snapshot
  %(prog)s extract --dir /data/arbitrum --target /data/arbitrum/nitro

Exit codes:
  0  all parts valid
  2  validation finished with failed parts (see failure ledger)
  3  recovery attempts exhausted
            """,
        )

    def _add_global_options(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--version",
            action="store_true",
            help="Show snapsync version and exit",
        )

    def _add_subcommands(self, parser: argparse.ArgumentParser) -> None:
        subparsers = parser.add_subparsers(
            dest="command", help="Available commands"
        )

        self._add_verify_command(subparsers)
        self._add_sync_command(subparsers)
        self._add_recover_command(subparsers)
        self._add_extract_command(subparsers)
        self._add_cache_command(subparsers)

    def _add_common_options(self, parser: argparse.ArgumentParser) -> None:
        default_dir = self.global_config.get("directory", {}).get("data")
        parser.add_argument(
            "--dir",
            dest="data_dir",
            help=f"Data directory (default: {default_dir})",
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show debug output",
        )

    def _add_manifest_options(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--manifest-url",
            help="Fetch this manifest instead of resolving the latest one",
        )
        parser.add_argument("--base-url", help="Snapshot host root URL")
        parser.add_argument("--chain", help="Chain name on the snapshot host")
        parser.add_argument(
            "--type", dest="snapshot_type", help="Snapshot type"
        )
        parser.add_argument(
            "--max-attempts",
            type=int,
            help="Recovery attempts before giving up",
        )

    def _add_verify_command(self, subparsers) -> None:
        verify_parser = subparsers.add_parser(
            "verify",
            help="Verify parts against checksum and filename lists",
        )
        verify_parser.add_argument(
            "count", type=int, help="Number of files to verify"
        )
        verify_parser.add_argument(
            "checksums", help="Comma-separated expected checksums"
        )
        verify_parser.add_argument(
            "filenames", help="Comma-separated filenames, same order"
        )
        verify_parser.add_argument(
            "--workers",
            type=int,
            help="Parallel hash workers (default: CPU count)",
        )
        verify_parser.add_argument(
            "--force",
            action="store_true",
            help="Verify even if the validation marker exists",
        )
        self._add_common_options(verify_parser)

    def _add_sync_command(self, subparsers) -> None:
        sync_parser = subparsers.add_parser(
            "sync",
            help="Download, verify and repair a snapshot",
        )
        sync_parser.add_argument(
            "--no-download",
            action="store_true",
            help="Verify existing parts without the initial full download",
        )
        self._add_manifest_options(sync_parser)
        self._add_common_options(sync_parser)

    def _add_recover_command(self, subparsers) -> None:
        recover_parser = subparsers.add_parser(
            "recover",
            help="Redownload parts listed in the failure ledger",
        )
        self._add_manifest_options(recover_parser)
        self._add_common_options(recover_parser)

    def _add_extract_command(self, subparsers) -> None:
        extract_parser = subparsers.add_parser(
            "extract",
            help="Unpack validated parts into a directory",
        )
        extract_parser.add_argument(
            "--target",
            help="Extraction directory (default: <dir>/nitro)",
        )
        self._add_common_options(extract_parser)

    def _add_cache_command(self, subparsers) -> None:
        cache_parser = subparsers.add_parser(
            "cache",
            help="Inspect or clear the checksum cache",
        )
        group = cache_parser.add_mutually_exclusive_group(required=True)
        group.add_argument(
            "--stats", action="store_true", help="Show cache statistics"
        )
        group.add_argument(
            "--clear", action="store_true", help="Remove all cache entries"
        )
        self._add_common_options(cache_parser)
