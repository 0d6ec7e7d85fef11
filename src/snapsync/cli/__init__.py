"""Command-line interface for snapsync."""

from snapsync.cli.parser import CLIParser
from snapsync.cli.runner import CLIRunner

__all__ = ["CLIParser", "CLIRunner"]
