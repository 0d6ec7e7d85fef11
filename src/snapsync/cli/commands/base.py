"""Base command handler for snapsync CLI commands."""

from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from snapsync.cli.container import ServiceContainer
from snapsync.config import Paths
from snapsync.core.manifest import parse_manifest
from snapsync.exceptions import SnapsyncError, UsageError
from snapsync.logger import get_logger

if TYPE_CHECKING:
    from argparse import Namespace

    from snapsync.config import ConfigManager
    from snapsync.constants import ExitCode
    from snapsync.core.download import BulkDownloader
    from snapsync.domain.types import GlobalConfig, ManifestEntry

logger = get_logger(__name__)


class BaseCommandHandler(ABC):
    """Abstract base class for all command handlers.

    CLIRunner is the composition root: it loads the configuration once and
    hands it to every handler. Handlers build a ServiceContainer per run.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        global_config: GlobalConfig,
        downloader: BulkDownloader | None = None,
    ) -> None:
        """Initialize the command handler with shared dependencies.

        Args:
            config_manager: Configuration management instance
            global_config: Loaded global configuration
            downloader: Optional Bulk Downloader override

        """
        self.config_manager = config_manager
        self.global_config = global_config
        self.downloader = downloader

    @abstractmethod
    async def execute(self, args: Namespace) -> ExitCode:
        """Execute the command and return the process exit code."""

    def _effective_config(self, args: Namespace) -> GlobalConfig:
        """Return the global config with CLI overrides applied."""
        config = copy.deepcopy(self.global_config)
        snapshot = config["snapshot"]
        if getattr(args, "base_url", None):
            snapshot["base_url"] = args.base_url.rstrip("/")
        if getattr(args, "chain", None):
            snapshot["chain_name"] = args.chain
        if getattr(args, "snapshot_type", None):
            snapshot["snapshot_type"] = args.snapshot_type

        max_attempts = getattr(args, "max_attempts", None)
        if max_attempts is not None:
            if max_attempts < 1:
                msg = "--max-attempts must be at least 1"
                raise UsageError(msg)
            config["max_attempts"] = max_attempts

        workers = getattr(args, "workers", None)
        if workers is not None:
            if workers < 1:
                msg = "--workers must be at least 1"
                raise UsageError(msg)
            config["max_workers"] = workers
        return config

    def _data_dir(self, args: Namespace) -> Path:
        if getattr(args, "data_dir", None):
            return Paths.expand_path(args.data_dir)
        return self.global_config["directory"]["data"]

    def _ensure_directories(self, config: GlobalConfig) -> None:
        """Ensure the data and log directories exist."""
        try:
            self.config_manager.ensure_directories_from_config(config)
        except ValueError as e:
            raise SnapsyncError(str(e)) from e

    def _container(self, args: Namespace) -> ServiceContainer:
        config = self._effective_config(args)
        data_dir = self._data_dir(args)
        config["directory"]["data"] = data_dir
        self._ensure_directories(config)
        return ServiceContainer(config, data_dir, self.downloader)

    async def _fetch_manifest(
        self, args: Namespace, container: ServiceContainer
    ) -> tuple[str, list[ManifestEntry]]:
        """Fetch and parse the manifest named on the command line.

        Resolves the latest snapshot when no --manifest-url is given.
        """
        source = await container.manifest_source()
        if getattr(args, "manifest_url", None):
            url = args.manifest_url
            text = await source.fetch_text(url)
        else:
            url, text = await source.fetch_latest()
        logger.info("Using manifest %s", url)
        return text, parse_manifest(text, source.part_url_prefix)

    def _stored_manifest(
        self, container: ServiceContainer
    ) -> tuple[str, list[ManifestEntry]] | None:
        """Parse the manifest copy saved by the last sync, if any."""
        text = container.state.load_manifest()
        if text is None:
            return None
        snapshot = container.config["snapshot"]
        prefix = f"{snapshot['base_url']}/{snapshot['chain_name']}"
        return text, parse_manifest(text, prefix)
