"""Bulk Downloader: runs an external download tool as a scoped job.

The transport itself (segmented HTTP, resumption, connection reuse) is
delegated to aria2c. This module only starts the tool for a named job,
watches it, and decides whether the job completed.

Each job gets its own input file listing exactly the URLs it must fetch,
so a recovery job for three failed parts never restarts or touches the
other parts of the snapshot.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from snapsync.exceptions import (
    DownloadJobError,
    DownloadJobTimeout,
    DownloadJobVanished,
)
from snapsync.logger import get_logger

if TYPE_CHECKING:
    from snapsync.domain.types import DownloaderConfig, ManifestEntry

logger = get_logger(__name__)

# aria2c keeps "<file>.aria2" next to a part while it is incomplete
CONTROL_FILE_SUFFIX = ".aria2"
LOG_TAIL_LINES = 20


class BulkDownloader(Protocol):
    """Anything able to fetch a set of manifest entries into a directory."""

    async def download(
        self, entries: list[ManifestEntry], job_name: str
    ) -> None:
        """Fetch ``entries`` and return once every file is complete.

        Raises:
            DownloadJobError: If the job fails, times out or vanishes

        """
        ...


class Aria2Downloader:
    """Runs aria2c for a set of manifest entries."""

    def __init__(self, data_dir: Path, config: DownloaderConfig) -> None:
        """Initialize downloader.

        Args:
            data_dir: Directory parts are written into
            config: Tool command, connection count and timeouts

        """
        self.data_dir = data_dir
        self.config = config

    def _job_files(self, job_name: str) -> tuple[Path, Path]:
        stem = f".snapsync-{job_name}"
        return (
            self.data_dir / f"{stem}.input",
            self.data_dir / f"{stem}.log",
        )

    def build_command(self, input_file: Path, log_file: Path) -> list[str]:
        """Return the argv for one job."""
        connections = str(self.config["connections"])
        return [
            self.config["command"],
            "--continue=true",
            "--auto-file-renaming=false",
            "--allow-overwrite=true",
            "--console-log-level=warn",
            "--summary-interval=0",
            "--log-level=notice",
            f"--log={log_file}",
            f"--max-connection-per-server={connections}",
            f"--split={connections}",
            f"--dir={self.data_dir}",
            f"--input-file={input_file}",
        ]

    @staticmethod
    def build_input(entries: list[ManifestEntry]) -> str:
        """Render an aria2c input file pinning each URL to its filename."""
        lines = []
        for entry in entries:
            lines.append(entry.source_url)
            lines.append(f"  out={entry.filename}")
        return "\n".join(lines) + "\n"

    async def download(
        self, entries: list[ManifestEntry], job_name: str
    ) -> None:
        """Run one download job to completion.

        Raises:
            DownloadJobTimeout: The tool did not start or finish in time
            DownloadJobVanished: The tool exited with parts incomplete
            DownloadJobError: The tool is missing or reported an error

        """
        if not entries:
            logger.debug("Download job %s has nothing to fetch", job_name)
            return

        self.data_dir.mkdir(parents=True, exist_ok=True)
        input_file, log_file = self._job_files(job_name)
        input_file.write_text(self.build_input(entries), encoding="utf-8")
        command = self.build_command(input_file, log_file)

        logger.info(
            "Starting download job %s for %d parts", job_name, len(entries)
        )
        logger.debug("   Command: %s", " ".join(command))

        process: asyncio.subprocess.Process | None = None
        try:
            process = await self._start(command, job_name)
            await self._watch(process, job_name)
            self._check_complete(entries, job_name, process.returncode)
        except DownloadJobError:
            self._log_tail(log_file)
            raise
        finally:
            if process is not None:
                await self._teardown(process, job_name)
            with contextlib.suppress(FileNotFoundError):
                input_file.unlink()

        logger.info("Download job %s completed", job_name)

    async def _start(
        self, command: list[str], job_name: str
    ) -> asyncio.subprocess.Process:
        try:
            return await asyncio.wait_for(
                asyncio.create_subprocess_exec(
                    *command,
                    cwd=self.data_dir,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                ),
                timeout=self.config["start_timeout_seconds"],
            )
        except TimeoutError as e:
            msg = (
                "did not start within "
                f"{self.config['start_timeout_seconds']}s"
            )
            raise DownloadJobTimeout(msg, target=job_name) from e
        except OSError as e:
            msg = f"cannot run {command[0]}: {e}"
            raise DownloadJobError(msg, target=job_name) from e

    async def _watch(
        self, process: asyncio.subprocess.Process, job_name: str
    ) -> None:
        """Wait for the job, polling so a job timeout can be enforced."""
        job_timeout = self.config["job_timeout_seconds"]
        poll_interval = self.config["poll_interval_seconds"]
        started = time.monotonic()

        while True:
            try:
                await asyncio.wait_for(process.wait(), timeout=poll_interval)
                return
            except TimeoutError:
                elapsed = time.monotonic() - started
                logger.debug(
                    "Download job %s still running (%.0fs)", job_name, elapsed
                )
                if job_timeout and elapsed >= job_timeout:
                    msg = f"still running after {job_timeout}s"
                    raise DownloadJobTimeout(msg, target=job_name) from None

    def _check_complete(
        self,
        entries: list[ManifestEntry],
        job_name: str,
        returncode: int | None,
    ) -> None:
        incomplete = [
            entry.filename
            for entry in entries
            if not (self.data_dir / entry.filename).exists()
            or (
                self.data_dir / f"{entry.filename}{CONTROL_FILE_SUFFIX}"
            ).exists()
        ]

        if returncode is not None and returncode < 0:
            msg = (
                f"terminated by signal {-returncode} with "
                f"{len(incomplete)} parts incomplete"
            )
            raise DownloadJobVanished(msg, target=job_name)

        if returncode:
            msg = f"exited with status {returncode}"
            raise DownloadJobError(msg, target=job_name)

        if incomplete:
            msg = (
                f"exited cleanly but {len(incomplete)} parts are "
                f"incomplete: {', '.join(incomplete)}"
            )
            raise DownloadJobVanished(msg, target=job_name)

    async def _teardown(
        self, process: asyncio.subprocess.Process, job_name: str
    ) -> None:
        """Kill the job process if it is still alive."""
        if process.returncode is not None:
            return
        logger.warning("Tearing down download job %s", job_name)
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        with contextlib.suppress(ProcessLookupError):
            await process.wait()

    def _log_tail(self, log_file: Path) -> None:
        if not log_file.exists():
            return
        try:
            lines = log_file.read_text(
                encoding="utf-8", errors="ignore"
            ).splitlines()
        except OSError:
            return
        for line in lines[-LOG_TAIL_LINES:]:
            logger.debug("   %s", line)
