"""Tests for the aria2c-backed Bulk Downloader."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from snapsync.core.download import Aria2Downloader
from snapsync.exceptions import (
    DownloadJobError,
    DownloadJobTimeout,
    DownloadJobVanished,
)

CREATE_EXEC = "snapsync.core.download.asyncio.create_subprocess_exec"


class FakeProcess:
    """Stand-in for asyncio.subprocess.Process."""

    def __init__(self, returncode=0, on_exit=None, hang=False):
        self._final_code = returncode
        self._on_exit = on_exit
        self._exited = asyncio.Event()
        self.returncode = None
        self.killed = False
        if not hang:
            self._finish(returncode)

    def _finish(self, code):
        if self._on_exit is not None:
            self._on_exit()
        self.returncode = code
        self._exited.set()

    async def wait(self):
        await self._exited.wait()
        return self.returncode

    def kill(self):
        self.killed = True
        self._finish(-9)


@pytest.fixture
def downloader_config():
    """Fast timeouts for tests."""
    return {
        "command": "aria2c",
        "connections": 8,
        "start_timeout_seconds": 1,
        "job_timeout_seconds": 0,
        "poll_interval_seconds": 0.01,
    }


@pytest.fixture
def downloader(data_dir, downloader_config):
    """Provide a downloader writing into the data directory."""
    return Aria2Downloader(data_dir, downloader_config)


@pytest.fixture
def entries(make_entry):
    """Two parts to fetch."""
    return [make_entry("part1", b"one"), make_entry("part2", b"two")]


def write_all(data_dir, names):
    """Return a callback that creates ``names`` in the data dir."""

    def _write():
        for name in names:
            (data_dir / name).write_bytes(b"x")

    return _write


class TestJobDescription:
    """Command line and input file rendering."""

    def test_build_input_pins_filenames(self, entries):
        """Test every URL is followed by its output filename."""
        text = Aria2Downloader.build_input(entries)

        assert text == (
            "https://host/arb1/part1\n"
            "  out=part1\n"
            "https://host/arb1/part2\n"
            "  out=part2\n"
        )

    def test_build_command(self, downloader, data_dir):
        """Test resume, connection and directory options are passed."""
        command = downloader.build_command(
            data_dir / "job.input", data_dir / "job.log"
        )

        assert command[0] == "aria2c"
        assert "--continue=true" in command
        assert "--max-connection-per-server=8" in command
        assert "--split=8" in command
        assert f"--dir={data_dir}" in command
        assert f"--input-file={data_dir / 'job.input'}" in command


class TestDownload:
    """Test suite for Aria2Downloader.download."""

    @pytest.mark.asyncio
    async def test_successful_job(self, downloader, data_dir, entries):
        """Test a clean exit with all files present succeeds."""
        process = FakeProcess(
            on_exit=write_all(data_dir, ["part1", "part2"])
        )
        with patch(CREATE_EXEC, new=AsyncMock(return_value=process)) as run:
            await downloader.download(entries, job_name="initial")

        args = run.call_args.args
        input_arg = next(a for a in args if a.startswith("--input-file="))
        assert input_arg.endswith(".snapsync-initial.input")
        assert not (data_dir / ".snapsync-initial.input").exists()

    @pytest.mark.asyncio
    async def test_job_only_lists_its_entries(
        self, downloader, data_dir, entries
    ):
        """Test a scoped job's input file names only its own parts."""
        seen = {}

        async def capture(*args, **kwargs):
            input_file = data_dir / ".snapsync-recovery-1.input"
            seen["text"] = input_file.read_text()
            return FakeProcess(on_exit=write_all(data_dir, ["part2"]))

        with patch(CREATE_EXEC, side_effect=capture):
            await downloader.download(entries[1:], job_name="recovery-1")

        assert "part2" in seen["text"]
        assert "part1" not in seen["text"]

    @pytest.mark.asyncio
    async def test_empty_job_does_not_start(self, downloader):
        """Test no process is spawned for an empty entry list."""
        with patch(CREATE_EXEC, new=AsyncMock()) as run:
            await downloader.download([], job_name="noop")
        run.assert_not_called()

    @pytest.mark.asyncio
    async def test_nonzero_exit_is_job_error(
        self, downloader, data_dir, entries
    ):
        """Test a failing tool raises DownloadJobError."""
        with patch(
            CREATE_EXEC, new=AsyncMock(return_value=FakeProcess(returncode=3))
        ):
            with pytest.raises(DownloadJobError, match="status 3"):
                await downloader.download(entries, job_name="initial")

    @pytest.mark.asyncio
    async def test_clean_exit_with_control_file_is_vanished(
        self, downloader, data_dir, entries
    ):
        """Test an .aria2 control file marks the part incomplete."""
        process = FakeProcess(
            on_exit=write_all(data_dir, ["part1", "part2", "part2.aria2"])
        )
        with patch(CREATE_EXEC, new=AsyncMock(return_value=process)):
            with pytest.raises(DownloadJobVanished, match="part2"):
                await downloader.download(entries, job_name="initial")

    @pytest.mark.asyncio
    async def test_clean_exit_with_missing_file_is_vanished(
        self, downloader, data_dir, entries
    ):
        """Test a missing output file marks the job vanished."""
        process = FakeProcess(on_exit=write_all(data_dir, ["part1"]))
        with patch(CREATE_EXEC, new=AsyncMock(return_value=process)):
            with pytest.raises(DownloadJobVanished):
                await downloader.download(entries, job_name="initial")

    @pytest.mark.asyncio
    async def test_killed_by_signal_is_vanished(self, downloader, entries):
        """Test termination by a signal is reported as vanished."""
        with patch(
            CREATE_EXEC,
            new=AsyncMock(return_value=FakeProcess(returncode=-15)),
        ):
            with pytest.raises(DownloadJobVanished, match="signal 15"):
                await downloader.download(entries, job_name="initial")

    @pytest.mark.asyncio
    async def test_job_timeout_kills_process(
        self, data_dir, downloader_config, entries
    ):
        """Test a job exceeding its timeout is torn down."""
        downloader_config["job_timeout_seconds"] = 0.05
        downloader = Aria2Downloader(data_dir, downloader_config)
        process = FakeProcess(hang=True)

        with patch(CREATE_EXEC, new=AsyncMock(return_value=process)):
            with pytest.raises(DownloadJobTimeout):
                await downloader.download(entries, job_name="initial")

        assert process.killed

    @pytest.mark.asyncio
    async def test_start_timeout(self, data_dir, downloader_config, entries):
        """Test a tool that never starts raises DownloadJobTimeout."""
        downloader_config["start_timeout_seconds"] = 0.01
        downloader = Aria2Downloader(data_dir, downloader_config)

        async def never_starts(*args, **kwargs):
            await asyncio.sleep(10)

        with patch(CREATE_EXEC, side_effect=never_starts):
            with pytest.raises(DownloadJobTimeout, match="did not start"):
                await downloader.download(entries, job_name="initial")

    @pytest.mark.asyncio
    async def test_missing_tool(self, downloader, entries):
        """Test a missing executable raises DownloadJobError."""
        with patch(CREATE_EXEC, side_effect=FileNotFoundError("aria2c")):
            with pytest.raises(DownloadJobError, match="cannot run"):
                await downloader.download(entries, job_name="initial")
