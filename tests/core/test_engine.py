"""Tests for the snapshot engine state machine."""

from unittest.mock import AsyncMock, patch

import pytest

from snapsync.core.engine import SnapshotEngine
from snapsync.domain.types import EngineState
from snapsync.exceptions import (
    ChecksumValidationExhausted,
    DownloadJobTimeout,
)

S = EngineState


@pytest.fixture(autouse=True)
def no_sleep():
    """Skip real delays between recovery attempts."""
    with patch("snapsync.core.recovery.asyncio.sleep", new=AsyncMock()):
        yield


@pytest.fixture
def contents():
    """Canonical bytes for a three-part snapshot."""
    return {"part1": b"A" * 50, "part2": b"B" * 50, "part3": b"C" * 50}


@pytest.fixture
def entries(contents, make_entry):
    """Manifest entries for the canonical parts."""
    return [make_entry(name, data) for name, data in contents.items()]


def make_engine(coordinator, downloader, state, max_attempts=3):
    """Build an engine without retry delay."""
    return SnapshotEngine(
        coordinator,
        downloader,
        state,
        max_attempts=max_attempts,
        retry_delay=0,
    )


class TestSync:
    """Test suite for SnapshotEngine.sync."""

    @pytest.mark.asyncio
    async def test_fresh_directory_downloads_and_validates(
        self, coordinator, state, make_downloader, contents, entries
    ):
        """Test the happy path: download everything, verify, done."""
        downloader = make_downloader(default=contents)
        engine = make_engine(coordinator, downloader, state)

        result = await engine.sync(entries, manifest_text="m1")

        assert result.state is S.ALL_VALID
        assert result.downloaded
        assert result.initial_pass.all_passed
        assert downloader.calls == [
            ("initial", ["part1", "part2", "part3"])
        ]
        assert result.history == [S.UNVERIFIED, S.VERIFYING, S.ALL_VALID]
        assert state.is_validated()
        assert state.load_manifest() == "m1"

    @pytest.mark.asyncio
    async def test_marker_short_circuits(
        self, coordinator, state, make_downloader, entries
    ):
        """Test an existing marker skips all verification work."""
        state.save_manifest("m1")
        state.create_marker(3)
        downloader = make_downloader()
        engine = make_engine(coordinator, downloader, state)

        with patch.object(coordinator, "verify_all") as verify_all:
            result = await engine.sync(entries, manifest_text="m1")

        verify_all.assert_not_called()
        assert result.short_circuited
        assert result.state is S.ALL_VALID
        assert downloader.calls == []

    @pytest.mark.asyncio
    async def test_manifest_change_resets_marker(
        self, coordinator, state, make_downloader, contents, entries
    ):
        """Test a new manifest forces a fresh verification."""
        state.save_manifest("old manifest")
        state.create_marker(3)
        downloader = make_downloader(default=contents)
        engine = make_engine(coordinator, downloader, state)

        result = await engine.sync(entries, manifest_text="new manifest")

        assert not result.short_circuited
        assert result.initial_pass is not None
        assert state.load_manifest() == "new manifest"

    @pytest.mark.asyncio
    async def test_present_parts_skip_full_download(
        self, coordinator, state, make_downloader, contents, entries,
        write_part,
    ):
        """Test an existing part suppresses the initial download."""
        write_part("part1", contents["part1"])
        downloader = make_downloader(default=contents)
        engine = make_engine(coordinator, downloader, state)

        result = await engine.sync(entries)

        assert not result.downloaded
        assert downloader.calls[0] == ("recovery-1", ["part2", "part3"])
        assert result.state is S.ALL_VALID
        assert result.history == [
            S.UNVERIFIED,
            S.VERIFYING,
            S.SOME_FAILED,
            S.RECOVERING,
            S.ALL_VALID,
        ]

    @pytest.mark.asyncio
    async def test_no_download_flag(
        self, coordinator, state, make_downloader, contents, entries
    ):
        """Test download=False verifies what is there and recovers."""
        downloader = make_downloader(default=contents)
        engine = make_engine(coordinator, downloader, state)

        result = await engine.sync(entries, download=False)

        assert not result.downloaded
        assert result.initial_pass.failures
        assert result.final_pass.all_passed

    @pytest.mark.asyncio
    async def test_failed_initial_download_goes_through_recovery(
        self, coordinator, state, make_downloader, contents, entries
    ):
        """Test a timed-out initial job surfaces as NotFound parts."""
        downloader = make_downloader(
            script=[DownloadJobTimeout("slow", target="initial")],
            default=contents,
        )
        engine = make_engine(coordinator, downloader, state)

        result = await engine.sync(entries)

        assert result.state is S.ALL_VALID
        assert len(result.initial_pass.failures) == 3
        assert downloader.calls[1][0] == "recovery-1"

    @pytest.mark.asyncio
    async def test_exhaustion(
        self, coordinator, state, make_downloader, contents, entries
    ):
        """Test the engine ends Exhausted when a part never heals."""
        broken = dict(contents, part2=b"bad")
        downloader = make_downloader(default=broken)
        engine = make_engine(coordinator, downloader, state, max_attempts=2)

        with pytest.raises(ChecksumValidationExhausted):
            await engine.sync(entries)

        assert engine.state is S.EXHAUSTED
        assert engine.history.count(S.RECOVERING) == 2
        assert engine.state.is_terminal
        assert not state.is_validated()


class TestRecoverOnly:
    """Test suite for SnapshotEngine.recover_only."""

    @pytest.mark.asyncio
    async def test_empty_ledger(
        self, coordinator, state, make_downloader, entries
    ):
        """Test nothing happens without a ledger."""
        downloader = make_downloader()
        engine = make_engine(coordinator, downloader, state)

        result = await engine.recover_only(entries)

        assert result.final_pass is None
        assert downloader.calls == []

    @pytest.mark.asyncio
    async def test_recovers_from_ledger_on_disk(
        self, coordinator, state, make_downloader, contents, entries,
        write_part,
    ):
        """Test the ledger left by an earlier pass drives recovery."""
        write_part("part1", contents["part1"])
        write_part("part3", contents["part3"])
        await coordinator.verify_all(entries)
        downloader = make_downloader(default=contents)
        engine = make_engine(coordinator, downloader, state)

        result = await engine.recover_only(entries)

        assert result.state is S.ALL_VALID
        assert downloader.calls == [("recovery-1", ["part2"])]
        assert state.is_validated()
