"""Unit tests for the repository sync gate."""

import os
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from gentup.portage.sync import SyncGate, SyncOutcome
from gentup.utils.shell import CommandResult

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


@pytest.fixture
def timestamp(tmp_path: Path) -> Path:
    """A repository timestamp file."""
    path = tmp_path / "timestamp"
    path.write_text("Sun, 01 Mar 2026 10:00:00 +0000\n")
    return path


def _age(path: Path, delta: timedelta) -> None:
    mtime = (NOW - delta).timestamp()
    os.utime(path, (mtime, mtime))


def _sync(returncode: int = 0) -> MagicMock:
    return MagicMock(return_value=CommandResult(stdout="", stderr="", returncode=returncode))


class TestSyncGate:
    """Tests for SyncGate."""

    def test_recent_sync_is_skipped(self, timestamp: Path) -> None:
        """A sync two hours ago skips without invoking the sync command."""
        _age(timestamp, timedelta(hours=2))
        sync = _sync()
        gate = SyncGate(timestamp, sync_command=sync)

        assert gate.run(now=NOW) is SyncOutcome.SKIPPED
        sync.assert_not_called()

    def test_old_sync_runs_once(self, timestamp: Path) -> None:
        """A sync older than the interval runs exactly once."""
        _age(timestamp, timedelta(hours=25))
        sync = _sync()
        gate = SyncGate(timestamp, sync_command=sync)

        assert gate.run(now=NOW) is SyncOutcome.SYNCED
        sync.assert_called_once()

    def test_force_overrides_gate(self, timestamp: Path) -> None:
        """force syncs even right after a previous sync."""
        _age(timestamp, timedelta(minutes=5))
        sync = _sync()
        gate = SyncGate(timestamp, sync_command=sync)

        assert gate.run(force=True, now=NOW) is SyncOutcome.SYNCED
        sync.assert_called_once()

    def test_missing_timestamp_syncs(self, tmp_path: Path) -> None:
        """A repository never synced is synced."""
        sync = _sync()
        gate = SyncGate(tmp_path / "missing", sync_command=sync)

        assert gate.last_sync() is None
        assert gate.run(now=NOW) is SyncOutcome.SYNCED

    def test_custom_interval(self, timestamp: Path) -> None:
        """The interval is configurable."""
        _age(timestamp, timedelta(hours=2))
        gate = SyncGate(timestamp, interval=timedelta(hours=1), sync_command=_sync())

        assert gate.is_too_recent(now=NOW) is False

    def test_failure_keeps_result(self, timestamp: Path) -> None:
        """A failed sync reports FAILED and keeps the command result."""
        _age(timestamp, timedelta(days=3))
        gate = SyncGate(timestamp, sync_command=_sync(returncode=1))

        assert gate.run(now=NOW) is SyncOutcome.FAILED
        assert gate.last_result is not None
        assert gate.last_result.returncode == 1

    def test_defaults_to_eix_sync(self, tmp_path: Path) -> None:
        """Without a sync command, eix-sync is used."""
        gate = SyncGate(tmp_path / "missing")

        with patch(
            "gentup.portage.sync.eix.eix_sync",
            return_value=CommandResult(stdout="", stderr="", returncode=0),
        ) as mock_sync:
            assert gate.run(now=NOW) is SyncOutcome.SYNCED

        mock_sync.assert_called_once()
