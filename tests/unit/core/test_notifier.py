"""Unit tests for session summary mail."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
from gentup.core.config import GentupConfig
from gentup.core.notifier import NotificationError, Notifier, compose_summary
from gentup.core.pipeline import SessionReport, Stage
from gentup.portage.emerge import PendingUpgrade
from gentup.portage.sync import SyncOutcome
from gentup.utils.shell import CommandResult, ExecutionError


@pytest.fixture
def report() -> SessionReport:
    """A report for a session that failed during the world update."""
    report = SessionReport()
    report.completed.extend(
        [Stage.DEPENDENCIES_CHECKED, Stage.SYNCED, Stage.UPGRADE_LISTED, Stage.SELF_UPDATED]
    )
    report.sync_outcome = SyncOutcome.SYNCED
    report.upgrades = [PendingUpgrade("app-editors/vim", "9.1.0509", "9.1.0394", "gentoo")]
    report.failed_stage = Stage.WORLD_UPDATED
    report.error = "emerge exited with status 1 updating @world"
    return report


class TestComposeSummary:
    """Tests for compose_summary function."""

    @patch("gentup.core.notifier.socket.gethostname", return_value="box")
    def test_failed_session(self, _mock: MagicMock, report: SessionReport) -> None:
        """The summary names the outcome, pending upgrades and the error."""
        message = compose_summary(report, "admin@example.org")
        body = message.get_content()

        assert message["To"] == "admin@example.org"
        assert message["Subject"] == "[gentup] box: update FAILED"
        assert "Last completed stage: SELF_UPDATED" in body
        assert "app-editors/vim 9.1.0394 -> 9.1.0509" in body
        assert "emerge exited with status 1" in body

    def test_completed_session(self) -> None:
        """A clean session is reported as completed."""
        message = compose_summary(SessionReport(), "admin@example.org")

        assert message["Subject"].endswith("update completed")
        assert "Repository sync: not run" in message.get_content()


class TestNotifier:
    """Tests for Notifier."""

    def test_disabled_without_address(self, report: SessionReport) -> None:
        """No address means nothing is sent."""
        notifier = Notifier(GentupConfig())

        assert notifier.enabled is False
        assert notifier.notify(report) is False

    @patch("gentup.core.notifier.command_exists", return_value=True)
    @patch("gentup.core.notifier.run_command")
    def test_sends_through_transport(
        self, mock_run: MagicMock, _mock_exists: MagicMock, report: SessionReport
    ) -> None:
        """The message is piped to ``sendmail -t``."""
        mock_run.return_value = CommandResult(stdout="", stderr="", returncode=0)
        notifier = Notifier(GentupConfig(notify_email="admin@example.org"))

        assert notifier.notify(report) is True
        assert mock_run.call_args.args[0] == ["sendmail", "-t"]
        assert "To: admin@example.org" in mock_run.call_args.kwargs["input_text"]

    @patch("gentup.core.notifier.command_exists", return_value=False)
    def test_missing_transport(self, _mock: MagicMock, report: SessionReport) -> None:
        """A missing transport raises from send and is swallowed by notify."""
        notifier = Notifier(GentupConfig(notify_email="admin@example.org"))

        with pytest.raises(NotificationError, match="not found"):
            notifier.send(report)
        assert notifier.notify(report) is False

    @patch("gentup.core.notifier.command_exists", return_value=True)
    @patch("gentup.core.notifier.run_command")
    def test_transport_failures(
        self, mock_run: MagicMock, _mock_exists: MagicMock, report: SessionReport
    ) -> None:
        """Rejections, spawn errors and timeouts all become NotificationError."""
        notifier = Notifier(GentupConfig(notify_email="admin@example.org"))

        mock_run.return_value = CommandResult(stdout="", stderr="relay denied", returncode=75)
        with pytest.raises(NotificationError, match="relay denied"):
            notifier.send(report)

        mock_run.side_effect = ExecutionError("sendmail", "permission denied")
        with pytest.raises(NotificationError, match="permission denied"):
            notifier.send(report)

        mock_run.side_effect = subprocess.TimeoutExpired(cmd="sendmail", timeout=60)
        with pytest.raises(NotificationError, match="did not finish"):
            notifier.send(report)
