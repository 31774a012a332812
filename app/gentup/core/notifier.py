"""Email summary of an update session.

The summary is handed to the local mail transport (``sendmail -t`` by
default). Mail is advisory: every failure is logged and swallowed so the
session outcome never depends on it.
"""

from __future__ import annotations

import logging
import socket
import subprocess
from email.message import EmailMessage
from typing import TYPE_CHECKING

from gentup.core.config import GentupConfig
from gentup.utils.shell import ExecutionError, command_exists, run_command

if TYPE_CHECKING:
    from gentup.core.pipeline import SessionReport

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when the summary cannot be handed to the mail transport."""


def compose_summary(report: SessionReport, recipient: str) -> EmailMessage:
    """Build a plain-text summary message for a session.

    Args:
        report: Outcome of the update session.
        recipient: Destination address.

    Returns:
        EmailMessage ready for ``sendmail -t``.
    """
    host = socket.gethostname()
    status = "FAILED" if report.failed else "completed"

    lines = [
        f"gentup session on {host} {status}.",
        "",
        f"Last completed stage: {report.last_completed.name}",
        f"Repository sync: {report.sync_outcome.value if report.sync_outcome else 'not run'}",
        f"Unread news items: {report.news_count}",
        f"Packages pending upgrade: {len(report.upgrades)}",
        f"Packages updated: {report.updated_count}",
        f"Orphaned packages removed: {report.removed_count}",
    ]
    if report.upgrades:
        lines.append("")
        lines.append("Pending upgrades:")
        for upgrade in report.upgrades:
            current = upgrade.current_version or "new"
            lines.append(f"  {upgrade.atom} {current} -> {upgrade.candidate_version}")
    if report.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"  {warning}" for warning in report.warnings)
    if report.error:
        lines.append("")
        lines.append("Fatal error:")
        lines.append(report.error)

    message = EmailMessage()
    message["To"] = recipient
    message["From"] = f"root@{host}"
    message["Subject"] = f"[gentup] {host}: update {status}"
    message.set_content("\n".join(lines) + "\n")
    return message


class Notifier:
    """Sends session summaries when an email address is configured."""

    def __init__(self, config: GentupConfig) -> None:
        self._config = config

    @property
    def enabled(self) -> bool:
        """Check if a recipient is configured."""
        return self._config.notify_email is not None

    def send(self, report: SessionReport) -> None:
        """Hand the summary to the mail transport.

        Raises:
            NotificationError: If the transport is missing or rejects the mail.
        """
        if self._config.notify_email is None:
            return

        transport = self._config.mail_command
        if not command_exists(transport):
            msg = f"mail transport '{transport}' not found"
            raise NotificationError(msg)

        message = compose_summary(report, self._config.notify_email)
        try:
            result = run_command([transport, "-t"], input_text=message.as_string(), timeout=60.0)
        except ExecutionError as e:
            raise NotificationError(str(e)) from e
        except subprocess.TimeoutExpired as e:
            msg = f"{transport} did not finish within {e.timeout:.0f}s"
            raise NotificationError(msg) from e

        if not result.success:
            msg = f"{transport} exited with status {result.returncode}: {result.stderr.strip()}"
            raise NotificationError(msg)

        logger.info("Sent session summary to %s", self._config.notify_email)

    def notify(self, report: SessionReport) -> bool:
        """Send the summary, logging instead of raising on failure.

        Returns:
            True if a summary was sent.
        """
        if not self.enabled:
            return False
        try:
            self.send(report)
        except NotificationError as e:
            logger.warning("Could not send session summary: %s", e)
            return False
        return True
