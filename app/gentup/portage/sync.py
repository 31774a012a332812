"""Repository sync rate limiting.

Gentoo mirrors ask users not to sync more than once a day. The gate reads
the mtime of the repository timestamp file, which emerge refreshes on
every successful sync, and only runs eix-sync when the interval has
elapsed.
"""

import logging
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path

from gentup.core.paths import PORTAGE_TIMESTAMP_PATH
from gentup.portage import eix
from gentup.utils.shell import CommandResult

logger = logging.getLogger(__name__)

DEFAULT_SYNC_INTERVAL = timedelta(hours=24)


class SyncOutcome(Enum):
    """Result of passing through the sync gate."""

    SYNCED = "synced"
    SKIPPED = "skipped"
    FAILED = "failed"


class SyncGate:
    """Decides whether to sync the repository, and syncs when due.

    Attributes:
        timestamp_path: File whose mtime records the last sync.
        interval: Minimum time between syncs.
        last_result: CommandResult of the most recent sync attempt.
    """

    def __init__(
        self,
        timestamp_path: Path = PORTAGE_TIMESTAMP_PATH,
        interval: timedelta = DEFAULT_SYNC_INTERVAL,
        sync_command: Callable[[], CommandResult] | None = None,
    ) -> None:
        self.timestamp_path = timestamp_path
        self.interval = interval
        self.last_result: CommandResult | None = None
        self._sync_command = sync_command

    def last_sync(self) -> datetime | None:
        """Return the time of the last sync, or None if never synced."""
        try:
            mtime = self.timestamp_path.stat().st_mtime
        except FileNotFoundError:
            logger.info("No sync timestamp at %s", self.timestamp_path)
            return None
        return datetime.fromtimestamp(mtime, tz=UTC)

    def is_too_recent(self, now: datetime | None = None) -> bool:
        """Check whether the last sync is younger than the interval."""
        last = self.last_sync()
        if last is None:
            return False
        now = now or datetime.now(UTC)
        return now - last < self.interval

    def run(self, force: bool = False, now: datetime | None = None) -> SyncOutcome:
        """Sync unless the last sync was too recent.

        Args:
            force: Sync regardless of the interval.
            now: Current time, for deterministic tests.

        Returns:
            SKIPPED without invoking the sync command when too recent,
            otherwise SYNCED or FAILED after exactly one sync attempt.
        """
        if not force and self.is_too_recent(now):
            logger.info("Last sync was less than %s ago, skipping", self.interval)
            return SyncOutcome.SKIPPED

        sync_command = self._sync_command or eix.eix_sync
        self.last_result = sync_command()
        if self.last_result.success:
            return SyncOutcome.SYNCED

        logger.warning(
            "Repository sync failed with status %d: %s",
            self.last_result.returncode,
            self.last_result.stderr.strip(),
        )
        return SyncOutcome.FAILED
