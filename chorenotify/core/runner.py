"""
Family Chores Notify — Entry points for the periodic trigger.

At most one reminder pass and one digest pass run at a time per process; an
invocation arriving while the same pass is still running is skipped.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chorenotify.core.digest_aggregator import DigestAggregator
    from chorenotify.core.outcomes import RunSummary
    from chorenotify.core.reminder_scheduler import ReminderScheduler
    from chorenotify.core.stats_reporter import StatsReporter
    from chorenotify.data.models import ReminderStats

logger = logging.getLogger(__name__)


class NotificationRunner:
    """Single-flight wrappers around the engine's entry points."""

    def __init__(
        self,
        reminders: ReminderScheduler,
        digests: DigestAggregator,
        stats: StatsReporter,
    ) -> None:
        self._reminders = reminders
        self._digests = digests
        self._stats = stats
        self._reminder_lock = asyncio.Lock()
        self._digest_lock = asyncio.Lock()

    async def run_reminders(self, family_id: int | None = None) -> RunSummary | None:
        """Process due reminders. Returns None if a reminder pass is already running."""
        if self._reminder_lock.locked():
            logger.warning("Reminder pass already in progress, skipping this invocation")
            return None
        async with self._reminder_lock:
            return await self._reminders.process_due_reminders(family_id)

    async def run_digests(self, family_id: int | None = None) -> RunSummary | None:
        """Process daily digests. Returns None if a digest pass is already running."""
        if self._digest_lock.locked():
            logger.warning("Digest pass already in progress, skipping this invocation")
            return None
        async with self._digest_lock:
            return await self._digests.process_daily_digests(family_id)

    def stats(self, family_id: int | None = None) -> ReminderStats | None:
        return self._stats.get_reminder_stats(family_id)
