"""Read-only reminder statistics for operational visibility."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from chorenotify.core.policy import SchedulerPolicy
from chorenotify.data.models import ReminderStats

if TYPE_CHECKING:
    from chorenotify.ports.clock_port import Clock
    from chorenotify.ports.store_port import ChoreStore, PreferenceStore

logger = logging.getLogger(__name__)

DUE_TODAY_WINDOW = timedelta(days=1)


class StatsReporter:
    def __init__(
        self,
        chores: ChoreStore,
        preferences: PreferenceStore,
        clock: Clock,
        policy: SchedulerPolicy | None = None,
    ) -> None:
        self._chores = chores
        self._preferences = preferences
        self._clock = clock
        self._policy = policy or SchedulerPolicy()

    def get_reminder_stats(self, family_id: int | None = None) -> ReminderStats | None:
        """Counts of upcoming/overdue chores and subscribed users, or None on failure."""
        now = self._clock.now()
        try:
            return ReminderStats(
                chores_due_today=self._chores.count_open_due_between(
                    now, now + DUE_TODAY_WINDOW, family_id=family_id,
                ),
                chores_due_this_week=self._chores.count_open_due_between(
                    now, now + self._policy.week, family_id=family_id,
                ),
                overdue_chores=self._chores.count_overdue(now, family_id=family_id),
                users_with_reminders_enabled=self._preferences.count_reminders_enabled(family_id),
                users_with_daily_digest=self._preferences.count_digest_enabled(family_id),
            )
        except Exception as exc:
            logger.error("Error getting reminder stats: %s", exc)
            return None
