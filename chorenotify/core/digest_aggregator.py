"""
Family Chores Notify — Daily Digest Aggregator.

Once per calendar day, for every user subscribed to a family's digest at the
current minute, summarizes what got done since yesterday morning, what is
overdue and how many photo proofs are waiting for a parent.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from chorenotify.core.outcomes import Outcome, RunSummary
from chorenotify.data.models import (
    CompletedChoreSummary,
    DigestNotification,
    DigestPayload,
    NotificationCategory,
    NotificationPreferences,
    OverdueChoreSummary,
    Recipient,
)

if TYPE_CHECKING:
    from chorenotify.ports.clock_port import Clock
    from chorenotify.ports.dispatcher_port import NotificationDispatcher
    from chorenotify.ports.store_port import (
        ChoreStore,
        FamilyDirectory,
        PreferenceStore,
        UserDirectory,
    )

logger = logging.getLogger(__name__)


def digest_window(now: datetime) -> tuple[datetime, datetime]:
    """Start of yesterday through the last instant of today, in now's timezone."""
    start = (now - timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    end = now.replace(hour=23, minute=59, second=59, microsecond=999999)
    return start, end


def already_sent_today(last_sent: datetime | None, now: datetime) -> bool:
    """Compare calendar dates in now's timezone, not elapsed time."""
    if last_sent is None:
        return False
    return last_sent.astimezone(now.tzinfo).date() == now.date()


def build_digest(
    chores: ChoreStore,
    users: UserDirectory,
    family_id: int,
    now: datetime,
) -> DigestPayload:
    """Aggregate completed, overdue and pending-approval chores for one family."""
    start, end = digest_window(now)
    completed = chores.find_completed_in_range(family_id, start, end)
    overdue = chores.find_overdue_chores(now, family_id=family_id)
    pending_approvals = chores.count_pending_approvals(family_id)

    names: dict[int, str] = {}

    def name_of(user_id: int | None) -> str:
        if user_id is None:
            return "Unknown"
        if user_id not in names:
            user = users.get_user(user_id)
            names[user_id] = user.name if user else "Unknown"
        return names[user_id]

    return DigestPayload(
        completed_chores=[
            CompletedChoreSummary(
                title=c.title, completed_by=name_of(c.assigned_to), points=c.points,
            )
            for c in completed
        ],
        overdue_chores=[
            OverdueChoreSummary(
                title=c.title,
                assigned_to=name_of(c.assigned_to),
                days_overdue=math.ceil((now - c.due_date) / timedelta(days=1)),
            )
            for c in overdue
        ],
        pending_approvals=pending_approvals,
        total_points_earned=sum(c.points for c in completed),
    )


class DigestAggregator:
    """Builds and dispatches the once-a-day family digest."""

    def __init__(
        self,
        chores: ChoreStore,
        preferences: PreferenceStore,
        users: UserDirectory,
        families: FamilyDirectory,
        dispatcher: NotificationDispatcher,
        clock: Clock,
    ) -> None:
        self._chores = chores
        self._preferences = preferences
        self._users = users
        self._families = families
        self._dispatcher = dispatcher
        self._clock = clock

    async def process_daily_digests(self, family_id: int | None = None) -> RunSummary:
        """Send digests to everyone whose digest time is the current HH:MM.

        Safe to call repeatedly: a user who already received today's digest
        is skipped.
        """
        summary = RunSummary(name="digests")
        now = self._clock.now()
        current_time = now.strftime("%H:%M")

        try:
            subscriptions = self._preferences.find_subscribed_for_digest(
                current_time, family_id=family_id,
            )
        except Exception as exc:
            logger.error("Error loading daily digest subscriptions: %s", exc)
            summary.aborted = True
            return summary

        summary.candidates = len(subscriptions)
        logger.info("Found %d users for daily digest at %s", len(subscriptions), current_time)

        for prefs in subscriptions:
            try:
                outcome = await self._process_subscription(prefs, now)
            except Exception as exc:
                logger.error(
                    "Error processing daily digest for user %d in family %d: %s",
                    prefs.user_id, prefs.family_id, exc,
                )
                outcome = Outcome.ERROR
            summary.record(outcome)

        logger.info("Digest pass finished: %s", summary)
        return summary

    async def _process_subscription(
        self, prefs: NotificationPreferences, now: datetime,
    ) -> Outcome:
        if already_sent_today(prefs.last_daily_digest, now):
            return Outcome.ALREADY_SENT

        if not self._preferences.is_notification_allowed(prefs, now):
            logger.info("Skipping daily digest for user %d due to quiet hours", prefs.user_id)
            return Outcome.QUIET_HOURS

        user = self._users.get_user(prefs.user_id)
        if user is None:
            raise ValueError(f"User {prefs.user_id} not found")
        family = self._families.get_family(prefs.family_id)

        notification = DigestNotification(
            recipient=Recipient(id=user.id, name=user.name, email=user.email),
            family_id=prefs.family_id,
            family_name=family.name if family else "",
            digest_date=now.date().isoformat(),
            digest=build_digest(self._chores, self._users, prefs.family_id, now),
        )
        result = await self._dispatcher.send_digest(notification)

        if not result.success:
            logger.error("Failed to send daily digest to %s: %s", user.email, result.error)
            return Outcome.FAILED

        self._preferences.update_last_notification(
            prefs, NotificationCategory.DAILY_DIGEST, now,
        )
        logger.info("Sent daily digest to %s", user.email)
        return Outcome.SENT
