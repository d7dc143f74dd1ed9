"""
Family Chores Notify — Reminder Scheduler.

Decides, on every evaluation pass, which assigned chores should trigger a
reminder email right now. Lead times come from each assignee's per-family
preferences; quiet hours and a per-user rate limit can suppress a send.
Nothing is queued: a reminder that is skipped now is simply re-evaluated on
the next pass, and a day-granularity tier that is missed stays missed.

This module is transport-agnostic: it depends on the store, dispatcher and
clock protocols, not on SQLite or a specific email provider.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from chorenotify.core.outcomes import Outcome, RunSummary
from chorenotify.core.policy import SchedulerPolicy
from chorenotify.data.models import (
    DONE_STATUSES,
    Chore,
    NotificationCategory,
    NotificationPreferences,
    Recipient,
    ReminderJob,
    ReminderNotification,
    ReminderType,
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

_ONE_DAY = timedelta(days=1)


# ---------------------------------------------------------------------------
# Pure timing rules
# ---------------------------------------------------------------------------


def days_until_due(due_date: datetime, now: datetime) -> int:
    """Whole days until due, rounded up. Zero or negative once due/overdue."""
    return math.ceil((due_date - now) / _ONE_DAY)


def select_reminder_type(
    chore: Chore, prefs: NotificationPreferences, now: datetime,
) -> ReminderType | None:
    """Return the tier that makes this chore due for a reminder now, or None.

    Tiers match on exact day counts, so a tier only fires on one evaluation
    day and is not caught up if that day is skipped.
    """
    if chore.due_date is None:
        return None

    days = days_until_due(chore.due_date, now)

    # Overdue or due now: always eligible. This also covers the final tier,
    # which can only match once the day count has reached zero.
    if days <= 0:
        return ReminderType.FINAL
    if prefs.first_reminder_days > 0 and days == prefs.first_reminder_days:
        return ReminderType.FIRST
    if prefs.second_reminder_days > 0 and days == prefs.second_reminder_days:
        return ReminderType.SECOND
    return None


def is_rate_limited(
    last_sent: datetime | None, now: datetime, rate_limit: timedelta,
) -> bool:
    return last_sent is not None and now - last_sent < rate_limit


def compute_reminder_jobs(
    chore: Chore, prefs: NotificationPreferences, now: datetime,
) -> list[ReminderJob]:
    """Trigger instants for each enabled tier that still lies ahead of `now`."""
    if chore.due_date is None or chore.assigned_to is None:
        return []
    if chore.status in DONE_STATUSES:
        return []

    tiers = (
        (ReminderType.FIRST, prefs.first_reminder_days, timedelta(days=prefs.first_reminder_days)),
        (ReminderType.SECOND, prefs.second_reminder_days, timedelta(days=prefs.second_reminder_days)),
        (ReminderType.FINAL, prefs.final_reminder_hours, timedelta(hours=prefs.final_reminder_hours)),
    )

    jobs: list[ReminderJob] = []
    for reminder_type, lead, offset in tiers:
        scheduled_for = chore.due_date - offset
        if lead > 0 and scheduled_for > now:
            jobs.append(ReminderJob(
                chore_id=chore.id,
                user_id=chore.assigned_to,
                family_id=chore.family_id,
                reminder_type=reminder_type,
                scheduled_for=scheduled_for,
            ))
    return jobs


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class ReminderScheduler:
    """Evaluates due chores and dispatches reminder emails."""

    def __init__(
        self,
        chores: ChoreStore,
        preferences: PreferenceStore,
        users: UserDirectory,
        families: FamilyDirectory,
        dispatcher: NotificationDispatcher,
        clock: Clock,
        policy: SchedulerPolicy | None = None,
    ) -> None:
        self._chores = chores
        self._preferences = preferences
        self._users = users
        self._families = families
        self._dispatcher = dispatcher
        self._clock = clock
        self._policy = policy or SchedulerPolicy()

    def schedule_reminders_for_chore(self, chore_id: int) -> list[ReminderJob]:
        """Compute the upcoming reminder jobs for a single chore.

        Returns an empty list when the chore is missing, lacks a due date or
        assignee, is already done, or its assignee has reminders turned off.
        """
        try:
            chore = self._chores.get_chore(chore_id)
            if chore is None or chore.due_date is None or chore.assigned_to is None:
                logger.info("Chore #%d not found or missing data for reminders", chore_id)
                return []

            prefs = self._preferences.get_or_create(chore.assigned_to, chore.family_id)
            if not prefs.email_enabled or not prefs.chore_reminders:
                logger.info("User %d has disabled chore reminders", chore.assigned_to)
                return []

            jobs = compute_reminder_jobs(chore, prefs, self._clock.now())
        except Exception as exc:
            logger.error("Error scheduling reminders for chore #%d: %s", chore_id, exc)
            return []

        logger.info("Scheduled %d reminders for chore #%d", len(jobs), chore_id)
        return jobs

    async def process_due_reminders(self, family_id: int | None = None) -> RunSummary:
        """Run one reminder pass over every chore due within the look-ahead window.

        One chore's failure is logged and skipped; only a failure to load the
        candidates aborts the pass.
        """
        summary = RunSummary(name="reminders")
        now = self._clock.now()

        try:
            chores = self._chores.find_due_chores(now + self._policy.lookahead, family_id=family_id)
        except Exception as exc:
            logger.error("Error loading chores due for reminders: %s", exc)
            summary.aborted = True
            return summary

        summary.candidates = len(chores)
        logger.info("Found %d chores due for reminders", len(chores))

        for chore in chores:
            try:
                outcome = await self._process_chore(chore, now)
            except Exception as exc:
                logger.error("Error processing reminder for chore #%d: %s", chore.id, exc)
                outcome = Outcome.ERROR
            summary.record(outcome)

        logger.info("Reminder pass finished: %s", summary)
        return summary

    async def _process_chore(self, chore: Chore, now: datetime) -> Outcome:
        prefs = self._preferences.get_or_create(chore.assigned_to, chore.family_id)

        if not prefs.email_enabled or not prefs.chore_reminders:
            return Outcome.DISABLED

        if not self._preferences.is_notification_allowed(prefs, now):
            logger.info(
                "Skipping reminder for user %d due to quiet hours", chore.assigned_to,
            )
            return Outcome.QUIET_HOURS

        reminder_type = select_reminder_type(chore, prefs, now)
        if reminder_type is None:
            return Outcome.NOT_DUE

        if is_rate_limited(prefs.last_chore_reminder, now, self._policy.rate_limit):
            logger.info("Rate limiting: skipping reminder for chore #%d", chore.id)
            return Outcome.RATE_LIMITED

        notification = self._build_notification(chore, reminder_type, now)
        result = await self._dispatcher.send_reminder(notification)

        if not result.success:
            logger.error("Failed to send reminder for chore #%d: %s", chore.id, result.error)
            return Outcome.FAILED

        self._preferences.update_last_notification(
            prefs, NotificationCategory.CHORE_REMINDER, now,
        )
        logger.info(
            "Sent %s reminder for chore #%d to %s",
            reminder_type.value, chore.id, notification.assigned_to.email,
        )
        return Outcome.SENT

    def _build_notification(
        self, chore: Chore, reminder_type: ReminderType, now: datetime,
    ) -> ReminderNotification:
        assignee = self._users.get_user(chore.assigned_to)
        if assignee is None:
            raise ValueError(f"Assignee {chore.assigned_to} of chore #{chore.id} not found")

        assigner = self._users.get_user(chore.assigned_by)
        family = self._families.get_family(chore.family_id)
        days = days_until_due(chore.due_date, now)

        return ReminderNotification(
            chore_id=chore.id,
            chore_title=chore.title,
            chore_description=chore.description,
            assigned_to=Recipient(id=assignee.id, name=assignee.name, email=assignee.email),
            assigned_by=Recipient(
                id=chore.assigned_by,
                name=assigner.name if assigner else "Unknown",
                email=assigner.email if assigner else "",
            ),
            family_id=chore.family_id,
            family_name=family.name if family else "",
            due_date=chore.due_date.astimezone(now.tzinfo),
            days_until_due=max(0, days),
            reminder_type=reminder_type,
            priority=chore.priority,
            points=chore.points,
            requires_photo_verification=chore.requires_photo_verification,
            overdue=chore.due_date < now,
        )
