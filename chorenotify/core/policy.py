"""
Family Chores Notify — Scheduling policy.

Window lengths and rate limits used by the reminder engine, injected into
the scheduler instead of being read from globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta


@dataclass(frozen=True)
class SchedulerPolicy:
    lookahead_hours: int = 24     # reminder candidate window ahead of now
    rate_limit_hours: int = 12    # minimum gap between two reminders to a user
    week_days: int = 7            # "due this week" window for stats

    def __post_init__(self) -> None:
        for name in ("lookahead_hours", "rate_limit_hours", "week_days"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

    @property
    def lookahead(self) -> timedelta:
        return timedelta(hours=self.lookahead_hours)

    @property
    def rate_limit(self) -> timedelta:
        return timedelta(hours=self.rate_limit_hours)

    @property
    def week(self) -> timedelta:
        return timedelta(days=self.week_days)

    @classmethod
    def from_settings(cls, settings=None) -> SchedulerPolicy:
        if settings is None:
            from chorenotify.config import settings
        return cls(
            lookahead_hours=settings.REMINDER_LOOKAHEAD_HOURS,
            rate_limit_hours=settings.REMINDER_RATE_LIMIT_HOURS,
        )
