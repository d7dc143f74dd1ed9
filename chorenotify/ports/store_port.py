"""Store ports — abstract interfaces for chore, preference and directory lookups.

Core modules depend on these protocols, never on the SQLite stores directly.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from chorenotify.data.models import (
    Chore,
    Family,
    NotificationCategory,
    NotificationPreferences,
    User,
)


class ChoreStore(Protocol):
    """Read access to chores used by the reminder and digest engine."""

    def get_chore(self, chore_id: int) -> Chore | None: ...

    def find_due_chores(
        self, until: datetime, family_id: int | None = None
    ) -> list[Chore]: ...

    def find_overdue_chores(
        self, now: datetime, family_id: int | None = None
    ) -> list[Chore]: ...

    def find_completed_in_range(
        self, family_id: int, start: datetime, end: datetime
    ) -> list[Chore]: ...

    def count_pending_approvals(self, family_id: int) -> int: ...

    def count_open_due_between(
        self, start: datetime, end: datetime, family_id: int | None = None
    ) -> int: ...

    def count_overdue(self, now: datetime, family_id: int | None = None) -> int: ...


class PreferenceStore(Protocol):
    """Per-(user, family) notification preferences."""

    def get_or_create(self, user_id: int, family_id: int) -> NotificationPreferences: ...

    def find_subscribed_for_digest(
        self, time_hhmm: str, family_id: int | None = None
    ) -> list[NotificationPreferences]: ...

    def is_notification_allowed(
        self, prefs: NotificationPreferences, now: datetime
    ) -> bool: ...

    def update_last_notification(
        self,
        prefs: NotificationPreferences,
        category: NotificationCategory,
        at: datetime,
    ) -> None: ...

    def count_reminders_enabled(self, family_id: int | None = None) -> int: ...

    def count_digest_enabled(self, family_id: int | None = None) -> int: ...


class UserDirectory(Protocol):
    """Looks up the people a notification is addressed to."""

    def get_user(self, user_id: int) -> User | None: ...


class FamilyDirectory(Protocol):
    def get_family(self, family_id: int) -> Family | None: ...
