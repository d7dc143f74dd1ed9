"""
Family Chores Notify — Data Models.

Chores, families and per-(user, family) notification preferences persist in
SQLite. Reminder jobs and digest payloads are transient: they are recomputed
on every evaluation pass and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, time
from enum import Enum


class ChoreStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    VERIFIED = "verified"
    REJECTED = "rejected"


OPEN_STATUSES = frozenset({ChoreStatus.PENDING, ChoreStatus.IN_PROGRESS})
DONE_STATUSES = frozenset({ChoreStatus.COMPLETED, ChoreStatus.VERIFIED})


class ChorePriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class PhotoVerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class FamilyRole(str, Enum):
    PARENT = "parent"
    CHILD = "child"


class NotificationCategory(str, Enum):
    CHORE_REMINDER = "chore_reminder"
    DAILY_DIGEST = "daily_digest"
    CHORE_ASSIGNMENT = "chore_assignment"


class ReminderType(str, Enum):
    FIRST = "first"
    SECOND = "second"
    FINAL = "final"


def parse_hhmm(value: str) -> str:
    """Validate an "HH:MM" string and return it zero-padded."""
    parsed = datetime.strptime(value.strip(), "%H:%M")
    return parsed.strftime("%H:%M")


def _hhmm_to_time(value: str) -> time:
    return datetime.strptime(value, "%H:%M").time()


@dataclass
class User:
    """A registered account that can be assigned chores and receive email."""

    id: int
    name: str
    email: str
    created_at: str = ""


@dataclass
class FamilyMember:
    name: str
    role: FamilyRole = FamilyRole.CHILD
    user_id: int | None = None


@dataclass
class Family:
    """A family group. Must always have at least one parent."""

    id: int
    name: str
    created_by: int
    members: list[FamilyMember] = field(default_factory=list)

    @property
    def parents(self) -> list[FamilyMember]:
        return [m for m in self.members if m.role == FamilyRole.PARENT]

    @property
    def children(self) -> list[FamilyMember]:
        return [m for m in self.members if m.role == FamilyRole.CHILD]


@dataclass
class Chore:
    """A chore assigned within a family.

    completed_at is set iff status is completed or verified; verified_at is
    set only for verified chores and never precedes completed_at.
    """

    id: int
    family_id: int
    title: str
    assigned_by: int
    assigned_to: int | None = None       # user id, None when unassigned
    description: str = ""
    due_date: datetime | None = None     # timezone-aware
    status: ChoreStatus = ChoreStatus.PENDING
    priority: ChorePriority = ChorePriority.MEDIUM
    points: int = 0
    completed_at: datetime | None = None
    verified_at: datetime | None = None
    requires_photo_verification: bool = False
    photo_verification_status: PhotoVerificationStatus | None = None
    created_at: datetime | None = None

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def is_overdue(self, now: datetime) -> bool:
        return self.due_date is not None and self.is_open and self.due_date < now


@dataclass
class NotificationPreferences:
    """Notification settings for one user within one family.

    Lead times are non-negative; a value of 0 disables that reminder tier.
    Quiet hours are a local [start, end) window that may wrap past midnight.
    """

    user_id: int
    family_id: int
    id: int | None = None

    # Email channel and per-category toggles
    email_enabled: bool = True
    chore_assignments: bool = True
    chore_reminders: bool = True
    daily_digest: bool = True

    # Reminder lead times
    first_reminder_days: int = 2
    second_reminder_days: int = 1
    final_reminder_hours: int = 2

    quiet_hours_enabled: bool = False
    quiet_hours_start: str = "22:00"
    quiet_hours_end: str = "07:00"

    daily_digest_time: str = "18:00"

    # Last successful send per category
    last_chore_reminder: datetime | None = None
    last_daily_digest: datetime | None = None
    last_chore_assignment: datetime | None = None

    def __post_init__(self) -> None:
        for name in ("first_reminder_days", "second_reminder_days", "final_reminder_hours"):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        self.quiet_hours_start = parse_hhmm(self.quiet_hours_start)
        self.quiet_hours_end = parse_hhmm(self.quiet_hours_end)
        self.daily_digest_time = parse_hhmm(self.daily_digest_time)

    def is_notification_allowed(self, now: datetime) -> bool:
        """Return False when `now` (local time) falls inside quiet hours."""
        if not self.quiet_hours_enabled:
            return True

        start = _hhmm_to_time(self.quiet_hours_start)
        end = _hhmm_to_time(self.quiet_hours_end)
        current = now.time().replace(second=0, microsecond=0, tzinfo=None)

        if start == end:
            return True
        if start < end:
            in_quiet = start <= current < end
        else:
            # Window wraps past midnight, e.g. 22:00 -> 07:00
            in_quiet = current >= start or current < end
        return not in_quiet

    def last_notification(self, category: NotificationCategory) -> datetime | None:
        return getattr(self, _LAST_SENT_FIELDS[category])


_LAST_SENT_FIELDS = {
    NotificationCategory.CHORE_REMINDER: "last_chore_reminder",
    NotificationCategory.DAILY_DIGEST: "last_daily_digest",
    NotificationCategory.CHORE_ASSIGNMENT: "last_chore_assignment",
}


def last_sent_field(category: NotificationCategory) -> str:
    """Name of the preferences attribute/column holding a category's last send."""
    return _LAST_SENT_FIELDS[category]


# Used by the get-or-create upsert; user_id/family_id are filled per pair.
DEFAULT_PREFERENCES = NotificationPreferences(user_id=0, family_id=0)


def default_preferences(user_id: int, family_id: int) -> NotificationPreferences:
    return replace(DEFAULT_PREFERENCES, user_id=user_id, family_id=family_id)


# ---------------------------------------------------------------------------
# Transient engine values
# ---------------------------------------------------------------------------


@dataclass
class ReminderJob:
    """A computed reminder trigger. Never persisted."""

    chore_id: int
    user_id: int
    family_id: int
    reminder_type: ReminderType
    scheduled_for: datetime


@dataclass
class DispatchResult:
    success: bool
    error: str | None = None
    message_id: str | None = None


@dataclass
class Recipient:
    id: int | None
    name: str
    email: str = ""


@dataclass
class ReminderNotification:
    """Everything the dispatcher needs to render a chore reminder."""

    chore_id: int
    chore_title: str
    chore_description: str
    assigned_to: Recipient
    assigned_by: Recipient
    family_id: int
    family_name: str
    due_date: datetime
    days_until_due: int                  # clamped to >= 0
    reminder_type: ReminderType
    priority: ChorePriority
    points: int
    requires_photo_verification: bool = False
    overdue: bool = False


@dataclass
class CompletedChoreSummary:
    title: str
    completed_by: str
    points: int


@dataclass
class OverdueChoreSummary:
    title: str
    assigned_to: str
    days_overdue: int


@dataclass
class DigestPayload:
    completed_chores: list[CompletedChoreSummary] = field(default_factory=list)
    overdue_chores: list[OverdueChoreSummary] = field(default_factory=list)
    pending_approvals: int = 0
    total_points_earned: int = 0


@dataclass
class DigestNotification:
    recipient: Recipient
    family_id: int
    family_name: str
    digest_date: str                     # ISO date YYYY-MM-DD, local
    digest: DigestPayload


@dataclass
class ReminderStats:
    chores_due_today: int
    chores_due_this_week: int
    overdue_chores: int
    users_with_reminders_enabled: int
    users_with_daily_digest: int
