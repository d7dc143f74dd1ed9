"""
Family Chores Notify — SQLite stores.

The persistence layer the notification engine reads from: users, families,
chores and notification preferences. Datetimes are stored as ISO strings
normalized to UTC so that range filters compare correctly as text.
"""

from __future__ import annotations

import abc
import logging
import sqlite3
from dataclasses import fields
from datetime import datetime, timezone
from pathlib import Path

from chorenotify.data.models import (
    DONE_STATUSES,
    OPEN_STATUSES,
    Chore,
    ChorePriority,
    ChoreStatus,
    Family,
    FamilyMember,
    FamilyRole,
    NotificationCategory,
    NotificationPreferences,
    PhotoVerificationStatus,
    User,
    default_preferences,
    last_sent_field,
    parse_hhmm,
)

logger = logging.getLogger(__name__)


def to_db_time(value: datetime | None) -> str | None:
    """Serialize an aware datetime as a fixed-width UTC ISO string."""
    if value is None:
        return None
    if value.tzinfo is None:
        raise ValueError(f"Naive datetime cannot be stored: {value!r}")
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _in_clause(values) -> tuple[str, list[str]]:
    items = sorted(v.value for v in values)
    return ", ".join("?" for _ in items), items


class _SQLiteStore(abc.ABC):
    """Shared connection handling for the stores below."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from chorenotify.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @abc.abstractmethod
    def _init_db(self) -> None:
        """Create this store's tables if they do not exist yet."""


class UserDB(_SQLiteStore):
    """SQLite-backed storage for user accounts."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id         INTEGER PRIMARY KEY AUTOINCREMENT,
                    name       TEXT NOT NULL,
                    email      TEXT NOT NULL UNIQUE,
                    created_at TEXT NOT NULL
                )
            """)
        logger.debug("Users table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            created_at=row["created_at"],
        )

    def add_user(self, name: str, email: str) -> User:
        """Register a new user account."""
        now = to_db_time(datetime.now(timezone.utc))
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO users (name, email, created_at) VALUES (?, ?, ?)",
                (name.strip(), email.strip().lower(), now),
            )
            user_id = cursor.lastrowid
        logger.info("User registered: #%d '%s'", user_id, name)
        return User(id=user_id, name=name.strip(), email=email.strip().lower(), created_at=now)

    def get_user(self, user_id: int) -> User | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)


class FamilyDB(_SQLiteStore):
    """SQLite-backed storage for families and their members."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS families (
                    id         INTEGER PRIMARY KEY AUTOINCREMENT,
                    name       TEXT    NOT NULL,
                    created_by INTEGER NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS family_members (
                    id        INTEGER PRIMARY KEY AUTOINCREMENT,
                    family_id INTEGER NOT NULL,
                    name      TEXT    NOT NULL,
                    role      TEXT    NOT NULL DEFAULT 'child',
                    user_id   INTEGER
                )
            """)
        logger.debug("Families tables initialized at %s", self._db_path)

    def add_family(
        self, name: str, created_by: int, members: list[FamilyMember],
    ) -> Family:
        """Create a family. At least one member must be a parent."""
        if not any(m.role == FamilyRole.PARENT for m in members):
            raise ValueError("Family must have at least one parent")

        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO families (name, created_by) VALUES (?, ?)",
                (name.strip(), created_by),
            )
            family_id = cursor.lastrowid
            conn.executemany(
                "INSERT INTO family_members (family_id, name, role, user_id) VALUES (?, ?, ?, ?)",
                [(family_id, m.name, m.role.value, m.user_id) for m in members],
            )

        logger.info("Family created: #%d '%s' with %d members", family_id, name, len(members))
        return Family(id=family_id, name=name.strip(), created_by=created_by, members=list(members))

    def add_member(self, family_id: int, member: FamilyMember) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO family_members (family_id, name, role, user_id) VALUES (?, ?, ?, ?)",
                (family_id, member.name, member.role.value, member.user_id),
            )
        logger.info("Member '%s' (%s) added to family #%d", member.name, member.role.value, family_id)

    def get_family(self, family_id: int) -> Family | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM families WHERE id = ?", (family_id,)).fetchone()
            if row is None:
                return None
            member_rows = conn.execute(
                "SELECT * FROM family_members WHERE family_id = ? ORDER BY id",
                (family_id,),
            ).fetchall()

        members = [
            FamilyMember(name=m["name"], role=FamilyRole(m["role"]), user_id=m["user_id"])
            for m in member_rows
        ]
        return Family(id=row["id"], name=row["name"], created_by=row["created_by"], members=members)


class ChoreDB(_SQLiteStore):
    """SQLite-backed storage for family chores."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS chores (
                    id                          INTEGER PRIMARY KEY AUTOINCREMENT,
                    family_id                   INTEGER NOT NULL,
                    title                       TEXT    NOT NULL,
                    description                 TEXT    NOT NULL DEFAULT '',
                    assigned_to                 INTEGER,
                    assigned_by                 INTEGER NOT NULL,
                    due_date                    TEXT,
                    status                      TEXT    NOT NULL DEFAULT 'pending',
                    priority                    TEXT    NOT NULL DEFAULT 'medium',
                    points                      INTEGER NOT NULL DEFAULT 0,
                    completed_at                TEXT,
                    verified_at                 TEXT,
                    requires_photo_verification INTEGER NOT NULL DEFAULT 0,
                    photo_verification_status   TEXT,
                    created_at                  TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_chores_status_due ON chores (status, due_date)"
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_chores_family_status ON chores (family_id, status)"
            )
        logger.debug("Chores table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_chore(row: sqlite3.Row) -> Chore:
        photo = row["photo_verification_status"]
        return Chore(
            id=row["id"],
            family_id=row["family_id"],
            title=row["title"],
            description=row["description"],
            assigned_to=row["assigned_to"],
            assigned_by=row["assigned_by"],
            due_date=from_db_time(row["due_date"]),
            status=ChoreStatus(row["status"]),
            priority=ChorePriority(row["priority"]),
            points=row["points"],
            completed_at=from_db_time(row["completed_at"]),
            verified_at=from_db_time(row["verified_at"]),
            requires_photo_verification=bool(row["requires_photo_verification"]),
            photo_verification_status=PhotoVerificationStatus(photo) if photo else None,
            created_at=from_db_time(row["created_at"]),
        )

    def add_chore(
        self,
        family_id: int,
        title: str,
        assigned_by: int,
        assigned_to: int | None = None,
        description: str = "",
        due_date: datetime | None = None,
        priority: ChorePriority = ChorePriority.MEDIUM,
        points: int = 0,
        requires_photo_verification: bool = False,
    ) -> Chore:
        """Insert a new pending chore."""
        if points < 0:
            raise ValueError(f"points must be non-negative, got {points}")
        created_at = datetime.now(timezone.utc)

        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO chores
                    (family_id, title, description, assigned_to, assigned_by,
                     due_date, status, priority, points,
                     requires_photo_verification, created_at)
                VALUES (?, ?, ?, ?, ?, ?, 'pending', ?, ?, ?, ?)
                """,
                (
                    family_id, title.strip(), description, assigned_to, assigned_by,
                    to_db_time(due_date), priority.value, points,
                    int(requires_photo_verification), to_db_time(created_at),
                ),
            )
            chore_id = cursor.lastrowid

        logger.info("Chore added: #%d '%s' in family #%d", chore_id, title, family_id)
        return self.get_chore(chore_id)

    def get_chore(self, chore_id: int) -> Chore | None:
        """Fetch a single chore by ID."""
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM chores WHERE id = ?", (chore_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_chore(row)

    def update_status(self, chore_id: int, status: ChoreStatus, at: datetime) -> Chore:
        """Move a chore to a new status, keeping completion timestamps consistent.

        completed/verified stamp completed_at (and verified_at) if not already
        set; any other status clears both.
        """
        chore = self.get_chore(chore_id)
        if chore is None:
            raise ValueError(f"Chore {chore_id} not found")

        completed_at = chore.completed_at
        verified_at = chore.verified_at
        if status in DONE_STATUSES:
            completed_at = completed_at or at
            if status == ChoreStatus.VERIFIED:
                verified_at = max(verified_at or at, completed_at)
            else:
                verified_at = None
        else:
            completed_at = None
            verified_at = None

        with self._connect() as conn:
            conn.execute(
                "UPDATE chores SET status = ?, completed_at = ?, verified_at = ? WHERE id = ?",
                (status.value, to_db_time(completed_at), to_db_time(verified_at), chore_id),
            )

        logger.info("Chore #%d status: %s -> %s", chore_id, chore.status.value, status.value)
        chore.status = status
        chore.completed_at = completed_at
        chore.verified_at = verified_at
        return chore

    def set_photo_verification(
        self, chore_id: int, status: PhotoVerificationStatus | None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE chores SET photo_verification_status = ? WHERE id = ?",
                (status.value if status else None, chore_id),
            )
        logger.info("Chore #%d photo verification: %s", chore_id, status.value if status else None)

    def find_due_chores(self, until: datetime, family_id: int | None = None) -> list[Chore]:
        """Open, assigned chores with a due date at or before `until`.

        There is no lower bound, so overdue chores are included.
        """
        placeholders, statuses = _in_clause(OPEN_STATUSES)
        query = (
            "SELECT * FROM chores WHERE due_date IS NOT NULL AND due_date <= ? "
            f"AND assigned_to IS NOT NULL AND status IN ({placeholders})"
        )
        params: list = [to_db_time(until), *statuses]
        if family_id is not None:
            query += " AND family_id = ?"
            params.append(family_id)
        query += " ORDER BY due_date, id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_chore(r) for r in rows]

    def find_overdue_chores(self, now: datetime, family_id: int | None = None) -> list[Chore]:
        """Open chores whose due date is strictly before `now`."""
        placeholders, statuses = _in_clause(OPEN_STATUSES)
        query = (
            "SELECT * FROM chores WHERE due_date IS NOT NULL AND due_date < ? "
            f"AND status IN ({placeholders})"
        )
        params: list = [to_db_time(now), *statuses]
        if family_id is not None:
            query += " AND family_id = ?"
            params.append(family_id)
        query += " ORDER BY due_date, id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_chore(r) for r in rows]

    def find_completed_in_range(
        self, family_id: int, start: datetime, end: datetime,
    ) -> list[Chore]:
        """Completed or verified chores with start <= completed_at <= end."""
        placeholders, statuses = _in_clause(DONE_STATUSES)
        query = (
            f"SELECT * FROM chores WHERE family_id = ? AND status IN ({placeholders}) "
            "AND completed_at >= ? AND completed_at <= ? ORDER BY completed_at, id"
        )
        with self._connect() as conn:
            rows = conn.execute(
                query, [family_id, *statuses, to_db_time(start), to_db_time(end)],
            ).fetchall()
        return [self._row_to_chore(r) for r in rows]

    def count_pending_approvals(self, family_id: int) -> int:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM chores WHERE family_id = ? AND photo_verification_status = ?",
                (family_id, PhotoVerificationStatus.PENDING.value),
            ).fetchone()
        return row[0]

    def count_open_due_between(
        self, start: datetime, end: datetime, family_id: int | None = None,
    ) -> int:
        """Count open chores with start <= due_date < end."""
        placeholders, statuses = _in_clause(OPEN_STATUSES)
        query = (
            "SELECT COUNT(*) FROM chores WHERE due_date >= ? AND due_date < ? "
            f"AND status IN ({placeholders})"
        )
        params: list = [to_db_time(start), to_db_time(end), *statuses]
        if family_id is not None:
            query += " AND family_id = ?"
            params.append(family_id)
        with self._connect() as conn:
            return conn.execute(query, params).fetchone()[0]

    def count_overdue(self, now: datetime, family_id: int | None = None) -> int:
        placeholders, statuses = _in_clause(OPEN_STATUSES)
        query = f"SELECT COUNT(*) FROM chores WHERE due_date < ? AND status IN ({placeholders})"
        params: list = [to_db_time(now), *statuses]
        if family_id is not None:
            query += " AND family_id = ?"
            params.append(family_id)
        with self._connect() as conn:
            return conn.execute(query, params).fetchone()[0]


_PREF_BOOL_COLUMNS = (
    "email_enabled", "chore_assignments", "chore_reminders", "daily_digest",
    "quiet_hours_enabled",
)
_PREF_TIME_COLUMNS = ("last_chore_reminder", "last_daily_digest", "last_chore_assignment")


class PreferencesDB(_SQLiteStore):
    """SQLite-backed storage for per-(user, family) notification preferences."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS notification_preferences (
                    id                    INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id               INTEGER NOT NULL,
                    family_id             INTEGER NOT NULL,
                    email_enabled         INTEGER NOT NULL,
                    chore_assignments     INTEGER NOT NULL,
                    chore_reminders       INTEGER NOT NULL,
                    daily_digest          INTEGER NOT NULL,
                    first_reminder_days   INTEGER NOT NULL,
                    second_reminder_days  INTEGER NOT NULL,
                    final_reminder_hours  INTEGER NOT NULL,
                    quiet_hours_enabled   INTEGER NOT NULL,
                    quiet_hours_start     TEXT    NOT NULL,
                    quiet_hours_end       TEXT    NOT NULL,
                    daily_digest_time     TEXT    NOT NULL,
                    last_chore_reminder   TEXT,
                    last_daily_digest     TEXT,
                    last_chore_assignment TEXT,
                    UNIQUE (user_id, family_id)
                )
            """)
        logger.debug("Notification preferences table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_prefs(row: sqlite3.Row) -> NotificationPreferences:
        values = {f.name: row[f.name] for f in fields(NotificationPreferences)}
        for col in _PREF_BOOL_COLUMNS:
            values[col] = bool(values[col])
        for col in _PREF_TIME_COLUMNS:
            values[col] = from_db_time(values[col])
        return NotificationPreferences(**values)

    @staticmethod
    def _prefs_to_values(prefs: NotificationPreferences) -> dict:
        values = {f.name: getattr(prefs, f.name) for f in fields(NotificationPreferences)}
        values.pop("id")
        for col in _PREF_BOOL_COLUMNS:
            values[col] = int(values[col])
        for col in _PREF_TIME_COLUMNS:
            values[col] = to_db_time(values[col])
        return values

    def get_or_create(self, user_id: int, family_id: int) -> NotificationPreferences:
        """Upsert the default preferences for the pair, then return the stored record."""
        values = self._prefs_to_values(default_preferences(user_id, family_id))
        columns = ", ".join(values)
        placeholders = ", ".join(f":{c}" for c in values)

        with self._connect() as conn:
            cursor = conn.execute(
                f"INSERT INTO notification_preferences ({columns}) VALUES ({placeholders}) "
                "ON CONFLICT (user_id, family_id) DO NOTHING",
                values,
            )
            if cursor.rowcount:
                logger.info(
                    "Created default notification preferences for user %d in family %d",
                    user_id, family_id,
                )
            row = conn.execute(
                "SELECT * FROM notification_preferences WHERE user_id = ? AND family_id = ?",
                (user_id, family_id),
            ).fetchone()
        return self._row_to_prefs(row)

    def update_preferences(self, prefs: NotificationPreferences) -> NotificationPreferences:
        """Persist every field of an existing preferences record."""
        values = self._prefs_to_values(prefs)
        assignments = ", ".join(
            f"{c} = :{c}" for c in values if c not in ("user_id", "family_id")
        )
        with self._connect() as conn:
            cursor = conn.execute(
                f"UPDATE notification_preferences SET {assignments} "
                "WHERE user_id = :user_id AND family_id = :family_id",
                values,
            )
        if cursor.rowcount == 0:
            raise ValueError(
                f"No preferences for user {prefs.user_id} in family {prefs.family_id}"
            )
        return prefs

    def find_subscribed_for_digest(
        self, time_hhmm: str, family_id: int | None = None,
    ) -> list[NotificationPreferences]:
        """Preferences with email + digest on and a digest time of exactly `time_hhmm`."""
        query = (
            "SELECT * FROM notification_preferences WHERE email_enabled = 1 "
            "AND daily_digest = 1 AND daily_digest_time = ?"
        )
        params: list = [parse_hhmm(time_hhmm)]
        if family_id is not None:
            query += " AND family_id = ?"
            params.append(family_id)
        query += " ORDER BY id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_prefs(r) for r in rows]

    def is_notification_allowed(self, prefs: NotificationPreferences, now: datetime) -> bool:
        return prefs.is_notification_allowed(now)

    def update_last_notification(
        self,
        prefs: NotificationPreferences,
        category: NotificationCategory,
        at: datetime,
    ) -> None:
        """Record a successful send for `category`, updating `prefs` in place."""
        column = last_sent_field(category)
        with self._connect() as conn:
            conn.execute(
                f"UPDATE notification_preferences SET {column} = ? "
                "WHERE user_id = ? AND family_id = ?",
                (to_db_time(at), prefs.user_id, prefs.family_id),
            )
        setattr(prefs, column, at)

    def count_reminders_enabled(self, family_id: int | None = None) -> int:
        return self._count_enabled("chore_reminders", family_id)

    def count_digest_enabled(self, family_id: int | None = None) -> int:
        return self._count_enabled("daily_digest", family_id)

    def _count_enabled(self, toggle: str, family_id: int | None) -> int:
        query = f"SELECT COUNT(*) FROM notification_preferences WHERE email_enabled = 1 AND {toggle} = 1"
        params: list = []
        if family_id is not None:
            query += " AND family_id = ?"
            params.append(family_id)
        with self._connect() as conn:
            return conn.execute(query, params).fetchone()[0]
