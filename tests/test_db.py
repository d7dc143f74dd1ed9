"""Tests for chorenotify.data.db — SQLite stores."""

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from chorenotify.data.db import _SQLiteStore, from_db_time, to_db_time
from chorenotify.data.models import (
    ChorePriority,
    ChoreStatus,
    FamilyMember,
    FamilyRole,
    NotificationCategory,
    PhotoVerificationStatus,
)


class TestTimeSerialization:
    def test_round_trip_normalizes_to_utc(self):
        local = datetime(2026, 3, 10, 11, 0, tzinfo=timezone(timedelta(hours=2)))
        stored = to_db_time(local)
        assert stored == "2026-03-10T09:00:00.000000+00:00"
        assert from_db_time(stored) == local

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError):
            to_db_time(datetime(2026, 3, 10, 9, 0))

    def test_none_passes_through(self):
        assert to_db_time(None) is None
        assert from_db_time(None) is None


class TestSQLiteStoreBase:
    def test_store_without_schema_cannot_be_built(self, tmp_db_path):
        class NoTables(_SQLiteStore):
            pass

        with pytest.raises(TypeError):
            NoTables(tmp_db_path)


class TestUserAndFamilyDB:
    def test_add_and_get_user(self, user_db):
        user = user_db.add_user("Dana", " Dana@Example.com ")
        fetched = user_db.get_user(user.id)
        assert fetched.name == "Dana"
        assert fetched.email == "dana@example.com"

    def test_get_user_not_found(self, user_db):
        assert user_db.get_user(999) is None

    def test_duplicate_email_rejected(self, user_db):
        user_db.add_user("Dana", "dana@example.com")
        with pytest.raises(sqlite3.IntegrityError):
            user_db.add_user("Other", "dana@example.com")

    def test_family_requires_parent(self, family_db):
        with pytest.raises(ValueError):
            family_db.add_family("Kids only", created_by=1, members=[FamilyMember(name="Noa")])

    def test_get_family_with_members(self, family, family_db):
        fam = family_db.get_family(family.family_id)
        assert fam.name == "Levi"
        assert [m.role for m in fam.members] == [FamilyRole.PARENT, FamilyRole.CHILD]
        assert fam.members[1].user_id == family.child_id

    def test_add_member(self, family, family_db):
        family_db.add_member(family.family_id, FamilyMember(name="Eli"))
        fam = family_db.get_family(family.family_id)
        assert [m.name for m in fam.children] == ["Noa", "Eli"]

    def test_get_family_not_found(self, family_db):
        assert family_db.get_family(999) is None


class TestChoreDBAddAndStatus:
    def test_add_chore_returns_pending_chore(self, chore_db, family, clock):
        due = clock.now() + timedelta(days=1)
        chore = chore_db.add_chore(
            family_id=family.family_id,
            title="Take out trash",
            assigned_by=family.parent_id,
            assigned_to=family.child_id,
            due_date=due,
            priority=ChorePriority.HIGH,
            points=10,
        )
        assert chore.id is not None
        assert chore.status == ChoreStatus.PENDING
        assert chore.due_date == due
        assert chore.priority == ChorePriority.HIGH
        assert chore.points == 10
        assert chore.completed_at is None

    def test_negative_points_rejected(self, chore_db, family):
        with pytest.raises(ValueError):
            chore_db.add_chore(family.family_id, "Bad", family.parent_id, points=-1)

    def test_get_chore_not_found(self, chore_db):
        assert chore_db.get_chore(999) is None

    def test_complete_sets_completed_at(self, chore_db, family, clock):
        chore = chore_db.add_chore(family.family_id, "Dishes", family.parent_id)
        updated = chore_db.update_status(chore.id, ChoreStatus.COMPLETED, at=clock.now())
        assert updated.completed_at == clock.now()
        assert updated.verified_at is None
        assert chore_db.get_chore(chore.id).completed_at == clock.now()

    def test_verify_keeps_completed_before_verified(self, chore_db, family, clock):
        chore = chore_db.add_chore(family.family_id, "Dishes", family.parent_id)
        done_at = clock.now()
        chore_db.update_status(chore.id, ChoreStatus.COMPLETED, at=done_at)
        verified = chore_db.update_status(
            chore.id, ChoreStatus.VERIFIED, at=done_at + timedelta(hours=1),
        )
        assert verified.completed_at == done_at
        assert verified.verified_at == done_at + timedelta(hours=1)

    def test_verify_directly_backfills_completed_at(self, chore_db, family, clock):
        chore = chore_db.add_chore(family.family_id, "Dishes", family.parent_id)
        verified = chore_db.update_status(chore.id, ChoreStatus.VERIFIED, at=clock.now())
        assert verified.completed_at == clock.now()
        assert verified.verified_at == clock.now()

    def test_reopen_clears_timestamps(self, chore_db, family, clock):
        chore = chore_db.add_chore(family.family_id, "Dishes", family.parent_id)
        chore_db.update_status(chore.id, ChoreStatus.VERIFIED, at=clock.now())
        rejected = chore_db.update_status(chore.id, ChoreStatus.REJECTED, at=clock.now())
        assert rejected.completed_at is None
        assert rejected.verified_at is None

    def test_update_status_unknown_chore(self, chore_db, clock):
        with pytest.raises(ValueError):
            chore_db.update_status(999, ChoreStatus.COMPLETED, at=clock.now())


class TestChoreDBQueries:
    def _add(self, chore_db, family, title, due, assigned=True):
        return chore_db.add_chore(
            family.family_id, title, family.parent_id,
            assigned_to=family.child_id if assigned else None,
            due_date=due,
        )

    def test_find_due_chores_includes_overdue(self, chore_db, family, clock):
        now = clock.now()
        self._add(chore_db, family, "Overdue", now - timedelta(days=2))
        self._add(chore_db, family, "Soon", now + timedelta(hours=5))
        self._add(chore_db, family, "Later", now + timedelta(days=3))
        due = chore_db.find_due_chores(now + timedelta(hours=24))
        assert [c.title for c in due] == ["Overdue", "Soon"]

    def test_find_due_chores_excludes_unassigned_undated_and_done(self, chore_db, family, clock):
        now = clock.now()
        self._add(chore_db, family, "Unassigned", now, assigned=False)
        self._add(chore_db, family, "No date", None)
        done = self._add(chore_db, family, "Done", now)
        chore_db.update_status(done.id, ChoreStatus.COMPLETED, at=now)
        in_progress = self._add(chore_db, family, "Working", now)
        chore_db.update_status(in_progress.id, ChoreStatus.IN_PROGRESS, at=now)
        due = chore_db.find_due_chores(now + timedelta(hours=24))
        assert [c.title for c in due] == ["Working"]

    def test_find_due_chores_scoped_to_family(self, chore_db, family, family_db, clock):
        now = clock.now()
        other = family_db.add_family(
            "Other", created_by=family.parent_id,
            members=[FamilyMember(name="Dana", role=FamilyRole.PARENT)],
        )
        self._add(chore_db, family, "Mine", now)
        chore_db.add_chore(other.id, "Theirs", family.parent_id,
                           assigned_to=family.parent_id, due_date=now)
        due = chore_db.find_due_chores(now + timedelta(hours=1), family_id=family.family_id)
        assert [c.title for c in due] == ["Mine"]

    def test_find_overdue_is_strict(self, chore_db, family, clock):
        now = clock.now()
        self._add(chore_db, family, "Exactly now", now)
        self._add(chore_db, family, "Past", now - timedelta(seconds=1))
        self._add(chore_db, family, "Unassigned past", now - timedelta(days=1), assigned=False)
        overdue = chore_db.find_overdue_chores(now, family_id=family.family_id)
        assert {c.title for c in overdue} == {"Past", "Unassigned past"}

    def test_find_completed_in_range(self, chore_db, family, clock):
        now = clock.now()
        inside = self._add(chore_db, family, "Inside", None)
        outside = self._add(chore_db, family, "Outside", None)
        chore_db.update_status(inside.id, ChoreStatus.VERIFIED, at=now - timedelta(hours=3))
        chore_db.update_status(outside.id, ChoreStatus.COMPLETED, at=now - timedelta(days=5))
        found = chore_db.find_completed_in_range(
            family.family_id, now - timedelta(days=1), now,
        )
        assert [c.title for c in found] == ["Inside"]

    def test_count_pending_approvals_ignores_time(self, chore_db, family, clock):
        old = self._add(chore_db, family, "Old", clock.now() - timedelta(days=30))
        new = self._add(chore_db, family, "New", None)
        approved = self._add(chore_db, family, "Approved", None)
        chore_db.set_photo_verification(old.id, PhotoVerificationStatus.PENDING)
        chore_db.set_photo_verification(new.id, PhotoVerificationStatus.PENDING)
        chore_db.set_photo_verification(approved.id, PhotoVerificationStatus.APPROVED)
        assert chore_db.count_pending_approvals(family.family_id) == 2

    def test_counts_for_stats(self, chore_db, family, clock):
        now = clock.now()
        self._add(chore_db, family, "Overdue", now - timedelta(hours=1))
        self._add(chore_db, family, "Today", now + timedelta(hours=3))
        self._add(chore_db, family, "This week", now + timedelta(days=4))
        self._add(chore_db, family, "Next month", now + timedelta(days=30))
        assert chore_db.count_open_due_between(now, now + timedelta(days=1)) == 1
        assert chore_db.count_open_due_between(now, now + timedelta(days=7)) == 2
        assert chore_db.count_overdue(now) == 1
        assert chore_db.count_overdue(now, family_id=999) == 0


class TestPreferencesDB:
    def test_get_or_create_creates_defaults_once(self, prefs_db):
        first = prefs_db.get_or_create(user_id=1, family_id=2)
        second = prefs_db.get_or_create(user_id=1, family_id=2)
        assert first.id is not None
        assert first.id == second.id
        assert second.chore_reminders is True
        assert second.first_reminder_days == 2

    def test_pairs_are_independent(self, prefs_db):
        a = prefs_db.get_or_create(user_id=1, family_id=1)
        b = prefs_db.get_or_create(user_id=1, family_id=2)
        assert a.id != b.id

    def test_get_or_create_keeps_existing_settings(self, prefs_db):
        prefs = prefs_db.get_or_create(user_id=1, family_id=1)
        prefs.chore_reminders = False
        prefs.first_reminder_days = 3
        prefs_db.update_preferences(prefs)
        again = prefs_db.get_or_create(user_id=1, family_id=1)
        assert again.chore_reminders is False
        assert again.first_reminder_days == 3

    def test_update_preferences_unknown_pair(self, prefs_db):
        from chorenotify.data.models import default_preferences
        with pytest.raises(ValueError):
            prefs_db.update_preferences(default_preferences(5, 5))

    def test_update_last_notification(self, prefs_db, clock):
        prefs = prefs_db.get_or_create(user_id=1, family_id=1)
        prefs_db.update_last_notification(prefs, NotificationCategory.CHORE_REMINDER, clock.now())
        assert prefs.last_chore_reminder == clock.now()
        stored = prefs_db.get_or_create(user_id=1, family_id=1)
        assert stored.last_chore_reminder == clock.now()
        assert stored.last_daily_digest is None

    def test_find_subscribed_for_digest_exact_time(self, prefs_db):
        match = prefs_db.get_or_create(user_id=1, family_id=1)
        match.daily_digest_time = "18:30"
        prefs_db.update_preferences(match)
        other_time = prefs_db.get_or_create(user_id=2, family_id=1)
        other_time.daily_digest_time = "18:31"
        prefs_db.update_preferences(other_time)
        disabled = prefs_db.get_or_create(user_id=3, family_id=1)
        disabled.daily_digest_time = "18:30"
        disabled.daily_digest = False
        prefs_db.update_preferences(disabled)
        no_email = prefs_db.get_or_create(user_id=4, family_id=1)
        no_email.daily_digest_time = "18:30"
        no_email.email_enabled = False
        prefs_db.update_preferences(no_email)

        found = prefs_db.find_subscribed_for_digest("18:30")
        assert [p.user_id for p in found] == [1]

    def test_find_subscribed_scoped_to_family(self, prefs_db):
        prefs_db.get_or_create(user_id=1, family_id=1)
        prefs_db.get_or_create(user_id=1, family_id=2)
        found = prefs_db.find_subscribed_for_digest("18:00", family_id=2)
        assert [p.family_id for p in found] == [2]

    def test_is_notification_allowed_delegates(self, prefs_db, clock):
        prefs = prefs_db.get_or_create(user_id=1, family_id=1)
        prefs.quiet_hours_enabled = True
        prefs.quiet_hours_start = "08:00"
        prefs.quiet_hours_end = "10:00"
        assert prefs_db.is_notification_allowed(prefs, clock.now()) is False

    def test_enabled_counts(self, prefs_db):
        prefs_db.get_or_create(user_id=1, family_id=1)
        off = prefs_db.get_or_create(user_id=2, family_id=1)
        off.chore_reminders = False
        prefs_db.update_preferences(off)
        prefs_db.get_or_create(user_id=3, family_id=2)
        assert prefs_db.count_reminders_enabled() == 2
        assert prefs_db.count_reminders_enabled(family_id=1) == 1
        assert prefs_db.count_digest_enabled(family_id=1) == 2
