"""Shared test fixtures and configuration.

Sets up fake environment variables so chorenotify.config doesn't sys.exit(),
and provides temp-file SQLite stores, a frozen clock and a seeded family.
"""

import os

# Patch env vars BEFORE any chorenotify imports
os.environ.setdefault("RESEND_API_KEY", "fake-resend-key-for-tests")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("TIMEZONE", "UTC")

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from chorenotify.data.models import DispatchResult, FamilyMember, FamilyRole

# Tuesday morning; every scheduler test evaluates relative to this instant.
NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Clock whose time only moves when a test moves it."""

    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@dataclass
class SeededFamily:
    family_id: int
    parent_id: int
    child_id: int


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path shared by all stores in a test."""
    return str(tmp_path / "test_chores.db")


@pytest.fixture
def chore_db(tmp_db_path):
    from chorenotify.data.db import ChoreDB
    return ChoreDB(db_path=tmp_db_path)


@pytest.fixture
def prefs_db(tmp_db_path):
    from chorenotify.data.db import PreferencesDB
    return PreferencesDB(db_path=tmp_db_path)


@pytest.fixture
def user_db(tmp_db_path):
    from chorenotify.data.db import UserDB
    return UserDB(db_path=tmp_db_path)


@pytest.fixture
def family_db(tmp_db_path):
    from chorenotify.data.db import FamilyDB
    return FamilyDB(db_path=tmp_db_path)


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def dispatcher():
    """A dispatcher that accepts every notification."""
    mock = AsyncMock()
    mock.send_reminder = AsyncMock(return_value=DispatchResult(success=True, message_id="msg_1"))
    mock.send_digest = AsyncMock(return_value=DispatchResult(success=True, message_id="msg_2"))
    return mock


@pytest.fixture
def family(user_db, family_db):
    """A family with one parent (Dana) and one child (Noa)."""
    parent = user_db.add_user("Dana", "dana@example.com")
    child = user_db.add_user("Noa", "noa@example.com")
    fam = family_db.add_family(
        "Levi",
        created_by=parent.id,
        members=[
            FamilyMember(name="Dana", role=FamilyRole.PARENT, user_id=parent.id),
            FamilyMember(name="Noa", role=FamilyRole.CHILD, user_id=child.id),
        ],
    )
    return SeededFamily(family_id=fam.id, parent_id=parent.id, child_id=child.id)


@pytest.fixture
def local_clock():
    """Clock on Asia/Jerusalem time (UTC+2 in early March), 18:00 local."""
    return FrozenClock(datetime(2026, 3, 10, 18, 0, tzinfo=ZoneInfo("Asia/Jerusalem")))
