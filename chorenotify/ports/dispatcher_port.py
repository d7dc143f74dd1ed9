"""Dispatcher port — abstract interface for delivering notifications.

Implementations report delivery problems through DispatchResult instead of
raising, so one failed send never aborts a batch.
"""

from __future__ import annotations

from typing import Protocol

from chorenotify.data.models import (
    DigestNotification,
    DispatchResult,
    ReminderNotification,
)


class NotificationDispatcher(Protocol):
    """Abstract notification transport used by core modules."""

    async def send_reminder(self, notification: ReminderNotification) -> DispatchResult: ...

    async def send_digest(self, notification: DigestNotification) -> DispatchResult: ...
