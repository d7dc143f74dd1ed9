"""Resend email adapter — implements NotificationDispatcher.

Sends rendered reminder and digest emails through the Resend HTTP API.
Delivery problems come back as a failed DispatchResult; nothing is raised
into the engine.
"""

from __future__ import annotations

import logging

import httpx

from chorenotify.core.email_templates import render_digest_email, render_reminder_email
from chorenotify.data.models import (
    DigestNotification,
    DispatchResult,
    ReminderNotification,
)

logger = logging.getLogger(__name__)

_RESEND_EMAILS_URL = "https://api.resend.com/emails"
_TIMEOUT_SECONDS = 10


class ResendEmailDispatcher:
    """Resend implementation of NotificationDispatcher."""

    def __init__(self, api_key: str, sender: str, app_name: str) -> None:
        self._api_key = api_key
        self._sender = sender
        self._app_name = app_name

    async def send_reminder(self, notification: ReminderNotification) -> DispatchResult:
        subject, html = render_reminder_email(notification, self._app_name)
        return await self._send(notification.assigned_to.email, subject, html)

    async def send_digest(self, notification: DigestNotification) -> DispatchResult:
        subject, html = render_digest_email(notification, self._app_name)
        return await self._send(notification.recipient.email, subject, html)

    async def _send(self, to: str, subject: str, html: str) -> DispatchResult:
        if not to:
            return DispatchResult(success=False, error="Recipient has no email address")

        try:
            async with httpx.AsyncClient(timeout=_TIMEOUT_SECONDS) as client:
                resp = await client.post(
                    _RESEND_EMAILS_URL,
                    json={
                        "from": self._sender,
                        "to": [to],
                        "subject": subject,
                        "html": html,
                    },
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Resend delivery to %s failed: %s", to, exc)
            return DispatchResult(success=False, error=str(exc))

        message_id = data.get("id") if isinstance(data, dict) else None
        logger.debug("Resend accepted email to %s (id=%s)", to, message_id)
        return DispatchResult(success=True, message_id=message_id)
