"""
Family Chores Notify — Email rendering.

Turns reminder and digest notifications into (subject, html) pairs. Every
piece of user-entered text is HTML-escaped.
"""

from __future__ import annotations

from html import escape

from chorenotify.data.models import DigestNotification, ReminderNotification


def reminder_subject(notification: ReminderNotification) -> str:
    title = notification.chore_title
    if notification.overdue:
        return f"Overdue: {title}"
    if notification.days_until_due == 0:
        return f"Due today: {title}"
    if notification.days_until_due == 1:
        return f"Due tomorrow: {title}"
    return f"Reminder: {title} is due in {notification.days_until_due} days"


def render_reminder_email(
    notification: ReminderNotification, app_name: str,
) -> tuple[str, str]:
    """Render a chore reminder email."""
    due = notification.due_date.strftime("%A, %d %B at %H:%M")
    lines = [
        f"<h2>{escape(reminder_subject(notification))}</h2>",
        f"<p>Hi {escape(notification.assigned_to.name)},</p>",
        f"<p><strong>{escape(notification.chore_title)}</strong> "
        f"({escape(notification.family_name)}) is due {escape(due)}.</p>",
    ]
    if notification.chore_description:
        lines.append(f"<p>{escape(notification.chore_description)}</p>")
    lines.append(
        f"<p>Priority: {notification.priority.value} · Points: {notification.points}</p>"
    )
    if notification.requires_photo_verification:
        lines.append("<p>Remember to upload a photo when you're done.</p>")
    lines.append(f"<p>Assigned by {escape(notification.assigned_by.name)}</p>")

    subject = f"[{app_name}] {reminder_subject(notification)}"
    return subject, "\n".join(lines)


def render_digest_email(
    notification: DigestNotification, app_name: str,
) -> tuple[str, str]:
    """Render the daily family digest email."""
    digest = notification.digest
    family = escape(notification.family_name)
    lines = [
        f"<h2>Daily summary for {family}</h2>",
        f"<p>Hi {escape(notification.recipient.name)}, here's how {family} did.</p>",
    ]

    if digest.completed_chores:
        lines.append(
            f"<h3>Completed ({len(digest.completed_chores)}) · "
            f"{digest.total_points_earned} points earned</h3>"
        )
        lines.append("<ul>")
        for item in digest.completed_chores:
            lines.append(
                f"<li>{escape(item.title)} by {escape(item.completed_by)} "
                f"(+{item.points})</li>"
            )
        lines.append("</ul>")
    else:
        lines.append("<p>No chores completed since yesterday.</p>")

    if digest.overdue_chores:
        lines.append(f"<h3>Overdue ({len(digest.overdue_chores)})</h3>")
        lines.append("<ul>")
        for item in digest.overdue_chores:
            unit = "day" if item.days_overdue == 1 else "days"
            lines.append(
                f"<li>{escape(item.title)}, {escape(item.assigned_to)} "
                f"({item.days_overdue} {unit} late)</li>"
            )
        lines.append("</ul>")

    if digest.pending_approvals:
        lines.append(
            f"<p>{digest.pending_approvals} photo proof(s) waiting for your approval.</p>"
        )

    subject = f"[{app_name}] {notification.family_name} daily summary for {notification.digest_date}"
    return subject, "\n".join(lines)
