"""Email delivery for due reminders."""

import asyncio
import html
import smtplib
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional, Protocol

from ...config import Settings, get_settings
from ...logging_config import get_logger
from ..reminders.models import DeliveryResult, Priority, Reminder, ReminderCategory

logger = get_logger(__name__)

CATEGORY_EMOJI = {
    ReminderCategory.MEDICINE: "💊",
    ReminderCategory.EXERCISE: "💪",
    ReminderCategory.YOGA: "🧘",
    ReminderCategory.DOCTOR_VISIT: "🏥",
    ReminderCategory.OTHER: "📅",
}

PRIORITY_LABELS = {
    Priority.HIGH: "🔴 High Priority",
    Priority.MEDIUM: "🟡 Medium Priority",
    Priority.LOW: "🟢 Low Priority",
}


class NotificationDispatcher(Protocol):
    async def deliver(
        self,
        recipient_address: str,
        recipient_name: Optional[str],
        reminder: Reminder,
    ) -> DeliveryResult: ...


def _category_label(category: ReminderCategory) -> str:
    return category.value.replace("_", " ").capitalize()


def build_reminder_email(
    sender: str,
    recipient_address: str,
    recipient_name: Optional[str],
    reminder: Reminder,
    frontend_url: str,
) -> EmailMessage:
    emoji = CATEGORY_EMOJI.get(reminder.category, "📅")
    when = (reminder.next_reminder or reminder.scheduled_time).strftime("%Y-%m-%d %H:%M")
    name = recipient_name or "User"
    link = f"{frontend_url.rstrip('/')}/reminders"
    priority = PRIORITY_LABELS.get(reminder.priority, reminder.priority.value)

    message = EmailMessage()
    message["Subject"] = f"{emoji} Health Reminder: {reminder.title}"
    message["From"] = f"Health Reminders <{sender}>"
    message["To"] = recipient_address
    message["Message-ID"] = make_msgid(domain=sender.split("@")[-1] or None)

    lines = [
        "Health Reminder",
        "",
        f"Hello {name},",
        "",
        "This is a reminder for your scheduled health activity:",
        "",
        f"Reminder: {reminder.title}",
        f"Type: {_category_label(reminder.category)}",
        f"Scheduled Time: {when}",
        f"Frequency: {reminder.frequency.value.capitalize()}",
        f"Priority: {priority}",
    ]
    if reminder.description:
        lines += ["", f"Description: {reminder.description}"]
    lines += ["", f"View all reminders: {link}", "", "This is an automated reminder. Please don't reply to this email."]
    message.set_content("\n".join(lines))

    # Titles and descriptions may come from model output, so everything is escaped
    rows = "".join(
        f"<tr><td><strong>{html.escape(label)}</strong></td><td>{html.escape(value)}</td></tr>"
        for label, value in (
            ("Reminder", reminder.title),
            ("Type", _category_label(reminder.category)),
            ("Scheduled Time", when),
            ("Frequency", reminder.frequency.value.capitalize()),
            ("Priority", priority),
        )
    )
    notes = (
        f"<p><strong>Additional Notes:</strong><br>{html.escape(reminder.description)}</p>"
        if reminder.description else ""
    )
    message.add_alternative(
        f"""<!DOCTYPE html>
<html><body>
<h1>{emoji} Health Reminder</h1>
<p>Hello {html.escape(name)},</p>
<p>This is a reminder for your scheduled health activity:</p>
<table>{rows}</table>
{notes}
<p><a href="{html.escape(link)}">View All Reminders</a></p>
<p>This is an automated reminder. Please don't reply to this email.</p>
</body></html>""",
        subtype="html",
    )
    return message


class EmailNotificationDispatcher:
    """Sends reminder emails over SMTP. ``deliver`` never raises."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def configured(self) -> bool:
        return self.settings.email_configured

    @property
    def sender(self) -> str:
        return self.settings.smtp_from or self.settings.smtp_user or ""

    def _send(self, message: EmailMessage) -> None:
        settings = self.settings
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=settings.smtp_timeout_seconds) as server:
            if settings.smtp_starttls:
                server.starttls()
            server.login(settings.smtp_user, settings.smtp_password)
            server.send_message(message)

    async def deliver(
        self,
        recipient_address: str,
        recipient_name: Optional[str],
        reminder: Reminder,
    ) -> DeliveryResult:
        if not self.configured:
            logger.warning("Email not configured. Skipping email send.")
            return DeliveryResult(success=False, error="Email service not configured")

        if not recipient_address:
            return DeliveryResult(success=False, error="User email not found")

        try:
            message = build_reminder_email(
                self.sender, recipient_address, recipient_name, reminder, self.settings.frontend_url
            )
            # The SMTP socket timeout bounds each step; this bounds the whole exchange
            await asyncio.wait_for(
                asyncio.to_thread(self._send, message),
                timeout=self.settings.smtp_timeout_seconds * 3,
            )
        except asyncio.TimeoutError:
            logger.error(f"Timed out sending reminder email to {recipient_address}")
            return DeliveryResult(success=False, error="Email send timed out")
        except Exception as e:
            logger.error(f"Error sending reminder email to {recipient_address}: {e}")
            return DeliveryResult(success=False, error=str(e))

        logger.info(f"Email sent successfully to {recipient_address}")
        return DeliveryResult(success=True, message_id=message["Message-ID"])
