"""Admin push/email alerts and customer confirmation emails.

Every send is best effort: a failure is logged and reported as ``False`` so a
booking never fails because a notification did.
"""
from __future__ import annotations

import asyncio
import smtplib
from datetime import date
from email.message import EmailMessage

import httpx
import structlog

from everest.app.core.config import Settings
from everest.app.routers.schemas import BookingRecord

logger = structlog.get_logger(__name__)

PUSHOVER_URL = "https://api.pushover.net/1/messages.json"
RESTAURANT_NAME = "Everest Cuisine"


def format_date(value: date) -> str:
    return f"{value:%A}, {value:%B} {value.day}, {value.year}"


def format_time(value: str) -> str:
    hours, minutes = value.split(":")
    hour = int(hours)
    suffix = "PM" if hour >= 12 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


def _party(size: int) -> str:
    return f"{size} {'person' if size == 1 else 'people'}"


def admin_summary(record: BookingRecord) -> str:
    return (
        f"{record.name} has made a reservation for {record.party_size} on "
        f"{format_date(record.date)} at {format_time(record.time)}."
    )


def admin_email_body(record: BookingRecord) -> str:
    lines = [
        "New Reservation",
        "",
        f"Booking ID: {record.id}",
        f"Name: {record.name}",
        f"Email: {record.email}",
        f"Phone: {record.phone}",
        f"Date: {format_date(record.date)}",
        f"Time: {format_time(record.time)}",
        f"Party Size: {_party(record.party_size)}",
    ]
    if record.occasion:
        lines.append(f"Special Occasion: {record.occasion}")
    if record.notes:
        lines.append(f"Notes: {record.notes}")
    return "\n".join(lines)


def confirmation_email_body(record: BookingRecord) -> str:
    lines = [
        f"Dear {record.name},",
        "",
        f"We're excited to confirm your reservation at {RESTAURANT_NAME}:",
        "",
        f"Date: {format_date(record.date)}",
        f"Time: {format_time(record.time)}",
        f"Party Size: {_party(record.party_size)}",
    ]
    if record.occasion:
        lines.append(f"Special Occasion: {record.occasion}")
    lines += [
        "",
        "We look forward to serving you!",
        "",
        f"Warm regards,\nThe {RESTAURANT_NAME} Team",
    ]
    return "\n".join(lines)


class Notifier:
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self.transport = transport

    async def booking_received(self, record: BookingRecord) -> None:
        """Alert staff about a new pending booking."""
        await self.send_push("New Reservation", admin_summary(record))
        if self.settings.ADMIN_EMAIL:
            await self.send_email(
                self.settings.ADMIN_EMAIL,
                f"New Reservation: {record.name} - {format_date(record.date)}",
                admin_email_body(record),
            )
        else:
            logger.warning("admin_email_not_configured", booking_id=record.id)

    async def booking_confirmed(self, record: BookingRecord) -> None:
        await self.send_email(
            record.email,
            f"Your Reservation at {RESTAURANT_NAME} is Confirmed",
            confirmation_email_body(record),
        )

    async def send_push(self, title: str, message: str, priority: int = 0) -> bool:
        if not self.settings.PUSHOVER_TOKEN or not self.settings.PUSHOVER_USER_KEY:
            logger.warning("pushover_not_configured")
            return False

        payload = {
            "token": self.settings.PUSHOVER_TOKEN,
            "user": self.settings.PUSHOVER_USER_KEY,
            "title": title,
            "message": message,
            "priority": priority,
        }
        try:
            async with httpx.AsyncClient(
                transport=self.transport,
                timeout=self.settings.NOTIFICATION_TIMEOUT_SECONDS,
            ) as client:
                response = await client.post(PUSHOVER_URL, json=payload)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("notification_failed", channel="pushover", error=str(exc))
            return False
        return True

    async def send_email(self, to_email: str, subject: str, body: str) -> bool:
        if not self.settings.SMTP_HOST:
            logger.warning("smtp_not_configured", subject=subject)
            return False

        try:
            # Header assignment raises ValueError on CR/LF in guest-supplied text.
            msg = EmailMessage()
            msg["Subject"] = subject
            msg["From"] = self.settings.EMAIL_FROM
            msg["To"] = to_email
            msg.set_content(body)
            await asyncio.to_thread(self._deliver, msg)
        except (smtplib.SMTPException, OSError, ValueError) as exc:
            logger.warning("notification_failed", channel="email", subject=subject, error=str(exc))
            return False
        return True

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(
            self.settings.SMTP_HOST,
            self.settings.SMTP_PORT,
            timeout=self.settings.NOTIFICATION_TIMEOUT_SECONDS,
        ) as server:
            if self.settings.SMTP_USE_TLS:
                server.starttls()
            if self.settings.SMTP_USERNAME:
                server.login(self.settings.SMTP_USERNAME, self.settings.SMTP_PASSWORD or "")
            server.send_message(msg)
