"""Booking emails, sent after the response through ``BackgroundTasks``.

Delivery is best effort: a missing SMTP host or a transport failure is logged
and never reaches the request that triggered the email.
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Iterable

from fastapi import BackgroundTasks

from sailingloc.core.config import Settings, get_settings
from sailingloc.domain.booking_state import BookingStatus
from sailingloc.models.booking import Booking

logger = logging.getLogger(__name__)

_FALLBACK_SENDER = "no-reply@sailingloc.com"
_SMTP_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class Mail:
    to: tuple[str, ...]
    subject: str
    body: str

    def as_message(self, sender: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = sender
        message["To"] = ", ".join(self.to)
        message["Subject"] = self.subject
        message.set_content(self.body)
        return message


def _smtp_enabled(settings: Settings) -> bool:
    return bool(settings.smtp_host and settings.smtp_port)


def deliver(mail: Mail) -> None:
    settings = get_settings()
    sender = settings.smtp_from or settings.smtp_username or _FALLBACK_SENDER
    try:
        with smtplib.SMTP(
            settings.smtp_host, settings.smtp_port, timeout=_SMTP_TIMEOUT_SECONDS
        ) as client:
            client.starttls()
            if settings.smtp_username and settings.smtp_password:
                client.login(settings.smtp_username, settings.smtp_password)
            client.send_message(mail.as_message(sender))
    except (OSError, smtplib.SMTPException):
        logger.exception("Could not deliver '%s' to %s", mail.subject, list(mail.to))


def schedule_email(
    background_tasks: BackgroundTasks,
    *,
    recipients: Iterable[str | None],
    subject: str,
    body: str,
) -> Mail | None:
    """Queue delivery; returns the queued mail, or ``None`` when nothing is sent."""
    to = tuple(dict.fromkeys(address for address in recipients if address))
    if not to:
        return None
    if not _smtp_enabled(get_settings()):
        logger.debug("SMTP not configured; dropping '%s'", subject)
        return None
    mail = Mail(to=to, subject=subject, body=body)
    background_tasks.add_task(deliver, mail)
    return mail


def _dates(booking: Booking) -> str:
    return f"{booking.start_date.isoformat()} to {booking.end_date.isoformat()}"


def _boat_name(booking: Booking) -> str:
    boat = booking.__dict__.get("boat")
    return boat.name if boat is not None else "your boat"


def _owner_email(booking: Booking) -> str | None:
    owner = booking.__dict__.get("owner")
    return owner.email if owner is not None else None


def build_booking_received_email(booking: Booking) -> tuple[str, str]:
    subject = f"New booking request for {_boat_name(booking)}"
    body = (
        "Hello,\n\n"
        f"{booking.renter_name or 'A renter'} booked {_boat_name(booking)} "
        f"for {_dates(booking)} ({booking.day_count} day(s), total {booking.total:.2f}).\n"
        "Review and confirm the request from your owner dashboard.\n"
    )
    return subject, body


def build_booking_status_email(booking: Booking) -> tuple[str, str]:
    status = BookingStatus(booking.status)
    subject = f"Booking {status.value}: {_boat_name(booking)}"
    lines = [
        "Hello,",
        "",
        f"The booking of {_boat_name(booking)} for {_dates(booking)} is now {status.value}.",
    ]
    if status == BookingStatus.CANCELLED and booking.cancellation_reason:
        lines.append(f"Reason: {booking.cancellation_reason}")
    if status == BookingStatus.COMPLETED:
        lines.append("We hope you enjoyed your time on the water!")
    lines.extend(["", "The SailingLoc team"])
    return subject, "\n".join(lines)


def notify_booking_received(
    background_tasks: BackgroundTasks, *, booking: Booking
) -> None:
    subject, body = build_booking_received_email(booking)
    schedule_email(
        background_tasks,
        recipients=[_owner_email(booking)],
        subject=subject,
        body=body,
    )


def notify_booking_transition(
    background_tasks: BackgroundTasks, *, booking: Booking
) -> None:
    """Tell both parties about a confirmed, cancelled or completed booking."""
    subject, body = build_booking_status_email(booking)
    schedule_email(
        background_tasks,
        recipients=[booking.renter_email, _owner_email(booking)],
        subject=subject,
        body=body,
    )
