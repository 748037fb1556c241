"""Outbound booking mail."""

from fastapi import BackgroundTasks

from sailingloc.core.config import get_settings
from sailingloc.services import notification_service


def test_mail_is_dropped_without_smtp(monkeypatch) -> None:
    monkeypatch.delenv("SMTP_HOST", raising=False)
    get_settings.cache_clear()
    tasks = BackgroundTasks()

    queued = notification_service.schedule_email(
        tasks, recipients=["renter@example.com"], subject="Hi", body="..."
    )

    assert queued is None
    assert tasks.tasks == []


def test_recipients_are_deduplicated_and_queued(monkeypatch) -> None:
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "587")
    monkeypatch.setenv("SMTP_FROM", "bookings@sailingloc.com")
    get_settings.cache_clear()
    tasks = BackgroundTasks()
    try:
        queued = notification_service.schedule_email(
            tasks,
            recipients=["owner@example.com", None, "owner@example.com", "renter@example.com"],
            subject="Booking confirmed",
            body="See you on the water",
        )
    finally:
        monkeypatch.undo()
        get_settings.cache_clear()

    assert queued.to == ("owner@example.com", "renter@example.com")
    assert len(tasks.tasks) == 1
    message = queued.as_message("bookings@sailingloc.com")
    assert message["To"] == "owner@example.com, renter@example.com"
    assert message["Subject"] == "Booking confirmed"
