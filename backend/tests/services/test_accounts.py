"""Account persistence and the audit trail."""

import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select, text

from conftest import PASSWORD
from sailingloc.core.config import get_settings
from sailingloc.core.errors import ValidationError
from sailingloc.core.security import verify_password
from sailingloc.domain.booking_state import BookingStatus
from sailingloc.models import User, UserRole
from sailingloc.models.audit_event import AuditEvent
from sailingloc.services import audit_service, user_service
from sailingloc.services.bootstrap_service import ensure_default_admin

pytestmark = pytest.mark.asyncio


async def test_create_user_normalizes_email_and_hashes_password(db_session) -> None:
    user = await user_service.create_user(
        db_session,
        email="  Skipper@Example.COM ",
        password=PASSWORD,
        first_name=" Yann ",
        last_name="Le Goff",
        phone_number="+33 6 98 76 54 32",
    )

    assert user.email == "skipper@example.com"
    assert user.first_name == "Yann"
    assert user.role == UserRole.RENTER
    assert verify_password(PASSWORD, user.hashed_password)
    assert await user_service.get_user_by_email(db_session, "SKIPPER@example.com") is not None


async def test_phone_numbers_are_stored_encrypted(db_session) -> None:
    user = await user_service.create_user(
        db_session,
        email="yann@example.com",
        password=PASSWORD,
        first_name="Yann",
        last_name="Le Goff",
        phone_number="+33 6 98 76 54 32",
    )

    raw = await db_session.scalar(
        text("SELECT phone_number FROM users WHERE email = :email"),
        {"email": "yann@example.com"},
    )

    assert raw.startswith("enc:")
    assert user.phone_number == "+33 6 98 76 54 32"


async def test_duplicate_email_is_a_validation_error(seeded, db_session) -> None:
    with pytest.raises(ValidationError) as caught:
        await user_service.create_user(
            db_session,
            email="renter@example.com",
            password=PASSWORD,
            first_name="Remy",
            last_name="Bis",
        )

    assert caught.value.context["fields"] == {"email": "Already registered"}
    count = len((await db_session.execute(select(User))).scalars().all())
    assert count == 4


async def test_update_profile_refuses_credentials(seeded, db_session) -> None:
    renter = seeded["renter"]

    await user_service.update_profile(db_session, renter, {"city": "Brest"})
    with pytest.raises(TypeError):
        await user_service.update_profile(db_session, renter, {"role": UserRole.ADMIN})

    assert renter.city == "Brest"
    assert renter.role == UserRole.RENTER


async def test_audit_payload_is_stored_as_json(seeded, db_session) -> None:
    booking_id = uuid.uuid4()

    event = await audit_service.record_event(
        db_session,
        event_type="booking.transition",
        user_id=seeded["owner"].id,
        payload={
            "booking_id": booking_id,
            "status": BookingStatus.CONFIRMED,
            "start": date(2030, 7, 10),
            "total": Decimal("330.00"),
        },
    )

    stored = await db_session.get(AuditEvent, event.id)
    assert stored.payload == {
        "booking_id": str(booking_id),
        "status": "confirmed",
        "start": "2030-07-10",
        "total": "330.00",
    }


async def test_default_admin_is_provisioned_once(reset_database, monkeypatch) -> None:
    monkeypatch.setenv("DEFAULT_ADMIN_EMAIL", "Ops@SailingLoc.com")
    monkeypatch.setenv("DEFAULT_ADMIN_PASSWORD", PASSWORD)
    get_settings.cache_clear()
    try:
        first = await ensure_default_admin()
        again = await ensure_default_admin()
    finally:
        monkeypatch.undo()
        get_settings.cache_clear()

    assert first.email == "ops@sailingloc.com"
    assert first.role == UserRole.ADMIN
    assert again.id == first.id
