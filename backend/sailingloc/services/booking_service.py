"""Booking authority: materialization and lifecycle transitions."""

from __future__ import annotations

import logging
import uuid
from datetime import date

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from sailingloc.core.errors import (
    BookingError,
    CollaboratorFailure,
    PolicyError,
    ValidationError,
)
from sailingloc.domain.availability import UnavailabilityIndex
from sailingloc.domain.booking_state import (
    Actor,
    BookingStateMachine,
    BookingStatus,
    PaymentStatus,
)
from sailingloc.domain.date_range import DateRange
from sailingloc.domain.pricing import SERVICE_FEE_RATE
from sailingloc.models.booking import Booking
from sailingloc.models.user import User, UserRole
from sailingloc.security.permissions import booking_actor
from sailingloc.services import audit_service, availability_service

logger = logging.getLogger(__name__)


def _booking_query():
    return select(Booking).options(
        selectinload(Booking.boat),
        selectinload(Booking.owner),
        selectinload(Booking.renter),
    )


async def get_booking(session: AsyncSession, booking_id: uuid.UUID) -> Booking | None:
    """Return a booking with its boat and parties loaded."""
    result = await session.execute(_booking_query().where(Booking.id == booking_id))
    return result.scalar_one_or_none()


async def find_materialized(
    session: AsyncSession,
    *,
    boat_id: uuid.UUID,
    renter_id: uuid.UUID,
    date_range: DateRange,
    payment_reference: str,
) -> Booking | None:
    """Look a booking up by its materialization key."""
    result = await session.execute(
        _booking_query().where(
            Booking.boat_id == boat_id,
            Booking.renter_id == renter_id,
            Booking.start_date == date_range.start,
            Booking.end_date == date_range.end,
            Booking.payment_reference == payment_reference,
        )
    )
    return result.scalar_one_or_none()


async def materialize_booking(
    session: AsyncSession,
    *,
    boat_id: uuid.UUID,
    renter: User,
    date_range: DateRange,
    payment_reference: str,
    today: date,
) -> tuple[Booking, bool]:
    """Create the pending booking for a paid checkout.

    Returns ``(booking, created)``. Calling again with the same key returns the
    existing booking. The date gate is repeated on committed rows while the boat
    is locked: a start on or before ``today`` is a :class:`ValidationError` and
    the loser of a race gets :class:`ConflictError`.
    """
    renter_id = renter.id
    key = dict(
        boat_id=boat_id,
        renter_id=renter_id,
        date_range=date_range,
        payment_reference=payment_reference,
    )
    async with availability_service.boat_lock(boat_id):
        existing = await find_materialized(session, **key)
        if existing is not None:
            logger.info("Booking %s already materialized", existing.id)
            return existing, False
        boat = await availability_service.lock_boat_row(session, boat_id)
        if boat is None:
            raise ValidationError("The boat no longer exists", boat_id=boat_id)
        if boat.owner_id == renter_id:
            raise PolicyError("Owners cannot book their own boat")
        periods = await availability_service.load_periods(
            session, boat_id, window=date_range
        )
        UnavailabilityIndex(periods, resource_id=str(boat_id)).validate_candidate(
            date_range.start, date_range.end, today=today
        ).raise_for_failure()

        booking = Booking(
            id=uuid.uuid4(),
            boat_id=boat_id,
            renter_id=renter_id,
            owner_id=boat.owner_id,
            start_date=date_range.start,
            end_date=date_range.end,
            daily_price=boat.daily_price,
            service_fee_rate=SERVICE_FEE_RATE,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PAID,
            payment_reference=payment_reference,
            renter_name=renter.full_name,
            renter_email=renter.email,
            renter_phone=renter.phone_number,
        )
        session.add(booking)
        await audit_service.record_event(
            session,
            event_type="booking.created",
            user_id=renter_id,
            description=f"Booking of boat {boat_id} for {date_range}",
            payload={"booking_id": str(booking.id), "boat_id": str(boat_id)},
            commit=False,
        )
        try:
            await session.commit()
        except IntegrityError as exc:
            await session.rollback()
            existing = await find_materialized(session, **key)
            if existing is None:
                raise CollaboratorFailure("The booking could not be stored") from exc
            return existing, False
    availability_service.invalidate(boat_id)
    logger.info(
        "Materialized booking %s on boat %s for %s", booking.id, boat_id, date_range
    )
    stored = await get_booking(session, booking.id)
    if stored is None:
        raise CollaboratorFailure("The new booking could not be reloaded")
    return stored, True


async def list_bookings(
    session: AsyncSession,
    *,
    user: User,
    status: BookingStatus | None = None,
    boat_id: uuid.UUID | None = None,
    window: DateRange | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Booking]:
    """Return the bookings visible to ``user``."""
    stmt = _booking_query()
    if user.role == UserRole.OWNER:
        stmt = stmt.where(or_(Booking.owner_id == user.id, Booking.renter_id == user.id))
    elif user.role != UserRole.ADMIN:
        stmt = stmt.where(Booking.renter_id == user.id)
    if status is not None:
        stmt = stmt.where(Booking.status == status)
    if boat_id is not None:
        stmt = stmt.where(Booking.boat_id == boat_id)
    if window is not None:
        stmt = stmt.where(
            Booking.start_date <= window.end, Booking.end_date >= window.start
        )
    stmt = stmt.order_by(Booking.start_date.desc()).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def _apply_transition(
    session: AsyncSession,
    booking: Booking,
    target: BookingStatus,
    actor: Actor,
    *,
    today: date,
    user_id: uuid.UUID | None = None,
    reason: str | None = None,
) -> Booking:
    """Check and write ``target`` against the committed row.

    Competing actions on one booking are serialized by the boat lock and a row
    lock; the state machine then sees whatever the winner wrote, so the loser
    gets :class:`InvalidTransition` instead of overwriting it.
    """
    async with availability_service.boat_lock(booking.boat_id):
        await session.execute(
            select(Booking)
            .where(Booking.id == booking.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        previous = BookingStateMachine(booking).transition(target, actor, today=today)
        if target == BookingStatus.CANCELLED:
            booking.cancelled_by = actor
            booking.cancellation_reason = reason
        await audit_service.record_event(
            session,
            event_type=f"booking.{target.value}",
            user_id=user_id,
            description=f"{previous.value} -> {target.value} by {actor.value}",
            payload={
                "booking_id": str(booking.id),
                "from": previous.value,
                "to": target.value,
                "actor": actor.value,
            },
            commit=False,
        )
        await session.commit()
    availability_service.invalidate(booking.boat_id)
    logger.info(
        "Booking %s moved %s -> %s by %s",
        booking.id,
        previous.value,
        target.value,
        actor.value,
    )
    return booking


async def transition_booking(
    session: AsyncSession,
    *,
    booking: Booking,
    target: BookingStatus,
    user: User,
    today: date,
    reason: str | None = None,
) -> Booking:
    """Move ``booking`` to ``target`` on behalf of ``user``."""
    actor = booking_actor(user, booking)
    if actor is None:
        raise PolicyError("You are not a party to this booking")
    return await _apply_transition(
        session, booking, target, actor, today=today, user_id=user.id, reason=reason
    )


async def confirm_booking(
    session: AsyncSession, *, booking: Booking, user: User, today: date
) -> Booking:
    return await transition_booking(
        session, booking=booking, target=BookingStatus.CONFIRMED, user=user, today=today
    )


async def cancel_booking(
    session: AsyncSession,
    *,
    booking: Booking,
    user: User,
    today: date,
    reason: str | None = None,
) -> Booking:
    return await transition_booking(
        session,
        booking=booking,
        target=BookingStatus.CANCELLED,
        user=user,
        today=today,
        reason=reason,
    )


async def complete_booking(
    session: AsyncSession, *, booking: Booking, user: User, today: date
) -> Booking:
    return await transition_booking(
        session, booking=booking, target=BookingStatus.COMPLETED, user=user, today=today
    )


async def complete_elapsed_bookings(
    session: AsyncSession, *, today: date, user_id: uuid.UUID | None = None
) -> list[Booking]:
    """Complete every confirmed booking whose end date has passed."""
    result = await session.execute(
        _booking_query().where(
            Booking.status == BookingStatus.CONFIRMED, Booking.end_date < today
        )
    )
    completed: list[Booking] = []
    for booking in result.scalars().all():
        try:
            await _apply_transition(
                session,
                booking,
                BookingStatus.COMPLETED,
                Actor.SYSTEM,
                today=today,
                user_id=user_id,
            )
        except BookingError:
            logger.exception("Could not complete booking %s", booking.id)
            continue
        completed.append(booking)
    return completed
