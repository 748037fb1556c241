"""Multi-step reservation checkout: identity, payment, then booking.

The checkout row is the workflow state. Each step is a separate call, so a
client may retry any step: a failed or timed-out charge leaves the checkout on
the payment step with the candidate range intact, and a paid checkout is never
charged twice. Materialization is idempotent on
``(boat, renter, range, payment_reference)``.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.core.errors import (
    CollaboratorFailure,
    ConflictError,
    InvalidTransition,
    PaymentFailed,
    PolicyError,
    ValidationError,
)
from sailingloc.core.settings import get_payment_settings
from sailingloc.domain.date_range import DateRange, to_day
from sailingloc.domain.pricing import quote
from sailingloc.integrations.stripe_client import (
    ChargeResult,
    PaymentGateway,
    StripeClientError,
)
from sailingloc.models.boat import Boat
from sailingloc.models.booking import Booking
from sailingloc.models.checkout import CheckoutStep, ReservationCheckout
from sailingloc.models.payment import PaymentTransaction, PaymentTransactionStatus
from sailingloc.models.user import User, UserRole
from sailingloc.schemas.user import IdentityPayload
from sailingloc.services import auth_service, availability_service, booking_service
from sailingloc.services.auth_service import Identity

logger = logging.getLogger(__name__)

OPEN_STEPS = frozenset({CheckoutStep.IDENTITY, CheckoutStep.PAYMENT})


def ensure_may_book(user: User, boat: Boat) -> None:
    """Only renters may book, and never a boat they own."""
    if user.id == boat.owner_id:
        raise PolicyError(
            "Owners cannot book their own boat", boat_id=boat.id, reason="own_boat"
        )
    if user.role != UserRole.RENTER:
        raise PolicyError(
            "Only renter accounts can book boats; sign in with a renter account",
            role=user.role,
            reason="role",
        )


def _profile_complete(user: User) -> bool:
    return not auth_service.identity_errors(IdentityPayload(), existing=user)


async def get_checkout(
    session: AsyncSession, checkout_id: uuid.UUID
) -> ReservationCheckout | None:
    result = await session.execute(
        select(ReservationCheckout).where(ReservationCheckout.id == checkout_id)
    )
    return result.scalar_one_or_none()


async def start_checkout(
    session: AsyncSession,
    *,
    boat: Boat,
    start: date | str | None,
    end: date | str | None,
    today: date,
    user: User | None = None,
) -> ReservationCheckout:
    """Open a checkout for a candidate range that passes the advisory gate."""
    if user is not None:
        ensure_may_book(user, boat)
    index = await availability_service.get_index(session, boat.id)
    index.validate_candidate(start, end, today=today).raise_for_failure()
    date_range = DateRange(to_day(start), to_day(end))  # type: ignore[arg-type]
    price = quote(boat.daily_price, date_range)
    step = CheckoutStep.IDENTITY
    if user is not None and _profile_complete(user):
        step = CheckoutStep.PAYMENT
    checkout = ReservationCheckout(
        boat_id=boat.id,
        renter_id=user.id if user else None,
        start_date=date_range.start,
        end_date=date_range.end,
        step=step,
        amount=price.total,
        currency=get_payment_settings().currency,
    )
    session.add(checkout)
    await session.commit()
    logger.info(
        "Started checkout %s for boat %s (%s), step %s",
        checkout.id,
        boat.id,
        date_range,
        step.value,
    )
    return checkout


def _ensure_owner_of_checkout(checkout: ReservationCheckout, user: User | None) -> None:
    if checkout.renter_id is not None and (user is None or user.id != checkout.renter_id):
        raise PolicyError("This checkout belongs to another account")


async def submit_identity(
    session: AsyncSession,
    *,
    checkout: ReservationCheckout,
    boat: Boat,
    payload: IdentityPayload,
    current_user: User | None = None,
) -> Identity:
    """Step 1: create the renter account or complete the signed-in profile."""
    if checkout.step not in OPEN_STEPS or checkout.is_paid:
        raise InvalidTransition(
            checkout.step,
            CheckoutStep.PAYMENT,
            message="Identity can no longer be changed for this checkout",
        )
    _ensure_owner_of_checkout(checkout, current_user)
    if current_user is not None:
        ensure_may_book(current_user, boat)
    identity = await auth_service.establish_identity(
        session, payload=payload, current_user=current_user
    )
    ensure_may_book(identity.user, boat)
    checkout.renter_id = identity.id
    checkout.step = CheckoutStep.PAYMENT
    checkout.last_error = None
    await session.commit()
    return identity


def _record_attempt(
    session: AsyncSession,
    checkout: ReservationCheckout,
    *,
    provider: str,
    idempotency_key: str,
    result: ChargeResult,
) -> PaymentTransaction:
    transaction = PaymentTransaction(
        checkout_id=checkout.id,
        renter_id=checkout.renter_id,
        provider=provider,
        provider_reference=result.reference,
        idempotency_key=idempotency_key,
        amount=checkout.amount,
        currency=checkout.currency,
        status=(
            PaymentTransactionStatus.SUCCEEDED
            if result.success
            else PaymentTransactionStatus.FAILED
        ),
        failure_reason=result.failure_reason,
    )
    session.add(transaction)
    return transaction


async def _recheck_dates(
    session: AsyncSession, checkout: ReservationCheckout, *, today: date
) -> None:
    index = await availability_service.get_index(session, checkout.boat_id)
    check = index.validate_candidate(checkout.start_date, checkout.end_date, today=today)
    if check.is_available:
        return
    checkout.last_error = check.message
    await session.commit()
    check.raise_for_failure()


async def _charge(
    gateway: PaymentGateway,
    checkout: ReservationCheckout,
    *,
    instrument: str,
    idempotency_key: str,
    timeout: float,
) -> ChargeResult:
    try:
        return await asyncio.wait_for(
            gateway.charge(
                checkout.amount,
                currency=checkout.currency,
                instrument=instrument,
                idempotency_key=idempotency_key,
                metadata={"checkout_id": str(checkout.id)},
            ),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        logger.warning("Payment for checkout %s timed out after %ss", checkout.id, timeout)
        return ChargeResult(success=False, failure_reason="The payment timed out")
    except StripeClientError as exc:
        logger.warning("Payment for checkout %s failed: %s", checkout.id, exc)
        return ChargeResult(
            success=False, failure_reason="The payment service is unavailable"
        )


async def submit_payment(
    session: AsyncSession,
    *,
    checkout: ReservationCheckout,
    user: User,
    instrument: str,
    gateway: PaymentGateway,
    today: date,
    timeout: float | None = None,
) -> tuple[ReservationCheckout, Booking]:
    """Step 2: charge the total, then materialize the booking.

    The range goes through the date gate again before any charge, so a
    checkout left open until its start date has passed is never paid. A
    checkout that is already paid skips the charge and only retries
    materialization.
    """
    if checkout.step == CheckoutStep.COMPLETED:
        return checkout, await _completed_booking(session, checkout)
    if checkout.step != CheckoutStep.PAYMENT:
        raise InvalidTransition(
            checkout.step,
            CheckoutStep.COMPLETED,
            message=f"Checkout is on step '{checkout.step.value}', not payment",
        )
    _ensure_owner_of_checkout(checkout, user)
    if not checkout.is_paid:
        await _recheck_dates(session, checkout, today=today)
        checkout.payment_attempts += 1
        idempotency_key = f"{checkout.id}-{checkout.payment_attempts}"
        result = await _charge(
            gateway,
            checkout,
            instrument=instrument,
            idempotency_key=idempotency_key,
            timeout=timeout or get_payment_settings().timeout_seconds,
        )
        _record_attempt(
            session,
            checkout,
            provider=gateway.provider,
            idempotency_key=idempotency_key,
            result=result,
        )
        if not result.success or not result.reference:
            reason = result.failure_reason or "The payment was not accepted"
            checkout.last_error = reason
            await session.commit()
            raise PaymentFailed(
                reason, checkout_id=checkout.id, attempts=checkout.payment_attempts
            )
        checkout.payment_reference = result.reference
        checkout.last_error = None
        await session.commit()
        logger.info("Checkout %s paid (%s)", checkout.id, result.reference)
    booking = await _materialize(
        session, checkout=checkout, user=user, gateway=gateway, today=today
    )
    return checkout, booking


async def finalize_checkout(
    session: AsyncSession,
    *,
    checkout: ReservationCheckout,
    user: User,
    gateway: PaymentGateway,
    today: date,
) -> tuple[ReservationCheckout, Booking]:
    """Retry materialization of a paid checkout."""
    if checkout.step == CheckoutStep.COMPLETED:
        return checkout, await _completed_booking(session, checkout)
    if checkout.step != CheckoutStep.PAYMENT or not checkout.is_paid:
        raise InvalidTransition(
            checkout.step,
            CheckoutStep.COMPLETED,
            message="Only paid checkouts can be finalized",
        )
    _ensure_owner_of_checkout(checkout, user)
    booking = await _materialize(
        session, checkout=checkout, user=user, gateway=gateway, today=today
    )
    return checkout, booking


async def _completed_booking(
    session: AsyncSession, checkout: ReservationCheckout
) -> Booking:
    booking = None
    if checkout.booking_id is not None:
        booking = await booking_service.get_booking(session, checkout.booking_id)
    if booking is None:
        raise CollaboratorFailure("The booking of this checkout could not be loaded")
    return booking


async def _materialize(
    session: AsyncSession,
    *,
    checkout: ReservationCheckout,
    user: User,
    gateway: PaymentGateway,
    today: date,
) -> Booking:
    checkout_id = checkout.id
    payment_reference = str(checkout.payment_reference)
    try:
        booking, created = await booking_service.materialize_booking(
            session,
            boat_id=checkout.boat_id,
            renter=user,
            date_range=DateRange(checkout.start_date, checkout.end_date),
            payment_reference=payment_reference,
            today=today,
        )
    except (ConflictError, PolicyError, ValidationError) as exc:
        await session.refresh(checkout)
        await _refund(session, checkout, gateway=gateway)
        checkout.step = CheckoutStep.CONFLICTED
        checkout.last_error = exc.message
        await session.commit()
        logger.info("Checkout %s lost its dates: %s", checkout_id, exc.message)
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Materializing checkout %s failed", checkout_id)
        raise CollaboratorFailure(
            "The booking could not be saved; retry to finalize", checkout_id=checkout_id
        ) from exc
    await session.refresh(checkout)
    checkout.booking_id = booking.id
    checkout.step = CheckoutStep.COMPLETED
    checkout.last_error = None
    await session.commit()
    if not created:
        logger.info("Checkout %s resumed onto booking %s", checkout_id, booking.id)
    return booking


async def _refund(
    session: AsyncSession,
    checkout: ReservationCheckout,
    *,
    gateway: PaymentGateway,
) -> None:
    reference = checkout.payment_reference
    if not reference:
        return
    try:
        await gateway.refund(reference)
    except StripeClientError:
        logger.exception(
            "Refund of %s for checkout %s failed; needs manual follow-up",
            reference,
            checkout.id,
        )
        return
    result = await session.execute(
        select(PaymentTransaction).where(
            PaymentTransaction.checkout_id == checkout.id,
            PaymentTransaction.provider_reference == reference,
        )
    )
    for transaction in result.scalars().all():
        transaction.status = PaymentTransactionStatus.REFUNDED
    logger.info("Refunded %s for checkout %s", reference, checkout.id)


async def abandon_checkout(
    session: AsyncSession,
    *,
    checkout: ReservationCheckout,
    user: User | None,
    gateway: PaymentGateway,
) -> ReservationCheckout:
    """Give up on a checkout, refunding a charge that never became a booking."""
    if checkout.step not in OPEN_STEPS:
        raise InvalidTransition(checkout.step, CheckoutStep.ABANDONED)
    _ensure_owner_of_checkout(checkout, user)
    if checkout.is_paid:
        await _refund(session, checkout, gateway=gateway)
    checkout.step = CheckoutStep.ABANDONED
    await session.commit()
    logger.info("Checkout %s abandoned", checkout.id)
    return checkout
