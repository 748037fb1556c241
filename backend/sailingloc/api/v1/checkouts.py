"""Reservation checkout API: start, identity, payment, finalize, abandon."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, BackgroundTasks, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.api import deps
from sailingloc.api.v1.boats import get_boat_or_404
from sailingloc.models.checkout import ReservationCheckout
from sailingloc.models.user import User
from sailingloc.schemas.auth import Token
from sailingloc.schemas.booking import BookingRead
from sailingloc.schemas.checkout import (
    CheckoutIdentityResponse,
    CheckoutPaymentRequest,
    CheckoutRead,
    CheckoutStart,
)
from sailingloc.schemas.user import IdentityPayload
from sailingloc.services import (
    auth_service,
    notification_service,
    reservation_workflow,
)

router = APIRouter()


async def _get_checkout_or_404(
    session: AsyncSession, checkout_id: uuid.UUID, user: User | None
) -> ReservationCheckout:
    checkout = await reservation_workflow.get_checkout(session, checkout_id)
    if checkout is None or (
        checkout.renter_id is not None and (user is None or user.id != checkout.renter_id)
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Checkout not found"
        )
    return checkout


@router.post(
    "",
    response_model=CheckoutRead,
    status_code=status.HTTP_201_CREATED,
    summary="Start a checkout for a candidate range",
)
async def start_checkout(
    payload: CheckoutStart,
    session: deps.SessionDep,
    current_user: deps.OptionalUser,
    today: deps.Today,
) -> CheckoutRead:
    boat = await get_boat_or_404(session, payload.boat_id)
    if not boat.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Boat not found")
    checkout = await reservation_workflow.start_checkout(
        session,
        boat=boat,
        start=payload.start_date,
        end=payload.end_date,
        today=today,
        user=current_user,
    )
    return CheckoutRead.model_validate(checkout)


@router.get("/{checkout_id}", response_model=CheckoutRead, summary="Get checkout")
async def get_checkout(
    checkout_id: uuid.UUID,
    session: deps.SessionDep,
    current_user: deps.OptionalUser,
) -> CheckoutRead:
    checkout = await _get_checkout_or_404(session, checkout_id, current_user)
    return CheckoutRead.model_validate(checkout)


@router.post(
    "/{checkout_id}/identity",
    response_model=CheckoutIdentityResponse,
    summary="Create an account or complete the profile of the renter",
)
async def submit_identity(
    checkout_id: uuid.UUID,
    payload: IdentityPayload,
    session: deps.SessionDep,
    current_user: deps.OptionalUser,
) -> CheckoutIdentityResponse:
    checkout = await _get_checkout_or_404(session, checkout_id, current_user)
    boat = await get_boat_or_404(session, checkout.boat_id)
    identity = await reservation_workflow.submit_identity(
        session,
        checkout=checkout,
        boat=boat,
        payload=payload,
        current_user=current_user,
    )
    token = None
    if identity.created:
        token = Token(access_token=auth_service.create_access_token_for_user(identity.user))
    return CheckoutIdentityResponse(
        checkout=CheckoutRead.model_validate(checkout), token=token
    )


@router.post(
    "/{checkout_id}/payment",
    response_model=BookingRead,
    summary="Pay the total and create the booking",
)
async def submit_payment(
    checkout_id: uuid.UUID,
    payload: CheckoutPaymentRequest,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    gateway: deps.Gateway,
    today: deps.Today,
    background_tasks: BackgroundTasks,
) -> BookingRead:
    checkout = await _get_checkout_or_404(session, checkout_id, current_user)
    was_completed = checkout.booking_id is not None
    _, booking = await reservation_workflow.submit_payment(
        session,
        checkout=checkout,
        user=current_user,
        instrument=payload.payment_instrument,
        gateway=gateway,
        today=today,
    )
    if not was_completed:
        notification_service.notify_booking_received(background_tasks, booking=booking)
    return BookingRead.model_validate(booking)


@router.post(
    "/{checkout_id}/finalize",
    response_model=BookingRead,
    summary="Retry booking creation for a paid checkout",
)
async def finalize_checkout(
    checkout_id: uuid.UUID,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    gateway: deps.Gateway,
    today: deps.Today,
    background_tasks: BackgroundTasks,
) -> BookingRead:
    checkout = await _get_checkout_or_404(session, checkout_id, current_user)
    was_completed = checkout.booking_id is not None
    _, booking = await reservation_workflow.finalize_checkout(
        session,
        checkout=checkout,
        user=current_user,
        gateway=gateway,
        today=today,
    )
    if not was_completed:
        notification_service.notify_booking_received(background_tasks, booking=booking)
    return BookingRead.model_validate(booking)


@router.post(
    "/{checkout_id}/abandon", response_model=CheckoutRead, summary="Abandon checkout"
)
async def abandon_checkout(
    checkout_id: uuid.UUID,
    session: deps.SessionDep,
    current_user: deps.OptionalUser,
    gateway: deps.Gateway,
) -> CheckoutRead:
    checkout = await _get_checkout_or_404(session, checkout_id, current_user)
    checkout = await reservation_workflow.abandon_checkout(
        session, checkout=checkout, user=current_user, gateway=gateway
    )
    return CheckoutRead.model_validate(checkout)
