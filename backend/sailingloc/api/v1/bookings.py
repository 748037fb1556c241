"""Booking lifecycle API."""

from __future__ import annotations

import uuid
from datetime import date
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Body, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.api import deps
from sailingloc.domain.booking_state import BookingStatus
from sailingloc.domain.date_range import DateRange
from sailingloc.models.booking import Booking
from sailingloc.models.user import User, UserRole
from sailingloc.schemas.booking import (
    BookingCancelRequest,
    BookingRead,
    CompletionSweepRead,
)
from sailingloc.security.permissions import booking_actor, require_roles
from sailingloc.services import booking_service, notification_service

router = APIRouter()


async def _get_visible_booking(
    session: AsyncSession, booking_id: uuid.UUID, user: User
) -> Booking:
    booking = await booking_service.get_booking(session, booking_id)
    if booking is None or booking_actor(user, booking) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Booking not found"
        )
    return booking


@router.get("", response_model=list[BookingRead], summary="List bookings")
async def list_bookings(
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    status_filter: Annotated[BookingStatus | None, Query(alias="status")] = None,
    boat_id: uuid.UUID | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[BookingRead]:
    window = None
    if start_date is not None and end_date is not None and start_date <= end_date:
        window = DateRange(start_date, end_date)
    bookings = await booking_service.list_bookings(
        session,
        user=current_user,
        status=status_filter,
        boat_id=boat_id,
        window=window,
        skip=skip,
        limit=min(limit, 100),
    )
    return [BookingRead.model_validate(booking) for booking in bookings]


@router.post(
    "/complete-elapsed",
    response_model=CompletionSweepRead,
    summary="Complete confirmed bookings whose end date has passed",
)
async def complete_elapsed(
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    today: deps.Today,
    background_tasks: BackgroundTasks,
) -> CompletionSweepRead:
    require_roles(current_user, {UserRole.ADMIN})
    completed = await booking_service.complete_elapsed_bookings(
        session, today=today, user_id=current_user.id
    )
    for booking in completed:
        notification_service.notify_booking_transition(background_tasks, booking=booking)
    return CompletionSweepRead(
        completed=[BookingRead.model_validate(booking) for booking in completed]
    )


@router.get("/{booking_id}", response_model=BookingRead, summary="Get booking")
async def get_booking(
    booking_id: uuid.UUID,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
) -> BookingRead:
    booking = await _get_visible_booking(session, booking_id, current_user)
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/confirm", response_model=BookingRead, summary="Confirm booking"
)
async def confirm_booking(
    booking_id: uuid.UUID,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    today: deps.Today,
    background_tasks: BackgroundTasks,
) -> BookingRead:
    booking = await _get_visible_booking(session, booking_id, current_user)
    booking = await booking_service.confirm_booking(
        session, booking=booking, user=current_user, today=today
    )
    notification_service.notify_booking_transition(background_tasks, booking=booking)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingRead, summary="Cancel booking")
async def cancel_booking(
    booking_id: uuid.UUID,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    today: deps.Today,
    background_tasks: BackgroundTasks,
    payload: Annotated[BookingCancelRequest | None, Body()] = None,
) -> BookingRead:
    booking = await _get_visible_booking(session, booking_id, current_user)
    booking = await booking_service.cancel_booking(
        session,
        booking=booking,
        user=current_user,
        today=today,
        reason=payload.reason if payload else None,
    )
    notification_service.notify_booking_transition(background_tasks, booking=booking)
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/complete", response_model=BookingRead, summary="Complete booking"
)
async def complete_booking(
    booking_id: uuid.UUID,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    today: deps.Today,
    background_tasks: BackgroundTasks,
) -> BookingRead:
    booking = await _get_visible_booking(session, booking_id, current_user)
    booking = await booking_service.complete_booking(
        session, booking=booking, user=current_user, today=today
    )
    notification_service.notify_booking_transition(background_tasks, booking=booking)
    return BookingRead.model_validate(booking)
