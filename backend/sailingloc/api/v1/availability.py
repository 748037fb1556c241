"""Unavailable periods, availability checks and the owner calendar."""

from __future__ import annotations

import calendar
import uuid
from datetime import date

from fastapi import APIRouter, HTTPException, Query, Response, status

from sailingloc.api import deps
from sailingloc.api.v1.boats import get_boat_or_404
from sailingloc.core.errors import ValidationError
from sailingloc.domain.availability import PeriodKind
from sailingloc.domain.date_range import DateRange
from sailingloc.models.user import User
from sailingloc.schemas.availability import (
    AvailabilityBlockCreate,
    AvailabilityCheckRead,
    CalendarCellRead,
    CalendarMonthRead,
    UnavailablePeriodRead,
)
from sailingloc.security.permissions import can_manage_boat
from sailingloc.services import availability_service

router = APIRouter()


def _assert_can_manage(user: User, owner_id: uuid.UUID) -> None:
    if not can_manage_boat(user, owner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the boat owner can change its availability",
        )


def _window(start: date | None, end: date | None) -> DateRange | None:
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise ValidationError("Provide both start_date and end_date to filter")
    try:
        return DateRange(start, end)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


@router.get(
    "/boats/{boat_id}/unavailable-periods",
    response_model=list[UnavailablePeriodRead],
    summary="List bookings, blocks and overrides of a boat",
)
async def list_unavailable_periods(
    boat_id: uuid.UUID,
    session: deps.SessionDep,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[UnavailablePeriodRead]:
    await get_boat_or_404(session, boat_id)
    periods = await availability_service.list_periods(
        session, boat_id, window=_window(start_date, end_date)
    )
    return [UnavailablePeriodRead.from_period(period) for period in periods]


@router.get(
    "/availability/check",
    response_model=AvailabilityCheckRead,
    summary="Check whether a boat is free for a candidate range",
)
async def check_availability(
    session: deps.SessionDep,
    today: deps.Today,
    boat_id: uuid.UUID,
    start_date: str | None = None,
    end_date: str | None = None,
    exclude_booking_id: uuid.UUID | None = None,
) -> AvailabilityCheckRead:
    await get_boat_or_404(session, boat_id)
    check = await availability_service.check_availability(
        session,
        boat_id=boat_id,
        start=start_date,
        end=end_date,
        today=today,
        exclude_booking_id=exclude_booking_id,
    )
    return AvailabilityCheckRead.from_check(check)


@router.post(
    "/boats/{boat_id}/unavailable-periods",
    response_model=UnavailablePeriodRead,
    status_code=status.HTTP_201_CREATED,
    summary="Block (or re-open) days of a boat",
)
async def create_unavailable_period(
    boat_id: uuid.UUID,
    payload: AvailabilityBlockCreate,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    today: deps.Today,
) -> UnavailablePeriodRead:
    boat = await get_boat_or_404(session, boat_id)
    _assert_can_manage(current_user, boat.owner_id)
    record = await availability_service.add_period(
        session,
        boat=boat,
        date_range=_window(payload.start_date, payload.end_date),  # type: ignore[arg-type]
        today=today,
        kind=PeriodKind(payload.kind),
        reason=payload.reason,
        created_by=current_user,
    )
    return UnavailablePeriodRead.from_period(record.to_period())


@router.delete(
    "/boats/{boat_id}/unavailable-periods/{period_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a block or override",
)
async def delete_unavailable_period(
    boat_id: uuid.UUID,
    period_id: uuid.UUID,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
) -> Response:
    boat = await get_boat_or_404(session, boat_id)
    _assert_can_manage(current_user, boat.owner_id)
    removed = await availability_service.remove_period(
        session, boat_id=boat_id, period_id=period_id, removed_by=current_user
    )
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Unavailable period not found"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/boats/{boat_id}/calendar",
    response_model=CalendarMonthRead,
    summary="Month grid of a boat (6 weeks, Monday first)",
)
async def get_calendar(
    boat_id: uuid.UUID,
    session: deps.SessionDep,
    today: deps.Today,
    year: int | None = Query(default=None, ge=1970, le=9998),
    month: int | None = Query(default=None, ge=1, le=12),
) -> CalendarMonthRead:
    await get_boat_or_404(session, boat_id)
    year = year or today.year
    month = month or today.month
    cells = await availability_service.month_calendar(
        session, boat_id=boat_id, year=year, month=month, today=today
    )
    return CalendarMonthRead(
        boat_id=str(boat_id),
        year=year,
        month=month,
        label=f"{calendar.month_name[month]} {year}",
        cells=[CalendarCellRead.from_cell(cell) for cell in cells],
    )
