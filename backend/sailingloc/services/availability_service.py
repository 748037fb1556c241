"""Unavailability persistence authority for boats.

Booking periods are derived from non-cancelled bookings; manual blocks and
overrides are rows in ``unavailable_periods``. Advisory reads go through a
per-boat :class:`UnavailabilityIndex` cache that every mutation invalidates.
Writes that must not race (block creation, booking materialization) run under
:func:`boat_lock` and lock the boat row.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
import weakref
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.core.errors import PolicyError, ValidationError
from sailingloc.domain.availability import (
    AvailabilityCheck,
    PeriodKind,
    UnavailabilityIndex,
    UnavailablePeriod,
)
from sailingloc.domain.booking_state import BLOCKING_STATUSES
from sailingloc.domain.calendar_grid import CalendarCell, build_month_grid
from sailingloc.domain.date_range import DateRange
from sailingloc.models.boat import Boat
from sailingloc.models.booking import Booking
from sailingloc.models.unavailable_period import AvailabilityBlock
from sailingloc.models.user import User
from sailingloc.security.permissions import can_manage_boat
from sailingloc.services import audit_service

logger = logging.getLogger(__name__)

_index_cache: dict[uuid.UUID, UnavailabilityIndex] = {}
_boat_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, dict[uuid.UUID, asyncio.Lock]]" = (
    weakref.WeakKeyDictionary()
)


def boat_lock(boat_id: uuid.UUID) -> asyncio.Lock:
    """Return the in-process lock serializing writes for one boat."""
    locks = _boat_locks.setdefault(asyncio.get_running_loop(), {})
    return locks.setdefault(boat_id, asyncio.Lock())


def invalidate(boat_id: uuid.UUID) -> None:
    """Drop the cached index of a boat."""
    _index_cache.pop(boat_id, None)


def clear_cache() -> None:
    _index_cache.clear()


async def lock_boat_row(session: AsyncSession, boat_id: uuid.UUID) -> Boat | None:
    """SELECT ... FOR UPDATE the boat row (a no-op on SQLite)."""
    result = await session.execute(
        select(Boat).where(Boat.id == boat_id).with_for_update()
    )
    return result.scalar_one_or_none()


async def load_periods(
    session: AsyncSession,
    boat_id: uuid.UUID,
    *,
    window: DateRange | None = None,
) -> list[UnavailablePeriod]:
    """Read every period of a boat from committed rows."""
    booking_stmt = select(Booking).where(
        Booking.boat_id == boat_id,
        Booking.status.in_(list(BLOCKING_STATUSES)),
    )
    block_stmt = select(AvailabilityBlock).where(AvailabilityBlock.boat_id == boat_id)
    if window is not None:
        booking_stmt = booking_stmt.where(
            Booking.start_date <= window.end, Booking.end_date >= window.start
        )
        block_stmt = block_stmt.where(
            AvailabilityBlock.start_date <= window.end,
            AvailabilityBlock.end_date >= window.start,
        )
    bookings = (await session.execute(booking_stmt)).scalars().all()
    blocks = (await session.execute(block_stmt)).scalars().all()
    return [booking.to_period() for booking in bookings] + [
        block.to_period() for block in blocks
    ]


async def get_index(
    session: AsyncSession, boat_id: uuid.UUID, *, fresh: bool = False
) -> UnavailabilityIndex:
    """Return the (cached) index for a boat."""
    if not fresh:
        cached = _index_cache.get(boat_id)
        if cached is not None:
            return cached
    index = UnavailabilityIndex(
        await load_periods(session, boat_id), resource_id=str(boat_id)
    )
    _index_cache[boat_id] = index
    return index


async def list_periods(
    session: AsyncSession,
    boat_id: uuid.UUID,
    *,
    window: DateRange | None = None,
) -> list[UnavailablePeriod]:
    """Return the periods of a boat, optionally limited to a window."""
    index = await get_index(session, boat_id)
    if window is None:
        return list(index.periods)
    return [
        period
        for period in index.periods
        if period.range.start <= window.end and period.range.end >= window.start
    ]


async def check_availability(
    session: AsyncSession,
    *,
    boat_id: uuid.UUID,
    start: date | str | None,
    end: date | str | None,
    today: date,
    exclude_booking_id: uuid.UUID | None = None,
) -> AvailabilityCheck:
    """Advisory check of a candidate range against the cached index."""
    index = await get_index(session, boat_id)
    if exclude_booking_id is not None:
        index = index.without_booking(str(exclude_booking_id))
    return index.validate_candidate(start, end, today=today)


async def add_period(
    session: AsyncSession,
    *,
    boat: Boat,
    date_range: DateRange,
    today: date,
    kind: PeriodKind = PeriodKind.MANUAL_BLOCK,
    reason: str | None = None,
    created_by: User | None = None,
) -> AvailabilityBlock:
    """Persist a manual block or an override for ``boat``.

    Manual blocks may not cover a booked day.
    """
    if kind == PeriodKind.BOOKING:
        raise ValidationError("Booking periods are created by reservations only")
    if date_range.start < today:
        raise ValidationError("Unavailable periods cannot start in the past")
    boat_id = boat.id
    async with boat_lock(boat_id):
        await lock_boat_row(session, boat_id)
        if kind == PeriodKind.MANUAL_BLOCK:
            periods = await load_periods(session, boat_id, window=date_range)
            bookings = [p for p in periods if p.kind == PeriodKind.BOOKING]
            check = UnavailabilityIndex(bookings, resource_id=str(boat_id)).check(
                date_range
            )
            check.raise_for_failure()
        record = AvailabilityBlock(
            id=uuid.uuid4(),
            boat_id=boat_id,
            kind=kind,
            start_date=date_range.start,
            end_date=date_range.end,
            reason=reason,
            created_by_id=created_by.id if created_by else None,
        )
        session.add(record)
        await audit_service.record_event(
            session,
            event_type=f"availability.{kind.value}.created",
            user_id=created_by.id if created_by else None,
            description=f"{kind.value} {date_range}",
            payload={"boat_id": str(boat_id), "period_id": str(record.id)},
            commit=False,
        )
        await session.commit()
    invalidate(boat_id)
    logger.info("Added %s %s to boat %s", kind.value, date_range, boat_id)
    return record


async def remove_period(
    session: AsyncSession,
    *,
    boat_id: uuid.UUID,
    period_id: uuid.UUID,
    removed_by: User | None = None,
) -> bool:
    """Delete a block or override; return False when it does not exist."""
    result = await session.execute(
        select(AvailabilityBlock).where(
            AvailabilityBlock.id == period_id, AvailabilityBlock.boat_id == boat_id
        )
    )
    record = result.scalar_one_or_none()
    if record is None:
        return False
    await session.delete(record)
    await audit_service.record_event(
        session,
        event_type=f"availability.{record.kind.value}.removed",
        user_id=removed_by.id if removed_by else None,
        payload={"boat_id": str(boat_id), "period_id": str(period_id)},
        commit=False,
    )
    await session.commit()
    invalidate(boat_id)
    logger.info("Removed period %s from boat %s", period_id, boat_id)
    return True


async def month_calendar(
    session: AsyncSession,
    *,
    boat_id: uuid.UUID,
    year: int,
    month: int,
    today: date,
) -> list[CalendarCell]:
    """Read-only 42-cell grid for one month."""
    index = await get_index(session, boat_id)
    return build_month_grid(year, month, index, today=today)


class SqlAvailabilityAuthority:
    """Owner availability API backed by the database, for calendar controllers."""

    def __init__(self, session: AsyncSession, *, actor: User, today: date) -> None:
        self._session = session
        self._actor = actor
        self._today = today

    async def _managed_boat(self, boat_id: str) -> Boat:
        boat = await self._session.get(Boat, uuid.UUID(str(boat_id)))
        if boat is None:
            raise ValidationError("Boat not found", boat_id=boat_id)
        if not can_manage_boat(self._actor, boat.owner_id):
            raise PolicyError("Only the boat owner can change its availability")
        return boat

    async def list_periods(self, boat_id: str) -> list[UnavailablePeriod]:
        return await load_periods(self._session, uuid.UUID(str(boat_id)))

    async def add_manual_block(
        self, boat_id: str, date_range: DateRange, reason: str | None
    ) -> UnavailablePeriod:
        boat = await self._managed_boat(boat_id)
        record = await add_period(
            self._session,
            boat=boat,
            date_range=date_range,
            today=self._today,
            reason=reason,
            created_by=self._actor,
        )
        return record.to_period()

    async def remove_manual_block(self, boat_id: str, period_ref: str) -> bool:
        boat = await self._managed_boat(boat_id)
        return await remove_period(
            self._session,
            boat_id=boat.id,
            period_id=uuid.UUID(str(period_ref)),
            removed_by=self._actor,
        )
