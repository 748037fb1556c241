"""Month grid used by owners to block and unblock days of a boat.

The grid itself is a pure function of the period snapshot and the selection
state; :class:`AvailabilityCalendar` owns that state and talks to the
availability authority when the owner confirms a change.
"""

from __future__ import annotations

import calendar
import enum
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Protocol

from sailingloc.core.errors import BookingError
from sailingloc.domain.availability import (
    PeriodKind,
    UnavailabilityIndex,
    UnavailablePeriod,
)
from sailingloc.domain.date_range import DateRange

logger = logging.getLogger(__name__)

GRID_WEEKS = 6
GRID_CELLS = GRID_WEEKS * 7
DEFAULT_BLOCK_REASON = "Maintenance"


class CalendarMode(str, enum.Enum):
    """Interaction modes of the owner calendar."""

    BLOCK = "block"
    UNBLOCK = "unblock"


@dataclass(frozen=True, slots=True)
class CalendarCell:
    """A single day of the 6x7 grid."""

    date: date
    is_current_month: bool
    is_today: bool
    is_past: bool
    is_blocked: bool
    is_booked: bool
    is_selected: bool
    is_in_range: bool
    period: UnavailablePeriod | None = None


@dataclass
class CalendarSelection:
    """UI-local state: month cursor, mode and the days picked so far."""

    year: int
    month: int
    mode: CalendarMode = CalendarMode.BLOCK
    range_start: date | None = None
    range_end: date | None = None
    selected_days: list[date] = field(default_factory=list)

    def clear(self) -> None:
        self.range_start = None
        self.range_end = None
        self.selected_days = []

    def switch_mode(self, mode: CalendarMode) -> None:
        if mode != self.mode:
            self.mode = mode
            self.clear()

    def previous_month(self) -> None:
        self.year, self.month = _shift_month(self.year, self.month, -1)

    def next_month(self) -> None:
        self.year, self.month = _shift_month(self.year, self.month, 1)

    @property
    def pending_range(self) -> DateRange | None:
        if self.range_start is None or self.range_end is None:
            return None
        return DateRange(self.range_start, self.range_end)

    def in_range(self, day: date) -> bool:
        pending = self.pending_range
        return pending is not None and pending.contains(day)


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def grid_days(year: int, month: int) -> list[date]:
    """Return the 42 days shown for ``year``/``month``, Monday first."""
    first = date(year, month, 1)
    leading = first.weekday()
    start = first - timedelta(days=leading)
    return [start + timedelta(days=offset) for offset in range(GRID_CELLS)]


def build_month_grid(
    year: int,
    month: int,
    index: UnavailabilityIndex,
    *,
    today: date,
    selection: CalendarSelection | None = None,
) -> list[CalendarCell]:
    """Annotate the month grid from the period snapshot and the selection."""
    cells: list[CalendarCell] = []
    selected = set(selection.selected_days) if selection else set()
    endpoints = (
        {selection.range_start, selection.range_end} - {None} if selection else set()
    )
    for day in grid_days(year, month):
        booking = index.period_for_day(day, kinds=(PeriodKind.BOOKING,))
        block = index.period_for_day(day, kinds=(PeriodKind.MANUAL_BLOCK,))
        cells.append(
            CalendarCell(
                date=day,
                is_current_month=day.month == month and day.year == year,
                is_today=day == today,
                is_past=day < today,
                is_blocked=block is not None,
                is_booked=booking is not None,
                is_selected=day in selected or day in endpoints,
                is_in_range=selection.in_range(day) if selection else False,
                period=booking or block,
            )
        )
    return cells


def is_clickable(cell: CalendarCell, mode: CalendarMode) -> bool:
    """Past and booked days are never clickable; unblock only accepts blocked days."""
    if cell.is_past or cell.is_booked:
        return False
    if mode == CalendarMode.UNBLOCK:
        return cell.is_blocked
    return True


def apply_click(selection: CalendarSelection, cell: CalendarCell) -> bool:
    """Update ``selection`` for a click on ``cell``; return whether it was accepted."""
    if not is_clickable(cell, selection.mode):
        return False
    day = cell.date
    if selection.mode == CalendarMode.BLOCK:
        if selection.range_start is None or selection.range_end is not None:
            selection.range_start = day
            selection.range_end = None
        elif day < selection.range_start:
            selection.range_end = selection.range_start
            selection.range_start = day
        else:
            selection.range_end = day
        return True
    if day in selection.selected_days:
        selection.selected_days = [d for d in selection.selected_days if d != day]
    else:
        selection.selected_days = [*selection.selected_days, day]
    return True


class AvailabilityAuthority(Protocol):
    """Owner-side unavailability API the calendar mutates through."""

    async def list_periods(self, boat_id: str) -> list[UnavailablePeriod]: ...

    async def add_manual_block(
        self, boat_id: str, date_range: DateRange, reason: str | None
    ) -> UnavailablePeriod: ...

    async def remove_manual_block(self, boat_id: str, period_ref: str) -> bool: ...


class AvailabilityCalendar:
    """Owner calendar controller holding selection state and the period snapshot.

    Mutations never touch the local snapshot: after every successful call the
    authoritative period list is fetched again. A failed call keeps the
    selection so the owner can retry, and exposes the reason in ``error``.
    """

    def __init__(
        self,
        authority: AvailabilityAuthority,
        boat_id: str,
        *,
        today: date,
        block_reason: str = DEFAULT_BLOCK_REASON,
    ) -> None:
        self._authority = authority
        self.boat_id = boat_id
        self.today = today
        self.block_reason = block_reason
        self.selection = CalendarSelection(year=today.year, month=today.month)
        self.index = UnavailabilityIndex([], resource_id=boat_id)
        self.error: str | None = None
        self.notice: str | None = None

    async def refresh(self) -> None:
        periods = await self._authority.list_periods(self.boat_id)
        self.index = UnavailabilityIndex(periods, resource_id=self.boat_id)

    def cells(self) -> list[CalendarCell]:
        return build_month_grid(
            self.selection.year,
            self.selection.month,
            self.index,
            today=self.today,
            selection=self.selection,
        )

    def switch_mode(self, mode: CalendarMode) -> None:
        self.selection.switch_mode(mode)
        self.error = None

    def click(self, day: date) -> bool:
        cell = next((c for c in self.cells() if c.date == day), None)
        if cell is None:
            return False
        return apply_click(self.selection, cell)

    def cancel(self) -> None:
        self.selection.clear()
        self.error = None

    async def confirm(self) -> bool:
        """Push the pending selection to the authority."""
        self.error = None
        self.notice = None
        if self.selection.mode == CalendarMode.BLOCK:
            return await self._confirm_block()
        return await self._confirm_unblock()

    async def _confirm_block(self) -> bool:
        pending = self.selection.pending_range
        if pending is None:
            self.error = "Select both a start and an end date to block"
            return False
        try:
            await self._authority.add_manual_block(
                self.boat_id, pending, self.block_reason
            )
        except BookingError as exc:
            logger.warning("Blocking %s for boat %s failed: %s", pending, self.boat_id, exc)
            self.error = exc.message
            return False
        self.selection.clear()
        self.notice = "Period blocked"
        await self.refresh()
        return True

    def _blocks_to_remove(self) -> list[str]:
        refs: list[str] = []
        for day in self.selection.selected_days:
            period = self.index.period_for_day(day, kinds=(PeriodKind.MANUAL_BLOCK,))
            if period is not None and period.reference_id and period.reference_id not in refs:
                refs.append(period.reference_id)
        return refs

    async def _confirm_unblock(self) -> bool:
        if not self.selection.selected_days:
            self.error = "Select at least one blocked day to unblock"
            return False
        removed = 0
        for period_ref in self._blocks_to_remove():
            try:
                ok = await self._authority.remove_manual_block(self.boat_id, period_ref)
            except BookingError as exc:
                logger.warning(
                    "Removing block %s of boat %s failed: %s", period_ref, self.boat_id, exc
                )
                self.error = exc.message
                ok = False
            if not ok:
                self.error = self.error or "The blocked period could not be removed"
                if removed:
                    await self.refresh()
                return False
            removed += 1
        count = len(self.selection.selected_days)
        self.selection.clear()
        self.notice = f"{count} day(s) unblocked"
        await self.refresh()
        return True

    @property
    def month_label(self) -> str:
        return f"{calendar.month_name[self.selection.month]} {self.selection.year}"


__all__ = [
    "AvailabilityAuthority",
    "AvailabilityCalendar",
    "CalendarCell",
    "CalendarMode",
    "CalendarSelection",
    "GRID_CELLS",
    "apply_click",
    "build_month_grid",
    "grid_days",
    "is_clickable",
]
