"""Owner calendar grid and its confirm/refresh cycle."""

from datetime import date

import pytest

from sailingloc.core.errors import ConflictError, PolicyError
from sailingloc.domain.availability import PeriodKind, UnavailabilityIndex, UnavailablePeriod
from sailingloc.domain.calendar_grid import (
    AvailabilityCalendar,
    CalendarMode,
    CalendarSelection,
    apply_click,
    build_month_grid,
    grid_days,
)
from sailingloc.domain.date_range import DateRange

TODAY = date(2030, 6, 3)


class FakeAuthority:
    """In-memory authority recording every call."""

    def __init__(self, periods: list[UnavailablePeriod] | None = None) -> None:
        self.periods = list(periods or [])
        self.calls: list[tuple] = []
        self.fail_with: Exception | None = None
        self.refuse_removal: dict[str, Exception] = {}
        self._next = 100

    async def list_periods(self, boat_id: str) -> list[UnavailablePeriod]:
        self.calls.append(("list", boat_id))
        return list(self.periods)

    async def add_manual_block(self, boat_id, date_range, reason):
        self.calls.append(("add", boat_id, date_range, reason))
        if self.fail_with is not None:
            raise self.fail_with
        self._next += 1
        period = UnavailablePeriod(PeriodKind.MANUAL_BLOCK, date_range, reason, str(self._next))
        self.periods.append(period)
        return period

    async def remove_manual_block(self, boat_id, period_ref):
        self.calls.append(("remove", boat_id, period_ref))
        if period_ref in self.refuse_removal:
            raise self.refuse_removal[period_ref]
        before = len(self.periods)
        self.periods = [p for p in self.periods if p.reference_id != period_ref]
        return len(self.periods) < before


def test_grid_has_six_weeks_starting_on_monday() -> None:
    days = grid_days(2026, 10)

    assert len(days) == 42
    assert days[0] == date(2026, 9, 28)
    assert all(day.weekday() == index % 7 for index, day in enumerate(days))


def test_month_starting_on_monday_has_no_leading_days() -> None:
    assert grid_days(2024, 1)[0] == date(2024, 1, 1)


def test_cells_flag_booked_blocked_and_past_days() -> None:
    index = UnavailabilityIndex(
        [
            UnavailablePeriod(PeriodKind.BOOKING, DateRange(date(2030, 6, 10), date(2030, 6, 12)), None, "b1"),
            UnavailablePeriod(PeriodKind.MANUAL_BLOCK, DateRange(date(2030, 6, 20), date(2030, 6, 21)), "Refit", "m1"),
        ]
    )

    cells = {cell.date: cell for cell in build_month_grid(2030, 6, index, today=TODAY)}

    assert cells[date(2030, 6, 11)].is_booked
    assert cells[date(2030, 6, 11)].period.reference_id == "b1"
    assert cells[date(2030, 6, 20)].is_blocked
    assert not cells[date(2030, 6, 20)].is_booked
    assert cells[date(2030, 6, 2)].is_past
    assert cells[TODAY].is_today
    assert not cells[date(2030, 7, 1)].is_current_month


def test_block_mode_orders_clicked_endpoints() -> None:
    index = UnavailabilityIndex([])
    selection = CalendarSelection(year=2030, month=6)
    cells = {cell.date: cell for cell in build_month_grid(2030, 6, index, today=TODAY)}

    assert apply_click(selection, cells[date(2030, 6, 15)])
    assert apply_click(selection, cells[date(2030, 6, 12)])

    assert selection.pending_range == DateRange(date(2030, 6, 12), date(2030, 6, 15))

    apply_click(selection, cells[date(2030, 6, 25)])
    assert selection.range_start == date(2030, 6, 25)
    assert selection.range_end is None


def test_past_and_booked_days_are_not_clickable() -> None:
    index = UnavailabilityIndex(
        [UnavailablePeriod(PeriodKind.BOOKING, DateRange(date(2030, 6, 10), date(2030, 6, 12)), None, "b1")]
    )
    selection = CalendarSelection(year=2030, month=6)
    cells = {cell.date: cell for cell in build_month_grid(2030, 6, index, today=TODAY)}

    assert not apply_click(selection, cells[date(2030, 6, 1)])
    assert not apply_click(selection, cells[date(2030, 6, 11)])
    assert selection.range_start is None


def test_unblock_mode_only_toggles_blocked_days() -> None:
    index = UnavailabilityIndex(
        [UnavailablePeriod(PeriodKind.MANUAL_BLOCK, DateRange(date(2030, 6, 20), date(2030, 6, 22)), None, "m1")]
    )
    selection = CalendarSelection(year=2030, month=6, mode=CalendarMode.UNBLOCK)
    cells = {cell.date: cell for cell in build_month_grid(2030, 6, index, today=TODAY)}

    assert not apply_click(selection, cells[date(2030, 6, 15)])
    assert apply_click(selection, cells[date(2030, 6, 21)])
    assert selection.selected_days == [date(2030, 6, 21)]
    assert apply_click(selection, cells[date(2030, 6, 21)])
    assert selection.selected_days == []


def test_switching_mode_clears_the_selection() -> None:
    selection = CalendarSelection(year=2030, month=6, range_start=date(2030, 6, 9))

    selection.switch_mode(CalendarMode.UNBLOCK)

    assert selection.range_start is None
    assert selection.mode == CalendarMode.UNBLOCK


def test_month_navigation_wraps_years() -> None:
    selection = CalendarSelection(year=2030, month=12)
    selection.next_month()
    assert (selection.year, selection.month) == (2031, 1)
    selection.previous_month()
    selection.previous_month()
    assert (selection.year, selection.month) == (2030, 11)


@pytest.mark.asyncio
async def test_confirmed_block_is_sent_then_periods_refetched() -> None:
    authority = FakeAuthority()
    calendar = AvailabilityCalendar(authority, "boat-1", today=TODAY)
    await calendar.refresh()

    calendar.click(date(2030, 6, 14))
    calendar.click(date(2030, 6, 16))
    assert await calendar.confirm()

    assert authority.calls[1] == ("add", "boat-1", DateRange(date(2030, 6, 14), date(2030, 6, 16)), "Maintenance")
    assert authority.calls[-1] == ("list", "boat-1")
    assert calendar.index.is_day_blocked(date(2030, 6, 15))
    assert calendar.selection.pending_range is None
    assert calendar.error is None


@pytest.mark.asyncio
async def test_failed_block_keeps_selection_and_reports_error() -> None:
    authority = FakeAuthority()
    authority.fail_with = ConflictError("The selected dates overlap an existing booking")
    calendar = AvailabilityCalendar(authority, "boat-1", today=TODAY)

    calendar.click(date(2030, 6, 14))
    calendar.click(date(2030, 6, 16))
    assert not await calendar.confirm()

    assert calendar.error == "The selected dates overlap an existing booking"
    assert calendar.selection.pending_range == DateRange(date(2030, 6, 14), date(2030, 6, 16))
    assert ("list", "boat-1") not in authority.calls


@pytest.mark.asyncio
async def test_incomplete_selection_is_not_sent() -> None:
    authority = FakeAuthority()
    calendar = AvailabilityCalendar(authority, "boat-1", today=TODAY)

    calendar.click(date(2030, 6, 14))

    assert not await calendar.confirm()
    assert calendar.error is not None
    assert authority.calls == []


@pytest.mark.asyncio
async def test_unblock_removes_each_covering_block_once() -> None:
    authority = FakeAuthority(
        [
            UnavailablePeriod(PeriodKind.MANUAL_BLOCK, DateRange(date(2030, 6, 20), date(2030, 6, 22)), None, "m1"),
            UnavailablePeriod(PeriodKind.MANUAL_BLOCK, DateRange(date(2030, 6, 25), date(2030, 6, 25)), None, "m2"),
        ]
    )
    calendar = AvailabilityCalendar(authority, "boat-1", today=TODAY)
    await calendar.refresh()
    calendar.switch_mode(CalendarMode.UNBLOCK)

    for day in (date(2030, 6, 20), date(2030, 6, 21), date(2030, 6, 25)):
        assert calendar.click(day)
    assert await calendar.confirm()

    removals = [call for call in authority.calls if call[0] == "remove"]
    assert removals == [("remove", "boat-1", "m1"), ("remove", "boat-1", "m2")]
    assert calendar.notice == "3 day(s) unblocked"
    assert not calendar.index.is_day_blocked(date(2030, 6, 21))


@pytest.mark.asyncio
async def test_partly_failed_unblock_refreshes_but_keeps_selection() -> None:
    authority = FakeAuthority(
        [
            UnavailablePeriod(PeriodKind.MANUAL_BLOCK, DateRange(date(2030, 6, 20), date(2030, 6, 22)), None, "m1"),
            UnavailablePeriod(PeriodKind.MANUAL_BLOCK, DateRange(date(2030, 6, 25), date(2030, 6, 25)), None, "m2"),
        ]
    )
    authority.refuse_removal["m2"] = PolicyError("You cannot change this boat's availability")
    calendar = AvailabilityCalendar(authority, "boat-1", today=TODAY)
    await calendar.refresh()
    calendar.switch_mode(CalendarMode.UNBLOCK)
    chosen = [date(2030, 6, 20), date(2030, 6, 25)]
    for day in chosen:
        assert calendar.click(day)

    assert not await calendar.confirm()

    assert calendar.error == "You cannot change this boat's availability"
    assert calendar.selection.selected_days == chosen
    assert authority.calls[-1] == ("list", "boat-1")
    assert not calendar.index.is_day_blocked(date(2030, 6, 21))
    assert calendar.index.is_day_blocked(date(2030, 6, 25))
