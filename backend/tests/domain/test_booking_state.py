"""Role- and time-gated booking transitions."""

from dataclasses import dataclass
from datetime import date, datetime

import pytest

from sailingloc.core.errors import InvalidTransition, PolicyError
from sailingloc.domain.booking_state import (
    Actor,
    BookingStateMachine,
    BookingStatus,
    is_blocking,
)

TODAY = date(2030, 6, 3)


@dataclass
class FakeBooking:
    status: BookingStatus
    start_date: date
    end_date: date
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None


def _booking(status: BookingStatus, *, starts_in: int = 10, days: int = 3) -> FakeBooking:
    start = date.fromordinal(TODAY.toordinal() + starts_in)
    return FakeBooking(status, start, date.fromordinal(start.toordinal() + days))


def test_owner_confirms_pending_booking() -> None:
    booking = _booking(BookingStatus.PENDING)

    previous = BookingStateMachine(booking).transition(BookingStatus.CONFIRMED, Actor.OWNER, today=TODAY)

    assert previous == BookingStatus.PENDING
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.confirmed_at is not None


def test_renter_cannot_confirm() -> None:
    machine = BookingStateMachine(_booking(BookingStatus.PENDING))

    with pytest.raises(PolicyError):
        machine.check(BookingStatus.CONFIRMED, Actor.RENTER, today=TODAY)


def test_admin_acts_with_owner_authority() -> None:
    booking = _booking(BookingStatus.PENDING)

    BookingStateMachine(booking).transition(BookingStatus.CONFIRMED, Actor.ADMIN, today=TODAY)

    assert booking.status == BookingStatus.CONFIRMED


def test_renter_cancels_confirmed_booking_seven_days_ahead() -> None:
    booking = _booking(BookingStatus.CONFIRMED, starts_in=7)

    BookingStateMachine(booking).transition(BookingStatus.CANCELLED, Actor.RENTER, today=TODAY)

    assert booking.status == BookingStatus.CANCELLED
    assert booking.cancelled_at is not None


def test_renter_cannot_cancel_confirmed_booking_six_days_ahead() -> None:
    booking = _booking(BookingStatus.CONFIRMED, starts_in=6)

    with pytest.raises(PolicyError) as exc_info:
        BookingStateMachine(booking).transition(BookingStatus.CANCELLED, Actor.RENTER, today=TODAY)

    assert exc_info.value.context["days_until_start"] == 6
    assert booking.status == BookingStatus.CONFIRMED


def test_owner_cancels_confirmed_booking_any_time() -> None:
    booking = _booking(BookingStatus.CONFIRMED, starts_in=1)

    BookingStateMachine(booking).transition(BookingStatus.CANCELLED, Actor.OWNER, today=TODAY)

    assert booking.status == BookingStatus.CANCELLED


def test_pending_booking_can_be_cancelled_on_its_start_day() -> None:
    booking = _booking(BookingStatus.PENDING, starts_in=0)

    BookingStateMachine(booking).transition(BookingStatus.CANCELLED, Actor.RENTER, today=TODAY)

    assert booking.status == BookingStatus.CANCELLED


def test_completion_waits_for_the_end_date_to_pass() -> None:
    booking = _booking(BookingStatus.CONFIRMED, starts_in=-5, days=3)
    machine = BookingStateMachine(booking)
    end_day = booking.end_date

    with pytest.raises(PolicyError):
        machine.check(BookingStatus.COMPLETED, Actor.SYSTEM, today=end_day)

    machine.transition(
        BookingStatus.COMPLETED, Actor.SYSTEM, today=date.fromordinal(end_day.toordinal() + 1)
    )
    assert booking.status == BookingStatus.COMPLETED
    assert booking.completed_at is not None


def test_renter_cannot_complete() -> None:
    booking = _booking(BookingStatus.CONFIRMED, starts_in=-10, days=2)

    with pytest.raises(PolicyError):
        BookingStateMachine(booking).check(BookingStatus.COMPLETED, Actor.RENTER, today=TODAY)


@pytest.mark.parametrize(
    ("current", "target"),
    [
        (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
        (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
        (BookingStatus.PENDING, BookingStatus.COMPLETED),
        (BookingStatus.CONFIRMED, BookingStatus.CONFIRMED),
        (BookingStatus.CONFIRMED, BookingStatus.PENDING),
    ],
)
def test_moves_outside_the_table_are_invalid(current: BookingStatus, target: BookingStatus) -> None:
    machine = BookingStateMachine(_booking(current))

    with pytest.raises(InvalidTransition) as exc_info:
        machine.check(target, Actor.OWNER, today=TODAY)

    assert exc_info.value.current == current
    assert exc_info.value.requested == target
    assert exc_info.value.to_detail()["code"] == "invalid_transition"


def test_allowed_targets_reflect_actor_and_lead_time() -> None:
    close = BookingStateMachine(_booking(BookingStatus.CONFIRMED, starts_in=3))
    far = BookingStateMachine(_booking(BookingStatus.CONFIRMED, starts_in=30))

    assert close.allowed_targets(Actor.RENTER, today=TODAY) == []
    assert far.allowed_targets(Actor.RENTER, today=TODAY) == [BookingStatus.CANCELLED]
    assert close.allowed_targets(Actor.OWNER, today=TODAY) == [BookingStatus.CANCELLED]


def test_cancelled_bookings_stop_blocking_dates() -> None:
    assert is_blocking(BookingStatus.PENDING)
    assert is_blocking("confirmed")
    assert is_blocking(BookingStatus.COMPLETED)
    assert not is_blocking(BookingStatus.CANCELLED)
