"""Booking lifecycle: pending -> confirmed -> completed, cancelled from either.

Transitions are gated twice: by the table of (from, to) pairs and by who is
acting. Time rules come last:

* a renter may cancel a confirmed booking only while at least
  ``RENTER_CANCELLATION_LEAD_DAYS`` days remain before the start date;
* a confirmed booking completes only once its end date has passed.

Pending bookings can always be cancelled by either party.
"""

from __future__ import annotations

import enum
from datetime import UTC, date, datetime
from typing import Protocol

from sailingloc.core.errors import InvalidTransition, PolicyError

RENTER_CANCELLATION_LEAD_DAYS = 7


class BookingStatus(str, enum.Enum):
    """Lifecycle states for bookings."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    """Outcome of the charge backing a booking."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class Actor(str, enum.Enum):
    """Who is asking for a transition, relative to the booking."""

    RENTER = "renter"
    OWNER = "owner"
    ADMIN = "admin"
    SYSTEM = "system"


_OWNER_SIDE = frozenset({Actor.OWNER, Actor.ADMIN})

TRANSITIONS: dict[tuple[BookingStatus, BookingStatus], frozenset[Actor]] = {
    (BookingStatus.PENDING, BookingStatus.CONFIRMED): _OWNER_SIDE,
    (BookingStatus.PENDING, BookingStatus.CANCELLED): _OWNER_SIDE | {Actor.RENTER},
    (BookingStatus.CONFIRMED, BookingStatus.CANCELLED): _OWNER_SIDE | {Actor.RENTER},
    (BookingStatus.CONFIRMED, BookingStatus.COMPLETED): _OWNER_SIDE | {Actor.SYSTEM},
}

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED})

# Statuses whose dates show up as booking-kind unavailable periods.
BLOCKING_STATUSES = frozenset(
    {BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.COMPLETED}
)

_TIMESTAMP_FIELDS = {
    BookingStatus.CONFIRMED: "confirmed_at",
    BookingStatus.CANCELLED: "cancelled_at",
    BookingStatus.COMPLETED: "completed_at",
}


class BookingLike(Protocol):
    status: BookingStatus
    start_date: date
    end_date: date


def days_until_start(booking: BookingLike, today: date) -> int:
    return (booking.start_date - today).days


class BookingStateMachine:
    """Validates and applies status changes on a single booking."""

    def __init__(self, booking: BookingLike) -> None:
        self.booking = booking

    @property
    def status(self) -> BookingStatus:
        return BookingStatus(self.booking.status)

    def check(self, target: BookingStatus, actor: Actor, *, today: date) -> None:
        """Raise if ``actor`` may not move the booking to ``target`` today."""
        current = self.status
        allowed = TRANSITIONS.get((current, target))
        if allowed is None:
            raise InvalidTransition(current, target)
        if actor not in allowed:
            raise PolicyError(
                f"A {actor.value} cannot move a booking from "
                f"'{current.value}' to '{target.value}'",
                current=current,
                requested=target,
                actor=actor,
            )
        if (
            current == BookingStatus.CONFIRMED
            and target == BookingStatus.CANCELLED
            and actor == Actor.RENTER
        ):
            remaining = days_until_start(self.booking, today)
            if remaining < RENTER_CANCELLATION_LEAD_DAYS:
                raise PolicyError(
                    "Confirmed bookings can only be cancelled by the renter at least "
                    f"{RENTER_CANCELLATION_LEAD_DAYS} days before the start date "
                    f"({remaining} day(s) remaining)",
                    days_until_start=remaining,
                    minimum_days=RENTER_CANCELLATION_LEAD_DAYS,
                )
        if target == BookingStatus.COMPLETED and not today > self.booking.end_date:
            raise PolicyError(
                "A booking can only be completed after its end date "
                f"({self.booking.end_date.isoformat()})",
                end_date=self.booking.end_date,
            )

    def can(self, target: BookingStatus, actor: Actor, *, today: date) -> bool:
        try:
            self.check(target, actor, today=today)
        except (InvalidTransition, PolicyError):
            return False
        return True

    def allowed_targets(self, actor: Actor, *, today: date) -> list[BookingStatus]:
        return [
            target
            for (source, target) in TRANSITIONS
            if source == self.status and self.can(target, actor, today=today)
        ]

    def transition(
        self,
        target: BookingStatus,
        actor: Actor,
        *,
        today: date,
        now: datetime | None = None,
    ) -> BookingStatus:
        """Apply the move and return the previous status."""
        self.check(target, actor, today=today)
        previous = self.status
        self.booking.status = target
        stamp_field = _TIMESTAMP_FIELDS.get(target)
        if stamp_field and hasattr(self.booking, stamp_field):
            setattr(self.booking, stamp_field, now or datetime.now(UTC))
        return previous


def is_blocking(status: BookingStatus | str) -> bool:
    return BookingStatus(status) in BLOCKING_STATUSES


__all__ = [
    "Actor",
    "BLOCKING_STATUSES",
    "BookingStateMachine",
    "BookingStatus",
    "PaymentStatus",
    "RENTER_CANCELLATION_LEAD_DAYS",
    "TERMINAL_STATUSES",
    "TRANSITIONS",
    "days_until_start",
    "is_blocking",
]
