"""Unavailable periods of a boat and the overlap queries answered over them."""

from __future__ import annotations

import enum
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sailingloc.core.errors import ConflictError, ValidationError
from sailingloc.domain.date_range import DateRange, overlaps, to_day


class PeriodKind(str, enum.Enum):
    """Reasons a boat can be (un)available on a day."""

    BOOKING = "booking"
    MANUAL_BLOCK = "manual_block"
    AVAILABLE_OVERRIDE = "available_override"


@dataclass(frozen=True, slots=True)
class UnavailablePeriod:
    """One reason a boat cannot be booked on the days of ``range``."""

    kind: PeriodKind
    range: DateRange
    reason: str | None = None
    reference_id: str | None = None

    @property
    def is_blocking(self) -> bool:
        return self.kind != PeriodKind.AVAILABLE_OVERRIDE

    def describe(self) -> str:
        if self.kind == PeriodKind.BOOKING:
            return f"an existing booking ({self.range})"
        label = f"an unavailable period ({self.range})"
        if self.reason:
            label = f"{label}: {self.reason}"
        return label


class CheckFailure(str, enum.Enum):
    """Which constraint rejected a candidate range."""

    VALIDATION = "validation"
    CONFLICT = "conflict"


@dataclass(frozen=True, slots=True)
class AvailabilityCheck:
    """Outcome of an availability query; never raised, always returned."""

    is_available: bool
    message: str
    failure: CheckFailure | None = None
    conflicts: tuple[UnavailablePeriod, ...] = field(default_factory=tuple)

    @property
    def primary_conflict(self) -> UnavailablePeriod | None:
        """The conflict worth reporting first: bookings outrank blocks."""
        return _primary_conflict(self.conflicts)

    def raise_for_failure(self) -> None:
        """Convert a failed check into the matching domain error."""
        if self.is_available:
            return
        if self.failure == CheckFailure.VALIDATION:
            raise ValidationError(self.message)
        primary = self.primary_conflict
        raise ConflictError(
            self.message,
            conflict_kind=primary.kind if primary else None,
            conflict_start=primary.range.start if primary else None,
            conflict_end=primary.range.end if primary else None,
            reason=primary.reason if primary else None,
        )


def _primary_conflict(
    conflicts: Sequence[UnavailablePeriod],
) -> UnavailablePeriod | None:
    for period in conflicts:
        if period.kind == PeriodKind.BOOKING:
            return period
    return conflicts[0] if conflicts else None


class UnavailabilityIndex:
    """Answers availability questions for one boat over a snapshot of periods.

    ``available_override`` periods never conflict. They re-open the manual-block
    days they cover; booking days can never be re-opened.
    """

    def __init__(
        self,
        periods: Iterable[UnavailablePeriod],
        *,
        resource_id: str | None = None,
    ) -> None:
        self.resource_id = resource_id
        self._periods: tuple[UnavailablePeriod, ...] = tuple(
            sorted(periods, key=lambda period: (period.range.start, period.range.end))
        )
        self._overrides = tuple(
            period
            for period in self._periods
            if period.kind == PeriodKind.AVAILABLE_OVERRIDE
        )

    @property
    def periods(self) -> tuple[UnavailablePeriod, ...]:
        return self._periods

    @property
    def blocking_periods(self) -> tuple[UnavailablePeriod, ...]:
        return tuple(period for period in self._periods if period.is_blocking)

    def without_booking(self, booking_id: str) -> "UnavailabilityIndex":
        """Return an index that ignores one booking (used when re-checking it)."""
        return UnavailabilityIndex(
            (
                period
                for period in self._periods
                if not (
                    period.kind == PeriodKind.BOOKING
                    and period.reference_id == str(booking_id)
                )
            ),
            resource_id=self.resource_id,
        )

    def _is_reopened(self, day: date) -> bool:
        return any(override.range.contains(day) for override in self._overrides)

    def _blocks_day(self, period: UnavailablePeriod, day: date) -> bool:
        if not period.is_blocking or not period.range.contains(day):
            return False
        if period.kind == PeriodKind.MANUAL_BLOCK and self._is_reopened(day):
            return False
        return True

    def is_day_blocked(self, day: date | datetime | str) -> bool:
        check = to_day(day)
        return any(self._blocks_day(period, check) for period in self._periods)

    def period_for_day(
        self,
        day: date | datetime | str,
        *,
        kinds: Iterable[PeriodKind] | None = None,
    ) -> UnavailablePeriod | None:
        """Return the blocking period covering ``day``, bookings first."""
        check = to_day(day)
        allowed = set(kinds) if kinds is not None else None
        matches = [
            period
            for period in self._periods
            if self._blocks_day(period, check)
            and (allowed is None or period.kind in allowed)
        ]
        return _primary_conflict(matches)

    def _conflicts_with(self, period: UnavailablePeriod, candidate: DateRange) -> bool:
        if not period.is_blocking or not overlaps(period.range, candidate):
            return False
        if period.kind != PeriodKind.MANUAL_BLOCK or not self._overrides:
            return True
        start = max(period.range.start, candidate.start)
        end = min(period.range.end, candidate.end)
        current = start
        while current <= end:
            if not self._is_reopened(current):
                return True
            current += timedelta(days=1)
        return False

    def range_overlaps_any(
        self, candidate: DateRange
    ) -> tuple[bool, list[UnavailablePeriod]]:
        """Return whether ``candidate`` conflicts, with every conflicting period."""
        conflicts = [
            period for period in self._periods if self._conflicts_with(period, candidate)
        ]
        return bool(conflicts), conflicts

    def check(self, candidate: DateRange) -> AvailabilityCheck:
        _, conflicts = self.range_overlaps_any(candidate)
        primary = _primary_conflict(conflicts)
        if primary is None:
            return AvailabilityCheck(True, "The boat is available for these dates")
        return AvailabilityCheck(
            False,
            f"The selected dates overlap {primary.describe()}",
            failure=CheckFailure.CONFLICT,
            conflicts=tuple(conflicts),
        )

    def validate_candidate(
        self,
        start: date | datetime | str | None,
        end: date | datetime | str | None,
        *,
        today: date,
    ) -> AvailabilityCheck:
        """Apply the new-selection gate: future start, at least one day, no overlap."""
        if start is None or end is None or start == "" or end == "":
            return _invalid("Both a start date and an end date are required")
        try:
            start_day = to_day(start)
            end_day = to_day(end)
        except (TypeError, ValueError):
            return _invalid("Dates must be calendar days in YYYY-MM-DD format")
        if start_day <= today:
            return _invalid("The start date must be after today")
        if end_day <= start_day:
            return _invalid("The end date must be after the start date")
        return self.check(DateRange(start_day, end_day))


def _invalid(message: str) -> AvailabilityCheck:
    return AvailabilityCheck(False, message, failure=CheckFailure.VALIDATION)


__all__ = [
    "AvailabilityCheck",
    "CheckFailure",
    "PeriodKind",
    "UnavailabilityIndex",
    "UnavailablePeriod",
]
