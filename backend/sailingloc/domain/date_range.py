"""Whole-day, inclusive date range value object."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta


def to_day(value: date | datetime | str) -> date:
    """Normalize a date, datetime or ISO string to a calendar day.

    Aware datetimes are converted to UTC before the time component is dropped so
    the same instant always lands on the same day.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(UTC)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        return to_day(datetime.fromisoformat(text.replace("Z", "+00:00")))
    raise TypeError(f"Cannot interpret {value!r} as a calendar day")


@dataclass(frozen=True, slots=True)
class DateRange:
    """Inclusive ``start``/``end`` pair of calendar days.

    ``start == end`` is a single-day range. Both ends take part in overlap
    checks; only :meth:`day_count` excludes the checkout day.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        start = to_day(self.start)
        end = to_day(self.end)
        if start > end:
            raise ValueError(f"Range start {start} is after its end {end}")
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @classmethod
    def of(cls, start: date | datetime | str, end: date | datetime | str) -> "DateRange":
        return cls(to_day(start), to_day(end))

    def overlaps(self, other: "DateRange") -> bool:
        return overlaps(self, other)

    def contains(self, day: date | datetime | str) -> bool:
        return contains(self, day)

    @property
    def day_count(self) -> int:
        return day_count(self)

    def days(self) -> Iterator[date]:
        """Yield every day of the range, both ends included."""
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __str__(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"


def overlaps(a: DateRange, b: DateRange) -> bool:
    """True when the ranges share at least one day (boundaries included)."""
    return not (a.end < b.start or a.start > b.end)


def contains(date_range: DateRange, day: date | datetime | str) -> bool:
    check = to_day(day)
    return date_range.start <= check <= date_range.end


def day_count(date_range: DateRange) -> int:
    """Number of billable days: the checkout day is not counted."""
    return (date_range.end - date_range.start).days
