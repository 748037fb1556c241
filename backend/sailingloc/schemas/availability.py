"""Schemas for unavailable periods, availability checks and the owner calendar."""
from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field

from sailingloc.domain.availability import (
    AvailabilityCheck,
    CheckFailure,
    PeriodKind,
    UnavailablePeriod,
)
from sailingloc.domain.calendar_grid import CalendarCell


class UnavailablePeriodRead(BaseModel):
    """One booking, block or override covering an inclusive day range."""

    kind: PeriodKind
    start_date: date
    end_date: date
    reason: str | None = None
    reference_id: str | None = None
    is_blocking: bool

    @classmethod
    def from_period(cls, period: UnavailablePeriod) -> "UnavailablePeriodRead":
        return cls(
            kind=period.kind,
            start_date=period.range.start,
            end_date=period.range.end,
            reason=period.reason,
            reference_id=period.reference_id,
            is_blocking=period.is_blocking,
        )


class AvailabilityBlockCreate(BaseModel):
    """Owner payload to close (or re-open) days of a boat."""

    start_date: date
    end_date: date
    reason: str | None = Field(default=None, max_length=255)
    kind: Literal["manual_block", "available_override"] = "manual_block"


class AvailabilityCheckRead(BaseModel):
    """Result of an availability query; failures are data, not errors."""

    is_available: bool
    message: str
    failure: CheckFailure | None = None
    conflicts: list[UnavailablePeriodRead] = Field(default_factory=list)

    @classmethod
    def from_check(cls, check: AvailabilityCheck) -> "AvailabilityCheckRead":
        conflicts = list(check.conflicts)
        primary = check.primary_conflict
        if primary is not None:
            conflicts.remove(primary)
            conflicts.insert(0, primary)
        return cls(
            is_available=check.is_available,
            message=check.message,
            failure=check.failure,
            conflicts=[UnavailablePeriodRead.from_period(p) for p in conflicts],
        )


class CalendarCellRead(BaseModel):
    """Serialized calendar grid cell."""

    day: date
    is_current_month: bool
    is_today: bool
    is_past: bool
    is_blocked: bool
    is_booked: bool
    period: UnavailablePeriodRead | None = None

    @classmethod
    def from_cell(cls, cell: CalendarCell) -> "CalendarCellRead":
        return cls(
            day=cell.date,
            is_current_month=cell.is_current_month,
            is_today=cell.is_today,
            is_past=cell.is_past,
            is_blocked=cell.is_blocked,
            is_booked=cell.is_booked,
            period=(
                UnavailablePeriodRead.from_period(cell.period) if cell.period else None
            ),
        )


class CalendarMonthRead(BaseModel):
    """A 6x7 month grid for one boat."""

    boat_id: str
    year: int
    month: int
    label: str
    cells: list[CalendarCellRead]
