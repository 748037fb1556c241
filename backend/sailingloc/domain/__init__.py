"""Pure booking-core logic: ranges, availability, calendar grid, lifecycle."""

from sailingloc.domain.availability import (
    AvailabilityCheck,
    CheckFailure,
    PeriodKind,
    UnavailabilityIndex,
    UnavailablePeriod,
)
from sailingloc.domain.booking_state import (
    Actor,
    BookingStateMachine,
    BookingStatus,
    PaymentStatus,
)
from sailingloc.domain.calendar_grid import (
    AvailabilityCalendar,
    CalendarCell,
    CalendarMode,
    CalendarSelection,
    build_month_grid,
)
from sailingloc.domain.date_range import DateRange, contains, day_count, overlaps
from sailingloc.domain.pricing import PriceQuote, quote

__all__ = [
    "Actor",
    "AvailabilityCalendar",
    "AvailabilityCheck",
    "BookingStateMachine",
    "BookingStatus",
    "CalendarCell",
    "CalendarMode",
    "CalendarSelection",
    "CheckFailure",
    "DateRange",
    "PaymentStatus",
    "PeriodKind",
    "PriceQuote",
    "UnavailabilityIndex",
    "UnavailablePeriod",
    "build_month_grid",
    "contains",
    "day_count",
    "overlaps",
    "quote",
]
