"""Owner-managed rows that close (or re-open) days of a boat."""
from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import CheckConstraint, Date, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sailingloc.db.base import Base
from sailingloc.domain.availability import PeriodKind, UnavailablePeriod
from sailingloc.domain.date_range import DateRange
from sailingloc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class AvailabilityBlock(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A persisted ``manual_block`` or ``available_override`` period.

    Booking periods are never stored here; they are derived from bookings.
    """

    __tablename__ = "unavailable_periods"
    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_unavailable_periods_range"),
        Index("ix_unavailable_periods_boat_dates", "boat_id", "start_date", "end_date"),
    )

    boat_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("boats.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[PeriodKind] = mapped_column(
        Enum(PeriodKind), default=PeriodKind.MANUAL_BLOCK, nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str | None] = mapped_column(String(255))
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )

    def to_period(self) -> UnavailablePeriod:
        return UnavailablePeriod(
            kind=self.kind,
            range=DateRange(self.start_date, self.end_date),
            reason=self.reason,
            reference_id=str(self.id),
        )
