"""Booking model: a renter's hold on a boat for an inclusive day range."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sailingloc.db.base import Base
from sailingloc.domain.availability import PeriodKind, UnavailablePeriod
from sailingloc.domain.booking_state import Actor, BookingStatus, PaymentStatus
from sailingloc.domain.date_range import DateRange
from sailingloc.domain.pricing import SERVICE_FEE_RATE, PriceQuote, quote
from sailingloc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:  # pragma: no cover
    from sailingloc.models.boat import Boat
    from sailingloc.models.user import User


class Booking(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A reservation of one boat by one renter. Rows are never deleted."""

    __tablename__ = "bookings"
    __table_args__ = (
        UniqueConstraint(
            "boat_id",
            "renter_id",
            "start_date",
            "end_date",
            "payment_reference",
            name="uq_bookings_materialization_key",
        ),
        CheckConstraint("start_date <= end_date", name="ck_bookings_range"),
        CheckConstraint("renter_id <> owner_id", name="ck_bookings_not_own_boat"),
        Index("ix_bookings_boat_dates", "boat_id", "start_date", "end_date"),
    )

    boat_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("boats.id", ondelete="CASCADE"), nullable=False
    )
    renter_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    daily_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    service_fee_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4), default=SERVICE_FEE_RATE, nullable=False
    )
    status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    payment_reference: Mapped[str] = mapped_column(String(255), nullable=False)
    renter_name: Mapped[str | None] = mapped_column(String(255))
    renter_email: Mapped[str | None] = mapped_column(String(320))
    renter_phone: Mapped[str | None] = mapped_column(String(64))
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_by: Mapped[Actor | None] = mapped_column(Enum(Actor))
    cancellation_reason: Mapped[str | None] = mapped_column(String(1024))

    boat: Mapped["Boat"] = relationship("Boat")
    renter: Mapped["User"] = relationship("User", foreign_keys=[renter_id])
    owner: Mapped["User"] = relationship("User", foreign_keys=[owner_id])

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    @property
    def price(self) -> PriceQuote:
        return quote(
            self.daily_price,
            self.date_range,
            service_fee_rate=Decimal(self.service_fee_rate),
        )

    @property
    def day_count(self) -> int:
        return self.date_range.day_count

    @property
    def subtotal(self) -> Decimal:
        return self.price.subtotal

    @property
    def service_fee(self) -> Decimal:
        return self.price.service_fee

    @property
    def total(self) -> Decimal:
        return self.price.total

    def to_period(self) -> UnavailablePeriod:
        return UnavailablePeriod(
            kind=PeriodKind.BOOKING,
            range=self.date_range,
            reference_id=str(self.id),
        )
