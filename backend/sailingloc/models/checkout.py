"""Persisted progress of a renter's multi-step reservation."""
from __future__ import annotations

import enum
import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from sailingloc.db.base import Base
from sailingloc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class CheckoutStep(str, enum.Enum):
    """Where a reservation checkout currently stands."""

    IDENTITY = "identity"
    PAYMENT = "payment"
    COMPLETED = "completed"
    ABANDONED = "abandoned"
    CONFLICTED = "conflicted"


class ReservationCheckout(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Workflow state for one candidate range of one boat."""

    __tablename__ = "reservation_checkouts"

    boat_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("boats.id", ondelete="CASCADE"), nullable=False
    )
    renter_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    step: Mapped[CheckoutStep] = mapped_column(
        Enum(CheckoutStep), default=CheckoutStep.IDENTITY, nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="eur", nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(String(255))
    payment_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("bookings.id", ondelete="SET NULL")
    )
    last_error: Mapped[str | None] = mapped_column(String(1024))

    @property
    def is_paid(self) -> bool:
        return self.payment_reference is not None
