"""Pydantic schemas for bookings."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from sailingloc.domain.booking_state import Actor, BookingStatus, PaymentStatus


class BookingRead(BaseModel):
    """Serialized booking with its derived price breakdown."""

    id: uuid.UUID
    boat_id: uuid.UUID
    renter_id: uuid.UUID
    owner_id: uuid.UUID
    start_date: date
    end_date: date
    day_count: int
    daily_price: Decimal
    service_fee_rate: Decimal
    subtotal: Decimal
    service_fee: Decimal
    total: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    payment_reference: str
    renter_name: str | None = None
    renter_email: str | None = None
    renter_phone: str | None = None
    confirmed_at: datetime | None = None
    cancelled_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_by: Actor | None = None
    cancellation_reason: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingCancelRequest(BaseModel):
    """Optional context supplied when cancelling."""

    reason: str | None = Field(default=None, max_length=1024)


class CompletionSweepRead(BaseModel):
    """Bookings moved to ``completed`` by an elapsed-date sweep."""

    completed: list[BookingRead]
