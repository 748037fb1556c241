"""Schemas for the multi-step reservation checkout."""
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from sailingloc.models.checkout import CheckoutStep
from sailingloc.schemas.auth import Token


class CheckoutStart(BaseModel):
    """Candidate range picked by the renter.

    Dates stay as text so malformed values are reported by the availability
    gate with the same error shape as range violations.
    """

    boat_id: uuid.UUID
    start_date: str | None = None
    end_date: str | None = None


class CheckoutPaymentRequest(BaseModel):
    """Opaque payment instrument produced by the card-capture widget."""

    payment_instrument: str = Field(min_length=1, repr=False)


class CheckoutRead(BaseModel):
    """Serialized checkout state."""

    id: uuid.UUID
    boat_id: uuid.UUID
    renter_id: uuid.UUID | None = None
    start_date: date
    end_date: date
    step: CheckoutStep
    amount: Decimal
    currency: str
    payment_reference: str | None = None
    payment_attempts: int
    booking_id: uuid.UUID | None = None
    last_error: str | None = None

    model_config = ConfigDict(from_attributes=True)


class CheckoutIdentityResponse(BaseModel):
    """Checkout state after the identity step, with a token for new accounts."""

    checkout: CheckoutRead
    token: Token | None = None
