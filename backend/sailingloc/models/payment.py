"""Payment transaction ledger for checkout charges and refunds."""

from __future__ import annotations

import enum
import uuid
from decimal import Decimal

from sqlalchemy import Enum, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from sailingloc.db.base import Base
from sailingloc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin


class PaymentTransactionStatus(str, enum.Enum):
    """Outcome of a single charge attempt."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentTransaction(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Represents one charge attempt made for a checkout."""

    __tablename__ = "payment_transactions"

    checkout_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("reservation_checkouts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    renter_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    provider: Mapped[str] = mapped_column(String(32), nullable=False, default="stripe")
    provider_reference: Mapped[str | None] = mapped_column(String(255), index=True)
    idempotency_key: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default="eur")
    status: Mapped[PaymentTransactionStatus] = mapped_column(
        Enum(PaymentTransactionStatus), nullable=False
    )
    failure_reason: Mapped[str | None] = mapped_column(String(1024))
