"""Boat listings offered for rental."""
from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from sailingloc.db.base import Base
from sailingloc.models.mixins import TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:  # pragma: no cover
    from sailingloc.models.user import User

JSONB_TYPE = JSONB(astext_type=Text()).with_variant(JSON(), "sqlite")


class Boat(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A boat an owner rents out by the day."""

    __tablename__ = "boats"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    boat_type: Mapped[str | None] = mapped_column(String(60))
    destination: Mapped[str | None] = mapped_column(String(200))
    capacity: Mapped[int | None] = mapped_column(Integer)
    daily_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    equipment: Mapped[list[str]] = mapped_column(JSONB_TYPE, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    owner: Mapped["User"] = relationship("User", back_populates="boats")
