"""Audit event model for booking transitions and account actions."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import DateTime, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sailingloc.db.base import Base
from sailingloc.models.mixins import UUIDPrimaryKeyMixin

if TYPE_CHECKING:  # pragma: no cover
    from sailingloc.models.user import User


class AuditEvent(UUIDPrimaryKeyMixin, Base):
    """Append-only record of who did what to which booking or account."""

    __tablename__ = "audit_events"

    user_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    event_type: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(1024))
    payload: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    ip_address: Mapped[str | None] = mapped_column(String(64))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=sa.func.now()
    )

    user: Mapped["User | None"] = relationship("User")
