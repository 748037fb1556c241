"""Append-only audit trail for account actions and booking transitions."""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.core.errors import to_jsonable
from sailingloc.models.audit_event import AuditEvent


async def record_event(
    session: AsyncSession,
    *,
    event_type: str,
    user_id: uuid.UUID | None = None,
    description: str | None = None,
    payload: Mapping[str, Any] | None = None,
    ip_address: str | None = None,
    commit: bool = True,
) -> AuditEvent:
    """Add an event; ``commit=False`` leaves it in the caller's transaction.

    Payload ids, dates, amounts and enums are stored in their JSON form.
    """
    event = AuditEvent(
        event_type=event_type,
        user_id=user_id,
        description=description,
        payload=to_jsonable(dict(payload)) if payload is not None else None,
        ip_address=ip_address,
    )
    session.add(event)
    if commit:
        await session.commit()
    return event
