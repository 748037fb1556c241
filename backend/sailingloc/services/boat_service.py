"""Boat listing helpers."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.models.boat import Boat
from sailingloc.models.user import User
from sailingloc.schemas.boat import BoatCreate, BoatUpdate

logger = logging.getLogger(__name__)


async def create_boat(session: AsyncSession, *, owner: User, payload: BoatCreate) -> Boat:
    """List a new boat for ``owner``."""
    boat = Boat(owner_id=owner.id, **payload.model_dump())
    session.add(boat)
    await session.commit()
    await session.refresh(boat)
    logger.info("Owner %s listed boat %s", owner.id, boat.id)
    return boat


async def get_boat(session: AsyncSession, boat_id: uuid.UUID) -> Boat | None:
    """Return a boat by ID."""
    result = await session.execute(select(Boat).where(Boat.id == boat_id))
    return result.scalar_one_or_none()


async def list_boats(
    session: AsyncSession,
    *,
    destination: str | None = None,
    owner_id: uuid.UUID | None = None,
    include_inactive: bool = False,
    skip: int = 0,
    limit: int = 50,
) -> list[Boat]:
    """Return boats, newest first."""
    stmt = select(Boat)
    if owner_id is not None:
        stmt = stmt.where(Boat.owner_id == owner_id)
    if not include_inactive:
        stmt = stmt.where(Boat.is_active.is_(True))
    if destination:
        stmt = stmt.where(Boat.destination.ilike(f"%{destination.strip()}%"))
    stmt = stmt.order_by(Boat.created_at.desc()).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def update_boat(session: AsyncSession, boat: Boat, payload: BoatUpdate) -> Boat:
    """Update mutable fields on a boat."""
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "equipment" and value is None:
            value = []
        setattr(boat, field, value)
    await session.commit()
    await session.refresh(boat)
    return boat
