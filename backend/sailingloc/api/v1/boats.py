"""Boat listing API."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.api import deps
from sailingloc.models.boat import Boat
from sailingloc.schemas.boat import BoatCreate, BoatRead, BoatUpdate
from sailingloc.security.permissions import OWNER_ROLES, can_manage_boat, require_roles
from sailingloc.services import boat_service

router = APIRouter()


async def get_boat_or_404(session: AsyncSession, boat_id: uuid.UUID) -> Boat:
    boat = await boat_service.get_boat(session, boat_id)
    if boat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Boat not found")
    return boat


@router.post(
    "",
    response_model=BoatRead,
    status_code=status.HTTP_201_CREATED,
    summary="List a boat for rental",
)
async def create_boat(
    payload: BoatCreate,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
) -> BoatRead:
    require_roles(current_user, OWNER_ROLES)
    boat = await boat_service.create_boat(session, owner=current_user, payload=payload)
    return BoatRead.model_validate(boat)


@router.get("", response_model=list[BoatRead], summary="Browse active boats")
async def list_boats(
    session: deps.SessionDep,
    destination: str | None = None,
    skip: int = 0,
    limit: int = Query(default=50, le=100),
) -> list[BoatRead]:
    boats = await boat_service.list_boats(
        session, destination=destination, skip=skip, limit=limit
    )
    return [BoatRead.model_validate(boat) for boat in boats]


@router.get("/mine", response_model=list[BoatRead], summary="Boats owned by the caller")
async def list_my_boats(
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
) -> list[BoatRead]:
    require_roles(current_user, OWNER_ROLES)
    boats = await boat_service.list_boats(
        session, owner_id=current_user.id, include_inactive=True, limit=100
    )
    return [BoatRead.model_validate(boat) for boat in boats]


@router.get("/{boat_id}", response_model=BoatRead, summary="Get boat")
async def get_boat(
    boat_id: uuid.UUID,
    session: deps.SessionDep,
) -> BoatRead:
    return BoatRead.model_validate(await get_boat_or_404(session, boat_id))


@router.patch("/{boat_id}", response_model=BoatRead, summary="Update boat")
async def update_boat(
    boat_id: uuid.UUID,
    payload: BoatUpdate,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
) -> BoatRead:
    boat = await get_boat_or_404(session, boat_id)
    if not can_manage_boat(current_user, boat.owner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions"
        )
    boat = await boat_service.update_boat(session, boat, payload)
    return BoatRead.model_validate(boat)
