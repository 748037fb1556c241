"""Role helpers for explicit authorization checks."""

from __future__ import annotations

from fastapi import HTTPException, status

from sailingloc.domain.booking_state import Actor
from sailingloc.models.booking import Booking
from sailingloc.models.user import User, UserRole

OWNER_ROLES = {UserRole.OWNER, UserRole.ADMIN}


def require_roles(user: User, allowed: set[UserRole]) -> None:
    """Raise HTTP 403 if a user is not a member of the allowed role set."""

    if user.role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )


def booking_actor(user: User, booking: Booking) -> Actor | None:
    """Return the side ``user`` acts on for ``booking``, or None if unrelated.

    Admins act with owner authority on every booking.
    """
    if user.role == UserRole.ADMIN:
        return Actor.ADMIN
    if booking.owner_id == user.id:
        return Actor.OWNER
    if booking.renter_id == user.id:
        return Actor.RENTER
    return None


def can_manage_boat(user: User, owner_id) -> bool:
    return user.role == UserRole.ADMIN or (
        user.role == UserRole.OWNER and user.id == owner_id
    )


__all__ = ["OWNER_ROLES", "booking_actor", "can_manage_boat", "require_roles"]
