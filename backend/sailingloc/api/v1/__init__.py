"""Versioned API router."""

from fastapi import APIRouter

from . import auth, availability, boats, bookings, checkouts, health

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(boats.router, prefix="/boats", tags=["boats"])
router.include_router(availability.router, tags=["availability"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(checkouts.router, prefix="/checkouts", tags=["checkouts"])

__all__ = ["router"]
