"""Liveness probe including a database round-trip."""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sailingloc.api import deps
from sailingloc.core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", summary="Service health status")
async def healthcheck(session: deps.SessionDep) -> dict[str, str]:
    try:
        await session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError:
        logger.exception("Database health probe failed")
        database = "unavailable"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "service": get_settings().app_name,
        "database": database,
        "timestamp": datetime.now(UTC).isoformat(),
    }
