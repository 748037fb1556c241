"""Startup provisioning of the operator account."""

from __future__ import annotations

import logging

from sailingloc.core.config import get_settings
from sailingloc.db.session import get_sessionmaker
from sailingloc.models import User, UserRole
from sailingloc.services import user_service

logger = logging.getLogger(__name__)


async def ensure_default_admin() -> User | None:
    """Create ``DEFAULT_ADMIN_EMAIL`` as an admin unless that account exists.

    An existing account keeps its role and password.
    """
    settings = get_settings()
    email, password = settings.default_admin_email, settings.default_admin_password
    if not (email and password):
        return None
    async with get_sessionmaker()() as session:
        existing = await user_service.get_user_by_email(session, email)
        if existing is not None:
            return existing
        admin = await user_service.create_user(
            session,
            email=email,
            password=password,
            first_name="SailingLoc",
            last_name="Admin",
            role=UserRole.ADMIN,
        )
    logger.info("Provisioned default admin %s", admin.id)
    return admin
