"""Identity authority: registration, login and checkout identity.

Roles are read from the stored user row only. Nothing about a user's
permissions is inferred from their email address.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.core.errors import PolicyError, ValidationError
from sailingloc.core.security import issue_access_token, verify_password
from sailingloc.models.user import User, UserRole, UserStatus
from sailingloc.schemas.user import IdentityPayload
from sailingloc.services import audit_service, user_service

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8
REQUIRED_FIELDS = ("first_name", "last_name", "email", "phone_number")
PROFILE_FIELDS = (
    "first_name",
    "last_name",
    "phone_number",
    "birth_date",
    "street",
    "city",
    "state",
    "postal_code",
    "country",
)


@dataclass(frozen=True, slots=True)
class Identity:
    """An established account and whether this call created it."""

    user: User
    created: bool = False

    @property
    def id(self):
        return self.user.id

    @property
    def role(self) -> UserRole:
        return self.user.role


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def identity_errors(
    payload: IdentityPayload, *, existing: User | None = None
) -> dict[str, str]:
    """Return field -> problem for everything the payload still lacks.

    With an ``existing`` account only fields missing from both the account and
    the payload are reported, and no credentials are required.
    """
    errors: dict[str, str] = {}
    for name in REQUIRED_FIELDS:
        if existing is not None and name == "email":
            continue
        if _clean(getattr(payload, name)) is None and (
            existing is None or _clean(getattr(existing, name)) is None
        ):
            errors[name] = "This field is required"
    email = _clean(payload.email)
    if existing is None and email is not None and not EMAIL_PATTERN.match(email):
        errors["email"] = "Enter a valid email address"
    if existing is None:
        password = payload.password or ""
        if len(password) < MIN_PASSWORD_LENGTH:
            errors["password"] = (
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        elif password != payload.password_confirmation:
            errors["password_confirmation"] = "Passwords do not match"
    return errors


def validate_identity(payload: IdentityPayload, *, existing: User | None = None) -> None:
    errors = identity_errors(payload, existing=existing)
    if errors:
        raise ValidationError(
            "Some account details are missing or invalid", fields=errors
        )


def _profile_values(payload: IdentityPayload) -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name in PROFILE_FIELDS:
        value = _clean(getattr(payload, name))
        if value is not None:
            values[name] = value
    return values


async def register_user(
    session: AsyncSession,
    payload: IdentityPayload,
    *,
    role: UserRole = UserRole.RENTER,
) -> User:
    """Create an account after validating every identity field."""
    if role == UserRole.ADMIN:
        raise PolicyError("Administrator accounts cannot be self-registered")
    validate_identity(payload)
    email = str(_clean(payload.email)).lower()
    if await user_service.get_user_by_email(session, email) is not None:
        raise ValidationError(
            "An account already exists for this email; sign in to continue",
            fields={"email": "Already registered"},
        )
    values = _profile_values(payload)
    user = await user_service.create_user(
        session,
        email=email,
        password=str(payload.password),
        first_name=values.pop("first_name"),
        last_name=values.pop("last_name"),
        role=role,
        **values,
    )
    await audit_service.record_event(
        session,
        event_type="auth.registered",
        user_id=user.id,
        description=f"Registered {role.value} account",
        payload={"role": role.value},
    )
    logger.info("Registered %s account %s", role.value, user.id)
    return user


async def authenticate_user(
    session: AsyncSession, email: str, password: str
) -> User | None:
    """Validate credentials and return a user if correct."""
    user = await user_service.get_user_by_email(session, email=email)
    if user is None:
        return None
    if user.status != UserStatus.ACTIVE:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def create_access_token_for_user(user: User) -> str:
    return issue_access_token(user.id, role=user.role.value)


async def establish_identity(
    session: AsyncSession,
    *,
    payload: IdentityPayload,
    current_user: User | None = None,
) -> Identity:
    """Resolve the renter for a checkout.

    A signed-in user only supplies what their profile is missing; an anonymous
    visitor gets a new renter account from the payload.
    """
    if current_user is None:
        user = await register_user(session, payload, role=UserRole.RENTER)
        return Identity(user=user, created=True)
    validate_identity(payload, existing=current_user)
    missing = {
        name: value
        for name, value in _profile_values(payload).items()
        if _clean(getattr(current_user, name)) is None
    }
    if missing:
        await user_service.update_profile(session, current_user, missing)
        logger.info(
            "Completed profile fields %s for user %s", sorted(missing), current_user.id
        )
    return Identity(user=current_user)
