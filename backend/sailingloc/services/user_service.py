"""Account persistence for renters, owners and admins."""
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.core.errors import ValidationError
from sailingloc.core.security import hash_password
from sailingloc.models.user import User, UserRole, UserStatus

# Columns a renter may fill in after the account exists.
EDITABLE_PROFILE_FIELDS = frozenset(
    {
        "first_name",
        "last_name",
        "phone_number",
        "birth_date",
        "street",
        "city",
        "state",
        "postal_code",
        "country",
    }
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    result = await session.execute(
        select(User).where(User.email == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    role: UserRole = UserRole.RENTER,
    status: UserStatus = UserStatus.ACTIVE,
    **profile: Any,
) -> User:
    """Insert an account; a concurrent signup with the same email is a validation error."""
    unknown = set(profile) - EDITABLE_PROFILE_FIELDS
    if unknown:
        raise TypeError(f"Unknown profile fields: {sorted(unknown)}")
    user = User(
        email=normalize_email(email),
        hashed_password=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        role=role,
        status=status,
        **profile,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise ValidationError(
            "An account already exists for this email; sign in to continue",
            fields={"email": "Already registered"},
        ) from exc
    return user


async def update_profile(
    session: AsyncSession, user: User, values: dict[str, Any]
) -> User:
    """Fill in profile columns; credentials and role are never touched here."""
    for name, value in values.items():
        if name not in EDITABLE_PROFILE_FIELDS:
            raise TypeError(f"{name} is not an editable profile field")
        setattr(user, name, value)
    await session.commit()
    return user
