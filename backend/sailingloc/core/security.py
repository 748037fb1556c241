"""Password hashing and bearer tokens for SailingLoc accounts.

Tokens carry the account id as ``sub`` and the stored role as ``role``; the
role claim is informational only, permissions are always read from the user
row.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import bcrypt
from jose import JWTError, jwt

from sailingloc.core.config import get_settings

# bcrypt only looks at the first 72 bytes; newer releases refuse longer input.
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed_password.encode("ascii"))
    except (ValueError, TypeError):
        return False


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """Decoded bearer token."""

    user_id: uuid.UUID
    role: str | None
    expires_at: datetime


def issue_access_token(
    user_id: uuid.UUID | str,
    *,
    role: str | None = None,
    ttl: timedelta | None = None,
) -> str:
    settings = get_settings()
    expires_at = datetime.now(UTC) + (
        ttl or timedelta(minutes=settings.access_token_expire_minutes)
    )
    claims: dict[str, object] = {"sub": str(user_id), "exp": expires_at}
    if role is not None:
        claims["role"] = role
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def read_access_token(token: str) -> AccessClaims:
    """Validate signature and expiry; raise ``JWTError`` for anything unusable."""
    settings = get_settings()
    payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except (KeyError, ValueError) as exc:
        raise JWTError("Token subject is not an account id") from exc
    return AccessClaims(
        user_id=user_id,
        role=payload.get("role"),
        expires_at=datetime.fromtimestamp(int(payload["exp"]), UTC),
    )


__all__ = [
    "AccessClaims",
    "hash_password",
    "issue_access_token",
    "read_access_token",
    "verify_password",
]
