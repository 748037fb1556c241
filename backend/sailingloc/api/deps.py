"""Request-scoped dependencies shared by the v1 routers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import UTC, date, datetime
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordBearer
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from sailingloc.core.config import get_settings
from sailingloc.core.security import read_access_token
from sailingloc.db.session import get_session
from sailingloc.integrations.stripe_client import PaymentGateway, get_payment_gateway
from sailingloc.models.user import User, UserStatus

_TOKEN_URL = f"{get_settings().api_v1_prefix}/auth/token"

bearer_required = OAuth2PasswordBearer(tokenUrl=_TOKEN_URL)
bearer_optional = OAuth2PasswordBearer(tokenUrl=_TOKEN_URL, auto_error=False)


async def get_db_session() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _resolve_account(session: AsyncSession, token: str) -> User:
    """Map a bearer token to an active account or raise 401.

    Suspended accounts are refused even while their token is still valid.
    """
    try:
        claims = read_access_token(token)
    except JWTError as exc:
        raise _unauthorized() from exc
    user = await session.get(User, claims.user_id)
    if user is None or user.status != UserStatus.ACTIVE:
        raise _unauthorized()
    return user


async def get_current_user(
    token: Annotated[str, Depends(bearer_required)], session: SessionDep
) -> User:
    return await _resolve_account(session, token)


async def get_optional_user(
    token: Annotated[str | None, Depends(bearer_optional)], session: SessionDep
) -> User | None:
    """Checkout endpoints accept anonymous visitors; a bad token is still a 401."""
    if not token:
        return None
    return await _resolve_account(session, token)


CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[User | None, Depends(get_optional_user)]


def get_today() -> date:
    """Calendar day used for every date rule (UTC)."""
    return datetime.now(UTC).date()


def get_gateway() -> PaymentGateway:
    return get_payment_gateway()


Today = Annotated[date, Depends(get_today)]
Gateway = Annotated[PaymentGateway, Depends(get_gateway)]


_WINDOW_SECONDS = {"second": 1, "minute": 60, "hour": 3600, "day": 86400}


def parse_rate(rule: str, *, fallback: tuple[int, int]) -> tuple[int, int]:
    """``"10/minute"`` -> ``(10, 60)``; unreadable rules use ``fallback``."""
    count, _, window = rule.partition("/")
    try:
        times = int(count.strip())
    except ValueError:
        return fallback
    seconds = _WINDOW_SECONDS.get(window.strip().lower().rstrip("s"))
    return times, seconds if seconds is not None else fallback[1]


def rate_limited(rule: str, *, fallback: tuple[int, int] = (100, 60)):
    """Route dependency enforcing ``rule``; a no-op until Redis is initialised."""
    times, seconds = parse_rate(rule, fallback=fallback)

    async def _check(request: Request, response: Response) -> None:
        if FastAPILimiter.redis is None:
            return
        await RateLimiter(times=times, seconds=seconds)(request, response)

    return Depends(_check)
