"""Test fixtures for the SailingLoc backend."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator
from datetime import date
from decimal import Decimal
from typing import Any

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("APP_ENCRYPTION_KEY", "MDEyMzQ1Njc4OTAxMjM0NTY3ODkwMTIzNDU2Nzg5MDE=")
os.environ.pop("STRIPE_SECRET_KEY", None)
os.environ.pop("REDIS_URL", None)

from sailingloc.api import deps
from sailingloc.core.config import get_settings
from sailingloc.core.security import hash_password
from sailingloc.db.base import Base
from sailingloc.db.session import dispose_engine, get_engine, get_sessionmaker
from sailingloc.integrations.stripe_client import SandboxGateway
from sailingloc.main import app
from sailingloc.models import Boat, User, UserRole, UserStatus
from sailingloc.services import availability_service

TODAY = date(2030, 6, 3)
PASSWORD = "Sup3rSecret!"


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()
    availability_service.clear_cache()

    await dispose_engine(db_url)
    async with get_engine(db_url).begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def db_session(reset_database: None, db_url: str) -> AsyncIterator[AsyncSession]:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        yield session


def make_user(
    email: str,
    *,
    role: UserRole,
    first_name: str = "Alex",
    last_name: str = "Marin",
    phone_number: str | None = "+33 6 12 34 56 78",
) -> User:
    return User(
        email=email,
        hashed_password=hash_password(PASSWORD),
        first_name=first_name,
        last_name=last_name,
        phone_number=phone_number,
        role=role,
        status=UserStatus.ACTIVE,
    )


@pytest_asyncio.fixture()
async def seeded(db_session: AsyncSession) -> dict[str, Any]:
    """Persist an owner with one boat, two renters and an admin."""
    owner = make_user("owner@example.com", role=UserRole.OWNER, first_name="Olivia")
    renter = make_user("renter@example.com", role=UserRole.RENTER, first_name="Remy")
    other_renter = make_user(
        "second.renter@example.com", role=UserRole.RENTER, first_name="Rosa"
    )
    admin = make_user("admin@example.com", role=UserRole.ADMIN, first_name="Ada")
    db_session.add_all([owner, renter, other_renter, admin])
    await db_session.flush()

    boat = Boat(
        owner_id=owner.id,
        name="Belle Brise",
        boat_type="sailboat",
        destination="La Rochelle",
        capacity=6,
        daily_price=Decimal("100.00"),
        equipment=["GPS", "Life jackets"],
    )
    db_session.add(boat)
    await db_session.commit()
    return {
        "owner": owner,
        "renter": renter,
        "other_renter": other_renter,
        "admin": admin,
        "boat": boat,
    }


@pytest_asyncio.fixture()
async def app_context(seeded: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
    """Yield an async client plus the seeded users, boat and payment sandbox."""
    gateway = SandboxGateway()
    app.dependency_overrides[deps.get_today] = lambda: TODAY
    app.dependency_overrides[deps.get_gateway] = lambda: gateway

    context: dict[str, Any] = dict(seeded)
    context["gateway"] = gateway
    context["password"] = PASSWORD
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            context["client"] = client
            yield context
    finally:
        app.dependency_overrides.clear()


async def authenticate(client: AsyncClient, email: str, password: str = PASSWORD) -> dict[str, str]:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


async def book_boat(
    context: dict[str, Any],
    start: str,
    end: str,
    *,
    renter_key: str = "renter",
    instrument: str = "tok_visa",
) -> dict[str, Any]:
    """Drive a signed-in renter through checkout and return the booking JSON."""
    client: AsyncClient = context["client"]
    headers = await authenticate(client, context[renter_key].email)
    started = await client.post(
        "/api/v1/checkouts",
        json={"boat_id": str(context["boat"].id), "start_date": start, "end_date": end},
        headers=headers,
    )
    assert started.status_code == 201, started.text
    paid = await client.post(
        f"/api/v1/checkouts/{started.json()['id']}/payment",
        json={"payment_instrument": instrument},
        headers=headers,
    )
    assert paid.status_code == 200, paid.text
    return paid.json()
