"""Async engines and session factories, one pair per database URL."""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from sailingloc.core.config import get_settings

# Concurrent checkouts on SQLite wait for the writer lock instead of failing fast.
SQLITE_BUSY_TIMEOUT_SECONDS = 30


@dataclass(frozen=True)
class _Database:
    engine: AsyncEngine
    sessionmaker: async_sessionmaker[AsyncSession]


_databases: dict[str, _Database] = {}


def _engine_kwargs(url: str) -> dict[str, Any]:
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"timeout": SQLITE_BUSY_TIMEOUT_SECONDS}}
    return {"pool_pre_ping": True}


def _database(database_url: str | None) -> _Database:
    url = database_url or get_settings().database_url
    database = _databases.get(url)
    if database is None:
        engine = create_async_engine(url, **_engine_kwargs(url))
        # Loaded rows stay usable after commit; the API serialises them afterwards.
        factory = async_sessionmaker(engine, expire_on_commit=False)
        database = _databases[url] = _Database(engine, factory)
    return database


def get_engine(database_url: str | None = None) -> AsyncEngine:
    return _database(database_url).engine


def get_sessionmaker(
    database_url: str | None = None,
) -> async_sessionmaker[AsyncSession]:
    return _database(database_url).sessionmaker


async def get_session() -> AsyncIterator[AsyncSession]:
    async with get_sessionmaker()() as session:
        yield session


async def dispose_engine(database_url: str | None = None) -> None:
    """Close pooled connections and forget the factory for ``database_url``."""
    url = database_url or get_settings().database_url
    database = _databases.pop(url, None)
    if database is not None:
        await database.engine.dispose()
