"""ASGI entrypoint: ``uvicorn sailingloc.main:app``."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import redis.asyncio as redis  # type: ignore[import-untyped]
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi_limiter import FastAPILimiter
from redis.exceptions import RedisError
from secure import Secure
from sqlalchemy.exc import SQLAlchemyError

from sailingloc.api import api_router
from sailingloc.api.errors import register_exception_handlers
from sailingloc.core.config import Settings, get_settings
from sailingloc.db.session import dispose_engine
from sailingloc.security.logging_filters import SensitiveFilter
from sailingloc.services.bootstrap_service import ensure_default_admin

logger = logging.getLogger(__name__)

_REDACTED_LOGGERS = ("", "uvicorn", "uvicorn.access", "uvicorn.error")


def install_log_redaction() -> None:
    for name in _REDACTED_LOGGERS:
        target = logging.getLogger(name)
        if not any(isinstance(existing, SensitiveFilter) for existing in target.filters):
            target.addFilter(SensitiveFilter())


async def _start_rate_limiter(settings: Settings) -> redis.Redis | None:
    if not settings.redis_url:
        logger.info("REDIS_URL not set; rate limiting disabled")
        return None
    try:
        client = redis.from_url(settings.redis_url, encoding="utf-8", decode_responses=True)
        await FastAPILimiter.init(client)
    except (RedisError, OSError):
        logger.exception("Rate limiter unavailable; serving without it")
        return None
    return client


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    limiter_client = await _start_rate_limiter(settings)
    try:
        await ensure_default_admin()
    except SQLAlchemyError:
        logger.exception("Could not create the default admin account")
    try:
        yield
    finally:
        if limiter_client is not None:
            try:
                await FastAPILimiter.close()
                await limiter_client.aclose()
            except (RedisError, OSError):
                logger.exception("Failed to close rate limiter")
        await dispose_engine()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    application = FastAPI(
        title=settings.app_name,
        lifespan=lifespan,
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=[origin for origin in settings.cors_allow_origins if origin],
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )
    application.add_middleware(CorrelationIdMiddleware, header_name="X-Request-ID")

    headers = Secure.with_default_headers()

    @application.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        headers.set_headers(response)
        return response

    register_exception_handlers(application)
    application.include_router(api_router)
    return application


install_log_redaction()
app = create_app()
