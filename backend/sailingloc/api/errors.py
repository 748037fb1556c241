"""Translate booking-core errors into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from sailingloc.core.errors import (
    BookingError,
    CollaboratorFailure,
    ConflictError,
    InvalidTransition,
    PaymentFailed,
    PolicyError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first.
STATUS_BY_ERROR: tuple[tuple[type[BookingError], int], ...] = (
    (PaymentFailed, status.HTTP_402_PAYMENT_REQUIRED),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (PolicyError, status.HTTP_403_FORBIDDEN),
    (CollaboratorFailure, status.HTTP_502_BAD_GATEWAY),
)


def status_for(exc: BookingError) -> int:
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_400_BAD_REQUEST


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content={"detail": exc.to_detail()})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)  # type: ignore[arg-type]
