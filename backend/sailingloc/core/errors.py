"""Domain error taxonomy shared by services and the HTTP layer.

Every error carries a stable ``code`` so API clients can route the user to the
right fix (pick other dates, switch account, retry later) without parsing
messages.
"""

from __future__ import annotations

from typing import Any


class BookingError(Exception):
    """Base class for booking-core errors."""

    code = "booking_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_detail(self) -> dict[str, Any]:
        detail: dict[str, Any] = {"code": self.code, "message": self.message}
        for key, value in self.context.items():
            detail[key] = to_jsonable(value)
        return detail


def to_jsonable(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {str(key): to_jsonable(item) for key, item in value.items()}
    enum_value = getattr(value, "value", None)
    if enum_value is not None and not callable(enum_value):
        return enum_value
    isoformat = getattr(value, "isoformat", None)
    if callable(isoformat):
        return isoformat()
    return str(value)


class ValidationError(BookingError, ValueError):
    """Malformed or missing candidate range / identity fields."""

    code = "validation_error"


class ConflictError(BookingError):
    """Requested range overlaps an unavailable period."""

    code = "date_conflict"


class InvalidTransition(BookingError):
    """A state-machine move that the transition table does not allow."""

    code = "invalid_transition"

    def __init__(self, current: Any, requested: Any, message: str | None = None) -> None:
        current_label = getattr(current, "value", current)
        requested_label = getattr(requested, "value", requested)
        super().__init__(
            message
            or f"Cannot move from '{current_label}' to '{requested_label}'",
            current=current,
            requested=requested,
        )
        self.current = current
        self.requested = requested


class PolicyError(BookingError):
    """Well-formed input rejected by a business rule."""

    code = "policy_violation"


class CollaboratorFailure(BookingError):
    """An external authority was unreachable or returned an error."""

    code = "collaborator_failure"


class PaymentFailed(CollaboratorFailure):
    """The payment authority declined or timed out; the step may be retried."""

    code = "payment_failed"


__all__ = [
    "BookingError",
    "CollaboratorFailure",
    "ConflictError",
    "InvalidTransition",
    "PaymentFailed",
    "PolicyError",
    "ValidationError",
]
