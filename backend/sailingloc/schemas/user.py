"""Account payloads and the public account view."""

from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from sailingloc.models.user import UserRole, UserStatus


class _Contact(BaseModel):
    phone_number: str | None = None
    birth_date: date | None = None
    street: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None


class IdentityPayload(_Contact):
    """Contact and credential fields collected at registration or checkout.

    Everything is optional at the schema level; the identity service decides
    which fields are still missing for the current account and reports them
    together.
    """

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    password: str | None = Field(default=None, repr=False)
    password_confirmation: str | None = Field(default=None, repr=False)


class UserRead(_Contact):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: UserRole
    status: UserStatus
