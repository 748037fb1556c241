"""Token and registration bodies."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

from sailingloc.schemas.user import IdentityPayload, UserRead


class Token(BaseModel):
    access_token: str
    token_type: Literal["bearer"] = "bearer"


class RegistrationRequest(IdentityPayload):
    """Renters and boat owners may sign themselves up; admins are provisioned."""

    account_type: Literal["renter", "owner"] = "renter"


class RegistrationResponse(BaseModel):
    token: Token
    user: UserRead
