"""Sign-in, self-service registration and the current account."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordRequestForm

from sailingloc.api import deps
from sailingloc.core.config import get_settings
from sailingloc.models.user import UserRole
from sailingloc.schemas.auth import RegistrationRequest, RegistrationResponse, Token
from sailingloc.schemas.user import UserRead
from sailingloc.services import audit_service, auth_service, notification_service

router = APIRouter()

_limits = get_settings()


@router.post(
    "/token",
    response_model=Token,
    summary="Exchange email and password for a bearer token",
    dependencies=[deps.rate_limited(_limits.rate_limit_login, fallback=(10, 60))],
)
async def login_for_access_token(
    form_data: Annotated[OAuth2PasswordRequestForm, Depends()],
    session: deps.SessionDep,
    request: Request,
) -> Token:
    user = await auth_service.authenticate_user(
        session, email=form_data.username, password=form_data.password
    )
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    await audit_service.record_event(
        session,
        event_type="auth.login",
        user_id=user.id,
        payload={"role": user.role.value},
        ip_address=request.client.host if request.client else None,
    )
    return Token(access_token=auth_service.create_access_token_for_user(user))


@router.post(
    "/register",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Open a renter or boat-owner account",
    dependencies=[deps.rate_limited(_limits.rate_limit_default)],
)
async def register(
    payload: RegistrationRequest,
    session: deps.SessionDep,
    background_tasks: BackgroundTasks,
) -> RegistrationResponse:
    """Registration signs the new account in straight away."""
    user = await auth_service.register_user(
        session, payload, role=UserRole(payload.account_type)
    )
    notification_service.schedule_email(
        background_tasks,
        recipients=[user.email],
        subject="Welcome to SailingLoc",
        body=f"Hi {user.first_name},\n\nYour SailingLoc account is ready. See you on the water!\n",
    )
    token = Token(access_token=auth_service.create_access_token_for_user(user))
    return RegistrationResponse(token=token, user=UserRead.model_validate(user))


@router.get("/me", response_model=UserRead, summary="Current account")
async def read_me(current_user: deps.CurrentUser) -> UserRead:
    return UserRead.model_validate(current_user)
