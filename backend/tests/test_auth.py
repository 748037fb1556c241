"""Registration, login and profile endpoints."""

import pytest

from conftest import PASSWORD, authenticate

pytestmark = pytest.mark.asyncio


def _registration(**overrides):
    payload = {
        "first_name": "Nina",
        "last_name": "Cordier",
        "email": "Nina.Cordier@example.com",
        "phone_number": "+33 6 00 00 00 01",
        "password": PASSWORD,
        "password_confirmation": PASSWORD,
        "account_type": "renter",
    }
    payload.update(overrides)
    return payload


async def test_register_returns_token_and_profile(app_context) -> None:
    client = app_context["client"]

    response = await client.post("/api/v1/auth/register", json=_registration())

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["user"]["email"] == "nina.cordier@example.com"
    assert body["user"]["role"] == "renter"
    assert body["user"]["phone_number"] == "+33 6 00 00 00 01"
    me = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {body['token']['access_token']}"},
    )
    assert me.status_code == 200
    assert me.json()["first_name"] == "Nina"


async def test_owner_accounts_can_self_register(app_context) -> None:
    response = await app_context["client"].post(
        "/api/v1/auth/register",
        json=_registration(email="skipper@example.com", account_type="owner"),
    )

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "owner"


async def test_admin_role_cannot_be_requested(app_context) -> None:
    response = await app_context["client"].post(
        "/api/v1/auth/register", json=_registration(account_type="admin")
    )

    assert response.status_code == 422


async def test_role_is_not_inferred_from_email(app_context) -> None:
    response = await app_context["client"].post(
        "/api/v1/auth/register",
        json=_registration(email="admin.owner@example.com"),
    )

    assert response.status_code == 201
    assert response.json()["user"]["role"] == "renter"


async def test_missing_fields_are_reported_together(app_context) -> None:
    response = await app_context["client"].post(
        "/api/v1/auth/register",
        json=_registration(
            first_name="", phone_number=None, password_confirmation="different!"
        ),
    )

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "validation_error"
    assert set(detail["fields"]) == {"first_name", "phone_number", "password_confirmation"}


async def test_short_password_and_bad_email_are_rejected(app_context) -> None:
    response = await app_context["client"].post(
        "/api/v1/auth/register",
        json=_registration(email="not-an-email", password="short", password_confirmation="short"),
    )

    assert response.status_code == 422
    fields = response.json()["detail"]["fields"]
    assert "email" in fields
    assert "password" in fields


async def test_duplicate_email_is_rejected(app_context) -> None:
    response = await app_context["client"].post(
        "/api/v1/auth/register", json=_registration(email="RENTER@example.com")
    )

    assert response.status_code == 422
    assert response.json()["detail"]["fields"]["email"] == "Already registered"


async def test_login_with_wrong_password_fails(app_context) -> None:
    response = await app_context["client"].post(
        "/api/v1/auth/token",
        data={"username": "renter@example.com", "password": "wrong-password"},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )

    assert response.status_code == 401


async def test_me_reports_stored_role(app_context) -> None:
    client = app_context["client"]
    headers = await authenticate(client, "owner@example.com")

    response = await client.get("/api/v1/auth/me", headers=headers)

    assert response.status_code == 200
    assert response.json()["role"] == "owner"


async def test_me_requires_a_token(app_context) -> None:
    response = await app_context["client"].get("/api/v1/auth/me")

    assert response.status_code == 401
