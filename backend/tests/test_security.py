"""Credential hashing, PII encryption and log redaction."""

import logging
import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from jose import JWTError

from sailingloc.api.deps import parse_rate
from sailingloc.core.security import (
    hash_password,
    issue_access_token,
    read_access_token,
    verify_password,
)
from sailingloc.integrations.stripe_client import SandboxGateway, StripeClientError, to_cents
from sailingloc.security.encryption import decrypt_str, encrypt_str
from sailingloc.security.logging_filters import SensitiveFilter, redact


def test_password_hash_round_trip() -> None:
    hashed = hash_password("Sup3rSecret!")

    assert verify_password("Sup3rSecret!", hashed)
    assert not verify_password("wrong", hashed)


def test_access_token_carries_subject_and_role() -> None:
    user_id = uuid.uuid4()

    claims = read_access_token(issue_access_token(user_id, role="owner"))

    assert claims.user_id == user_id
    assert claims.role == "owner"


def test_expired_or_foreign_tokens_are_rejected() -> None:
    expired = issue_access_token(uuid.uuid4(), ttl=timedelta(seconds=-5))

    with pytest.raises(JWTError):
        read_access_token(expired)
    with pytest.raises(JWTError):
        read_access_token(issue_access_token("not-an-account"))


def test_overlong_passwords_compare_on_their_first_72_bytes() -> None:
    hashed = hash_password("x" * 100)

    assert verify_password("x" * 72, hashed)
    assert not verify_password("garbage", "not-a-bcrypt-hash")


def test_phone_numbers_are_encrypted_deterministically() -> None:
    token = encrypt_str("+33 6 12 34 56 78")

    assert token.startswith("enc:")
    assert token == encrypt_str("+33 6 12 34 56 78")
    assert decrypt_str(token) == "+33 6 12 34 56 78"
    assert encrypt_str(None) is None


def test_redaction_hides_credentials() -> None:
    text = redact('{"password": "hunter22", "payment_instrument": "tok_visa"} Authorization: Bearer abc.def')

    assert "hunter22" not in text
    assert "tok_visa" not in text
    assert "abc.def" not in text


def test_filter_rewrites_record_arguments() -> None:
    record = logging.LogRecord(
        "sailingloc", logging.INFO, __file__, 1, "body %s", ('{"password": "hunter22"}',), None
    )

    assert SensitiveFilter().filter(record)
    assert "hunter22" not in record.getMessage()


def test_amounts_convert_to_cents() -> None:
    assert to_cents(Decimal("330.00")) == 33000
    assert to_cents(Decimal("36.69")) == 3669


@pytest.mark.asyncio
async def test_sandbox_gateway_is_idempotent_per_key() -> None:
    gateway = SandboxGateway()

    first = await gateway.charge(Decimal("10"), currency="eur", instrument="tok", idempotency_key="k1")
    again = await gateway.charge(Decimal("10"), currency="eur", instrument="tok", idempotency_key="k1")
    declined = await gateway.charge(
        Decimal("10"), currency="eur", instrument="declined_card", idempotency_key="k2"
    )

    assert first.reference == again.reference
    assert not declined.success
    await gateway.refund(first.reference)
    assert first.reference in gateway.refunded
    with pytest.raises(StripeClientError):
        await gateway.refund("pi_unknown")


def test_rate_rules_parse_to_count_and_window() -> None:
    assert parse_rate("10/minute", fallback=(1, 1)) == (10, 60)
    assert parse_rate("5/hours", fallback=(1, 1)) == (5, 3600)
    assert parse_rate("lots/minute", fallback=(100, 60)) == (100, 60)
    assert parse_rate("3/fortnight", fallback=(100, 60)) == (3, 60)
