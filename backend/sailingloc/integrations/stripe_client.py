"""Payment authority: Stripe charges plus a deterministic sandbox.

The sandbox is selected when no Stripe secret key is configured. It never
talks to the network and gives the same answer for the same idempotency key,
which is what local development and the test-suite rely on.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Any, Protocol, cast

import stripe

from sailingloc.core.settings import get_payment_settings

logger = logging.getLogger(__name__)

SANDBOX_DECLINE_PREFIX = "declined"


@dataclass(slots=True, frozen=True)
class ChargeResult:
    """Outcome of a charge; declines are results, transport failures raise."""

    success: bool
    reference: str | None = None
    failure_reason: str | None = None


class StripeClientError(RuntimeError):
    """Raised when the payment provider cannot be reached or errors out."""


class PaymentGateway(Protocol):
    provider: str

    async def charge(
        self,
        amount: Decimal,
        *,
        currency: str,
        instrument: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> ChargeResult: ...

    async def refund(self, reference: str) -> None: ...


def to_cents(amount: Decimal) -> int:
    quantized = amount.quantize(Decimal("0.01"))
    return int((quantized * 100).to_integral_value())


class StripeGateway:
    """Charges through PaymentIntents confirmed server-side."""

    provider = "stripe"

    def __init__(
        self,
        secret_key: str,
        *,
        test_mode: bool = False,
        idempotency_prefix: str = "sailingloc",
    ) -> None:
        self._client = stripe.StripeClient(secret_key, max_network_retries=2)
        if test_mode and not secret_key.startswith(("sk_test_", "rk_test_")):
            logger.warning("STRIPE_TEST_MODE is enabled but the key is not a test key")
        self._idempotency_prefix = idempotency_prefix

    def _idempotency_key(self, seed: str) -> str:
        return f"{self._idempotency_prefix}_{seed}"

    def _create_intent(
        self,
        amount: Decimal,
        currency: str,
        instrument: str,
        idempotency_key: str,
        metadata: dict[str, str],
    ) -> ChargeResult:
        params: dict[str, Any] = {
            "amount": to_cents(amount),
            "currency": currency,
            "payment_method": instrument,
            "confirm": True,
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True, "allow_redirects": "never"},
        }
        try:
            intent = self._client.payment_intents.create(
                params=cast(Any, params),
                options={"idempotency_key": self._idempotency_key(idempotency_key)},
            )
        except stripe.CardError as exc:
            return ChargeResult(
                success=False,
                failure_reason=exc.user_message or "The card was declined",
            )
        except stripe.StripeError as exc:
            raise StripeClientError("Failed to create payment intent") from exc
        if intent.status != "succeeded":
            return ChargeResult(
                success=False,
                reference=intent.id,
                failure_reason=f"Payment ended in status '{intent.status}'",
            )
        return ChargeResult(success=True, reference=intent.id)

    async def charge(
        self,
        amount: Decimal,
        *,
        currency: str,
        instrument: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> ChargeResult:
        return await asyncio.to_thread(
            self._create_intent,
            amount,
            currency,
            instrument,
            idempotency_key,
            dict(metadata or {}),
        )

    def _refund(self, reference: str) -> None:
        try:
            self._client.refunds.create(params={"payment_intent": reference})
        except stripe.StripeError as exc:
            raise StripeClientError("Failed to refund payment intent") from exc

    async def refund(self, reference: str) -> None:
        await asyncio.to_thread(self._refund, reference)


class SandboxGateway:
    """In-memory gateway: instruments starting with ``declined`` are refused."""

    provider = "sandbox"

    def __init__(self) -> None:
        self._charges: dict[str, ChargeResult] = {}
        self.refunded: set[str] = set()

    async def charge(
        self,
        amount: Decimal,
        *,
        currency: str,
        instrument: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
    ) -> ChargeResult:
        previous = self._charges.get(idempotency_key)
        if previous is not None:
            return previous
        if instrument.lower().startswith(SANDBOX_DECLINE_PREFIX):
            result = ChargeResult(success=False, failure_reason="The card was declined")
        else:
            result = ChargeResult(success=True, reference=f"pi_{uuid.uuid4().hex}")
        self._charges[idempotency_key] = result
        return result

    async def refund(self, reference: str) -> None:
        known = {charge.reference for charge in self._charges.values()}
        if reference not in known:
            raise StripeClientError("Payment intent not found")
        self.refunded.add(reference)


@lru_cache
def get_payment_gateway() -> PaymentGateway:
    """Return the configured payment authority."""
    settings = get_payment_settings()
    if settings.uses_stripe:
        return StripeGateway(
            settings.stripe_secret_key, test_mode=settings.stripe_test_mode
        )
    logger.info("STRIPE_SECRET_KEY not set; using the sandbox payment gateway")
    return SandboxGateway()


__all__ = [
    "ChargeResult",
    "PaymentGateway",
    "SandboxGateway",
    "StripeClientError",
    "StripeGateway",
    "get_payment_gateway",
    "to_cents",
]
