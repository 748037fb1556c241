"""Read-only configuration slices handed to integrations."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from sailingloc.core.config import Settings, get_settings


class PaymentSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    stripe_secret_key: str | None
    stripe_test_mode: bool
    currency: str
    timeout_seconds: float

    @property
    def uses_stripe(self) -> bool:
        return bool(self.stripe_secret_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentSettings":
        return cls(
            stripe_secret_key=(settings.stripe_secret_key or "").strip() or None,
            stripe_test_mode=settings.stripe_test_mode,
            currency=settings.payment_currency,
            timeout_seconds=settings.payment_timeout_seconds,
        )


def get_payment_settings() -> PaymentSettings:
    """Payment view of the current settings; follows ``get_settings`` cache resets."""
    return PaymentSettings.from_settings(get_settings())
