"""Process-wide configuration for the SailingLoc API.

Values come from the environment (or a ``.env`` file next to ``backend/``).
Field names double as environment variable names, upper-cased.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=_ENV_FILE,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "SailingLoc API"
    app_env: str = "local"
    api_v1_prefix: str = "/api/v1"

    # Persistence
    database_url: str

    # Credentials and PII
    secret_key: str = "change-me"
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(default=60, gt=0)
    app_encryption_key: str = ""

    # Payments
    stripe_secret_key: str | None = None
    stripe_test_mode: bool = True
    payment_currency: str = "eur"
    payment_timeout_seconds: float = Field(default=30.0, gt=0)

    # Outbound mail; unset host disables delivery
    smtp_host: str | None = None
    smtp_port: int | None = None
    smtp_username: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = None
    smtp_from: str | None = None

    # Bootstrap administrator, created at startup when both are set
    default_admin_email: str | None = None
    default_admin_password: str | None = None

    # HTTP edge
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"]
    )
    cors_allow_credentials: bool = False
    redis_url: str | None = None
    rate_limit_default: str = "100/minute"
    rate_limit_login: str = "10/minute"

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _comma_separated(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("payment_currency")
    @classmethod
    def _lower_currency(cls, value: str) -> str:
        return value.strip().lower()

    @model_validator(mode="after")
    def _default_jwt_secret(self) -> "Settings":
        if not self.jwt_secret_key:
            self.jwt_secret_key = self.secret_key
        return self

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in {"prod", "production"}


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
