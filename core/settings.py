"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Gateway clients call `load_payment_settings()` on every request instead of
holding a module-level instance, so a rotated PAYSTACK__SECRET_KEY takes
effect without a restart.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 3.0
    read: float = 10.0
    write: float = 10.0
    total: float = 10.0


class PaystackSettings(BaseModel):
    secret_key: Optional[str] = None
    callback_url: Optional[str] = None
    base_url: str = "https://api.paystack.co"
    currency: str = "NGN"


class PaymentSettings(BaseSettings):
    default_provider: str = Field(default="paystack")
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    # Upper bound for the listing store write after a confirmed payment
    store_timeout_seconds: float = Field(default=10.0)
    reference_prefix: str = Field(default="HLC-PROP")

    paystack: PaystackSettings = Field(default_factory=PaystackSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


def load_payment_settings() -> PaymentSettings:
    """Read payment settings from the environment (and .env) right now."""
    return PaymentSettings()
