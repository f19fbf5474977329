"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_validator


VerificationStatus = Literal["success", "failed", "pending", "abandoned"]


class PaymentIntent(BaseModel):
    """Request to initialize a transaction; never mutated after sending."""

    model_config = ConfigDict(frozen=True)

    payer_email: EmailStr
    amount_minor_units: int = Field(gt=0, description="Amount in the currency's smallest unit (kobo)")
    reference: str = Field(min_length=1, max_length=100)
    callback_url: Optional[HttpUrl] = None
    # Provider metadata map, usually produced by encode_promotion_metadata
    metadata: Optional[dict[str, Any]] = None

    @field_validator("amount_minor_units", mode="before")
    @classmethod
    def _reject_bool_and_fraction(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("amount must be an integer")
        if isinstance(v, float) and not v.is_integer():
            raise ValueError("amount must be a whole number of minor units")
        return v

    @field_validator("reference")
    @classmethod
    def _strip_reference(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("reference must not be blank")
        return v


class InitializedTransaction(BaseModel):
    authorization_url: str
    access_code: str
    reference: str


class VerificationResult(BaseModel):
    """Provider answer for a reference; fetched fresh on every verification."""

    status: VerificationStatus
    reference: str
    amount_minor_units: int
    currency: str
    paid_at: Optional[datetime] = None
    gateway_response: Optional[str] = None
    # Echoed metadata exactly as the provider returned it
    metadata: Any = None
    # Full provider `data` object for audit
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.status == "success"


class PromotionStateDTO(BaseModel):
    is_promoted: bool
    promotion_tier_id: str
    promotion_tier_name: str
    promoted_at: datetime
    promotion_expires_at: datetime


class PromotionActivationResult(BaseModel):
    """Structured outcome of verify-and-activate."""

    reference: str
    payment_verified: bool
    promotion_applied: bool
    state: Literal["gateway_confirmed_failed", "promotion_skipped", "promotion_applied", "promotion_not_recorded"]
    property_id: Optional[UUID] = None
    promotion: Optional[PromotionStateDTO] = None
    warning: Optional[str] = None
    verification: VerificationResult


class InitializePaymentResponse(BaseModel):
    success: bool
    message: str
    authorization_url: Optional[str] = None
    access_code: Optional[str] = None
    reference: Optional[str] = None


class VerifyPaymentResponse(BaseModel):
    success: bool
    message: str
    payment_successful: Optional[bool] = None
    promotion_applied: Optional[bool] = None
    warning: Optional[str] = None
    data: Optional[dict[str, Any]] = None


class PromotionCheckoutRequest(BaseModel):
    property_id: UUID
    agent_id: UUID
    tier_id: str = Field(min_length=1)
    payer_email: EmailStr
    callback_url: Optional[HttpUrl] = None
    reference: Optional[str] = Field(default=None, min_length=1, max_length=100)


class PromotionTierDTO(BaseModel):
    id: str
    name: str
    fee: float
    duration: int
    description: str = ""


class PromotionTierConfigDTO(BaseModel):
    promotions_enabled: bool
    tiers: list[PromotionTierDTO]
