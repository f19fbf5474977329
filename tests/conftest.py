"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///./test_listings.db")
os.environ.setdefault("PAYSTACK__SECRET_KEY", "sk_test_conftest")

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Union
from uuid import UUID

import pytest

from application.dtos.payments import InitializedTransaction, PaymentIntent, VerificationResult
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.promotion.entity import PROMOTION_PURPOSE, ListingPromotionState
from domain.promotion.repository import ListingPromotionRepository


PROPERTY_ID = UUID("6f1c2a4e-8b7d-4c1e-9a3f-2d5b7e9c1a04")
AGENT_ID = UUID("0b9e3d2c-1a4f-4e6b-8c7d-5f2a1b3c4d5e")
REFERENCE = "HLC-PROP-9F3A"


def promotion_metadata(**overrides: Any) -> dict:
    meta = {
        "property_id": str(PROPERTY_ID),
        "tier_id": "premium",
        "tier_name": "Premium",
        "tier_duration": "14",
        "agent_id": str(AGENT_ID),
        "purpose": PROMOTION_PURPOSE,
    }
    meta.update(overrides)
    return meta


def make_verification(
    status: str = "success",
    *,
    reference: str = REFERENCE,
    metadata: Any = None,
    amount: int = 1_500_000,
) -> VerificationResult:
    return VerificationResult(
        status=status,
        reference=reference,
        amount_minor_units=amount,
        currency="NGN",
        paid_at=datetime(2024, 5, 1, 9, 59, tzinfo=timezone.utc) if status == "success" else None,
        gateway_response="Successful" if status == "success" else None,
        metadata=metadata,
        raw={"status": status, "reference": reference},
    )


class StubGateway:
    """In-memory gateway: records calls and replays a scripted verification."""

    provider = "paystack"

    def __init__(
        self,
        verification: Union[VerificationResult, Exception, None] = None,
        *,
        initialize_error: Optional[Exception] = None,
    ) -> None:
        self.verification = verification
        self.initialize_error = initialize_error
        self.initialized: list[PaymentIntent] = []
        self.verified: list[str] = []

    async def initialize(self, intent: PaymentIntent) -> InitializedTransaction:
        self.initialized.append(intent)
        if self.initialize_error is not None:
            raise self.initialize_error
        return InitializedTransaction(
            authorization_url=f"https://checkout.paystack.com/{intent.reference.lower()}",
            access_code="acc_stub",
            reference=intent.reference,
        )

    async def verify(self, reference: str) -> VerificationResult:
        self.verified.append(reference)
        if isinstance(self.verification, Exception):
            raise self.verification
        assert self.verification is not None, "no scripted verification"
        return self.verification


class RecordingPromotionRepository(ListingPromotionRepository):
    def __init__(self) -> None:
        self.writes: list[tuple[UUID, ListingPromotionState]] = []
        self.fail_with: Optional[Exception] = None
        self.delay: float = 0.0

    async def apply_promotion(self, property_id: UUID, state: ListingPromotionState) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        self.writes.append((property_id, state))


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, repo: RecordingPromotionRepository) -> None:
        super().__init__()
        self._repo = repo
        self.commits = 0
        self.rollbacks = 0

    async def __aenter__(self) -> "FakeUnitOfWork":
        self.listing_promotion_repository = self._repo
        return self

    async def commit(self) -> None:
        self.commits += 1
        self._committed = True

    async def rollback(self) -> None:
        self.rollbacks += 1


class StepClock:
    """Deterministic clock advancing by `step` on every call."""

    def __init__(self, start: datetime, step: timedelta = timedelta(minutes=5)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def promotion_repo() -> RecordingPromotionRepository:
    return RecordingPromotionRepository()


@pytest.fixture
def uow_factory(promotion_repo):
    return lambda: FakeUnitOfWork(promotion_repo)


@pytest.fixture
def clock() -> StepClock:
    return StepClock(datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc))
