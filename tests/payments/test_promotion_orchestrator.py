import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from application.services.promotion_service import (
    PROMOTION_NOT_RECORDED_WARNING,
    PromotionActivationService,
)
from conftest import PROPERTY_ID, REFERENCE, StubGateway, make_verification, promotion_metadata
from domain.common.exceptions import (
    PaymentNotFoundError,
    PaymentProviderError,
    PromotionPersistenceError,
)


def _service(gateway, uow_factory, clock, **kwargs) -> PromotionActivationService:
    return PromotionActivationService(gateway=gateway, uow_factory=uow_factory, clock=clock, **kwargs)


@pytest.mark.asyncio
async def test_successful_promotion_payment_activates_listing(uow_factory, promotion_repo, clock):
    gateway = StubGateway(make_verification(metadata=promotion_metadata()))
    outcome = await _service(gateway, uow_factory, clock).verify_and_activate(REFERENCE)

    assert outcome.state == "promotion_applied"
    assert outcome.payment_verified and outcome.promotion_applied
    assert outcome.warning is None
    assert outcome.property_id == PROPERTY_ID
    assert outcome.promotion.promotion_tier_id == "premium"
    assert outcome.promotion.promotion_expires_at == datetime(2024, 5, 15, 10, 0, tzinfo=timezone.utc)

    assert len(promotion_repo.writes) == 1
    property_id, state = promotion_repo.writes[0]
    assert property_id == PROPERTY_ID
    assert state.is_promoted is True
    assert state.promotion_tier_name == "Premium"
    assert state.promoted_at == datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)
    assert gateway.verified == [REFERENCE]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", ["abandoned", "failed", "pending"])
async def test_unsuccessful_payment_never_touches_listing(status, uow_factory, promotion_repo, clock):
    gateway = StubGateway(make_verification(status, metadata=promotion_metadata()))
    outcome = await _service(gateway, uow_factory, clock).verify_and_activate(REFERENCE)

    assert outcome.state == "gateway_confirmed_failed"
    assert outcome.payment_verified is False
    assert outcome.promotion_applied is False
    assert outcome.verification.status == status
    assert promotion_repo.writes == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "metadata",
    [
        None,
        {"purpose": "featured_listing"},
        promotion_metadata(tier_duration="0"),
        promotion_metadata(tier_duration="3000000"),
        {k: v for k, v in promotion_metadata().items() if k != "property_id"},
    ],
)
async def test_non_promotion_payment_is_verified_without_write(metadata, uow_factory, promotion_repo, clock):
    gateway = StubGateway(make_verification(metadata=metadata))
    outcome = await _service(gateway, uow_factory, clock).verify_and_activate(REFERENCE)

    assert outcome.state == "promotion_skipped"
    assert outcome.payment_verified is True
    assert outcome.promotion_applied is False
    assert promotion_repo.writes == []


@pytest.mark.asyncio
async def test_store_failure_is_reported_as_warning(uow_factory, promotion_repo, clock):
    promotion_repo.fail_with = PromotionPersistenceError("Listing not found for promotion update")
    gateway = StubGateway(make_verification(metadata=promotion_metadata()))
    outcome = await _service(gateway, uow_factory, clock).verify_and_activate(REFERENCE)

    assert outcome.state == "promotion_not_recorded"
    assert outcome.payment_verified is True
    assert outcome.promotion_applied is False
    assert outcome.warning == PROMOTION_NOT_RECORDED_WARNING
    assert outcome.property_id == PROPERTY_ID


@pytest.mark.asyncio
async def test_unexpected_store_error_is_reported_as_warning(uow_factory, promotion_repo, clock):
    promotion_repo.fail_with = RuntimeError("connection reset")
    gateway = StubGateway(make_verification(metadata=promotion_metadata()))
    outcome = await _service(gateway, uow_factory, clock).verify_and_activate(REFERENCE)
    assert outcome.state == "promotion_not_recorded"
    assert outcome.warning == PROMOTION_NOT_RECORDED_WARNING


@pytest.mark.asyncio
async def test_store_timeout_is_reported_as_warning(uow_factory, promotion_repo, clock):
    promotion_repo.delay = 1.0
    gateway = StubGateway(make_verification(metadata=promotion_metadata()))
    outcome = await _service(gateway, uow_factory, clock, store_timeout=0.05).verify_and_activate(REFERENCE)

    assert outcome.state == "promotion_not_recorded"
    assert outcome.payment_verified is True
    assert promotion_repo.writes == []


@pytest.mark.asyncio
async def test_repeated_verification_converges_to_same_promotion(uow_factory, promotion_repo, clock):
    gateway = StubGateway(make_verification(metadata=promotion_metadata()))
    service = _service(gateway, uow_factory, clock)

    first = await service.verify_and_activate(REFERENCE)
    second = await service.verify_and_activate(REFERENCE)

    assert first.state == second.state == "promotion_applied"
    (pid_1, state_1), (pid_2, state_2) = promotion_repo.writes
    assert pid_1 == pid_2 == PROPERTY_ID
    columns_1, columns_2 = state_1.as_columns(), state_2.as_columns()
    for key in ("is_promoted", "promotion_tier_id", "promotion_tier_name"):
        assert columns_1[key] == columns_2[key]
    # Last write wins on the activation time
    assert state_2.promoted_at > state_1.promoted_at
    assert state_2.promotion_expires_at - state_2.promoted_at == state_1.promotion_expires_at - state_1.promoted_at


@pytest.mark.asyncio
async def test_concurrent_verifications_do_not_interfere(uow_factory, promotion_repo, clock):
    promotion_repo.delay = 0.01
    gateway = StubGateway(make_verification(metadata=promotion_metadata()))
    service = _service(gateway, uow_factory, clock)

    outcomes = await asyncio.gather(*(service.verify_and_activate(REFERENCE) for _ in range(3)))

    assert all(o.state == "promotion_applied" for o in outcomes)
    assert len(promotion_repo.writes) == 3
    assert {state.promotion_tier_id for _, state in promotion_repo.writes} == {"premium"}


@pytest.mark.asyncio
async def test_provider_error_propagates_without_write(uow_factory, promotion_repo, clock):
    gateway = StubGateway(PaymentProviderError("Gateway timeout", provider="paystack", reference=REFERENCE))
    with pytest.raises(PaymentProviderError):
        await _service(gateway, uow_factory, clock).verify_and_activate(REFERENCE)
    assert promotion_repo.writes == []


@pytest.mark.asyncio
async def test_unknown_reference_propagates_not_found(uow_factory, promotion_repo, clock):
    gateway = StubGateway(PaymentNotFoundError("HLC-PROP-FORGED", provider="paystack"))
    with pytest.raises(PaymentNotFoundError):
        await _service(gateway, uow_factory, clock).verify_and_activate("HLC-PROP-FORGED")
    assert promotion_repo.writes == []


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_abort_store_write(uow_factory, promotion_repo, clock):
    promotion_repo.delay = 0.1
    gateway = StubGateway(make_verification(metadata=promotion_metadata()))
    service = _service(gateway, uow_factory, clock)
    task = asyncio.create_task(service.verify_and_activate(REFERENCE))

    await asyncio.sleep(0.02)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert len(service._inflight_writes) == 1

    await asyncio.sleep(0.2)
    assert service._inflight_writes == set()
    assert len(promotion_repo.writes) == 1
    assert promotion_repo.writes[0][0] == PROPERTY_ID


@pytest.mark.asyncio
async def test_premium_spotlight_scenario(uow_factory, promotion_repo, clock):
    metadata = {
        "property_id": "11111111-1111-1111-1111-111111111111",
        "tier_id": "premium",
        "tier_name": "Premium Spotlight",
        "tier_duration": "14",
        "purpose": "property_promotion",
        "agent_id": "22222222-2222-2222-2222-222222222222",
    }
    service = _service(StubGateway(make_verification(metadata=metadata)), uow_factory, clock)
    outcome = await service.verify_and_activate("HLC-PROP-9F3A")

    assert outcome.payment_verified and outcome.promotion_applied
    ((property_id, state),) = promotion_repo.writes
    assert str(property_id) == "11111111-1111-1111-1111-111111111111"
    assert state.is_promoted is True
    assert state.promotion_tier_name == "Premium Spotlight"
    assert state.promotion_expires_at - state.promoted_at == timedelta(days=14)

    abandoned = _service(StubGateway(make_verification("abandoned", metadata=metadata)), uow_factory, clock)
    outcome = await abandoned.verify_and_activate("HLC-PROP-9F3A")
    assert outcome.payment_verified is False
    assert len(promotion_repo.writes) == 1
