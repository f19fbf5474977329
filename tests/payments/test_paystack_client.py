import json
from datetime import datetime, timezone

import httpx
import pytest

from application.dtos.payments import PaymentIntent
from conftest import REFERENCE, promotion_metadata
from core.settings import PaymentSettings, PaystackSettings
from domain.common.exceptions import (
    PaymentConfigurationError,
    PaymentNotFoundError,
    PaymentProviderError,
    PaymentValidationError,
)
from infrastructure.external.payments.paystack_client import PaystackClient


def _settings(secret_key="sk_test_1", callback_url="https://listings.example.com/payments/callback"):
    return PaymentSettings(paystack=PaystackSettings(secret_key=secret_key, callback_url=callback_url))


class Recorder:
    """MockTransport handler returning a canned response and recording requests."""

    def __init__(self, status_code=200, payload=None, *, content=None, error=None):
        self.status_code = status_code
        self.payload = payload
        self.content = content
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.payload)


def _client(recorder, settings_loader=None) -> PaystackClient:
    return PaystackClient(
        settings_loader=settings_loader or _settings,
        transport=httpx.MockTransport(recorder),
    )


def _intent(**overrides) -> PaymentIntent:
    values = dict(
        payer_email="agent@example.com",
        amount_minor_units=1_500_000,
        reference=REFERENCE,
        metadata=promotion_metadata(),
    )
    values.update(overrides)
    return PaymentIntent(**values)


def _initialized(reference=REFERENCE):
    return {
        "status": True,
        "message": "Authorization URL created",
        "data": {
            "authorization_url": "https://checkout.paystack.com/abc123",
            "access_code": "abc123",
            "reference": reference,
        },
    }


def _verified(status="success", reference=REFERENCE, **extra):
    data = {
        "status": status,
        "reference": reference,
        "amount": 1_500_000,
        "currency": "NGN",
        "paid_at": "2024-05-01T09:59:00.000Z",
        "gateway_response": "Successful",
        "metadata": promotion_metadata(),
    }
    data.update(extra)
    return {"status": True, "message": "Verification successful", "data": data}


@pytest.mark.asyncio
async def test_initialize_posts_intent_with_bearer_token():
    recorder = Recorder(payload=_initialized())
    client = _client(recorder)
    tx = await client.initialize(_intent())
    await client.aclose()

    assert tx.reference == REFERENCE
    assert tx.authorization_url == "https://checkout.paystack.com/abc123"
    assert tx.access_code == "abc123"

    (request,) = recorder.requests
    assert request.method == "POST"
    assert str(request.url) == "https://api.paystack.co/transaction/initialize"
    assert request.headers["Authorization"] == "Bearer sk_test_1"
    body = json.loads(request.content)
    assert body["email"] == "agent@example.com"
    assert body["amount"] == 1_500_000
    assert body["reference"] == REFERENCE
    assert body["callback_url"] == "https://listings.example.com/payments/callback"
    assert body["metadata"]["purpose"] == "property_promotion"


@pytest.mark.asyncio
async def test_initialize_prefers_intent_callback_url():
    recorder = Recorder(payload=_initialized())
    await _client(recorder).initialize(_intent(callback_url="https://agents.example.com/done"))
    body = json.loads(recorder.requests[0].content)
    assert body["callback_url"] == "https://agents.example.com/done"


@pytest.mark.asyncio
async def test_missing_secret_key_fails_before_any_request():
    recorder = Recorder(payload=_initialized())
    client = _client(recorder, settings_loader=lambda: _settings(secret_key=""))
    with pytest.raises(PaymentConfigurationError):
        await client.initialize(_intent())
    with pytest.raises(PaymentConfigurationError):
        await client.verify(REFERENCE)
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_invalid_intent_is_rejected_locally():
    recorder = Recorder(payload=_initialized())
    bad = PaymentIntent.model_construct(
        payer_email="agent@example.com",
        amount_minor_units=0,
        reference=REFERENCE,
        callback_url=None,
        metadata=None,
    )
    with pytest.raises(PaymentValidationError) as exc_info:
        await _client(recorder).initialize(bad)
    assert exc_info.value.field == "amount_minor_units"
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_incomplete_promotion_metadata_is_rejected_locally():
    recorder = Recorder(payload=_initialized())
    with pytest.raises(PaymentValidationError):
        await _client(recorder).initialize(_intent(metadata={"purpose": "property_promotion", "tier_id": "premium"}))
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_initialize_surfaces_provider_message_on_error_status():
    recorder = Recorder(401, {"status": False, "message": "Invalid key"})
    with pytest.raises(PaymentProviderError) as exc_info:
        await _client(recorder).initialize(_intent())
    assert exc_info.value.message == "Invalid key"
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_initialize_rejects_status_false_envelope():
    recorder = Recorder(200, {"status": False, "message": "Duplicate Transaction Reference"})
    with pytest.raises(PaymentProviderError) as exc_info:
        await _client(recorder).initialize(_intent())
    assert exc_info.value.message == "Duplicate Transaction Reference"


@pytest.mark.asyncio
async def test_initialize_rejects_non_json_response():
    recorder = Recorder(502, content=b"<html>Bad Gateway</html>")
    with pytest.raises(PaymentProviderError) as exc_info:
        await _client(recorder).initialize(_intent())
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_initialize_rejects_missing_authorization_url():
    recorder = Recorder(payload={"status": True, "message": "ok", "data": {"reference": REFERENCE}})
    with pytest.raises(PaymentProviderError):
        await _client(recorder).initialize(_intent())


@pytest.mark.asyncio
async def test_transport_failure_becomes_provider_error():
    recorder = Recorder(error=httpx.ConnectError("connection refused"))
    with pytest.raises(PaymentProviderError) as exc_info:
        await _client(recorder).verify(REFERENCE)
    assert exc_info.value.reference == REFERENCE


@pytest.mark.asyncio
async def test_verify_returns_normalized_result():
    recorder = Recorder(payload=_verified())
    result = await _client(recorder).verify(REFERENCE)

    (request,) = recorder.requests
    assert request.method == "GET"
    assert request.url.path == f"/transaction/verify/{REFERENCE}"
    assert result.status == "success"
    assert result.is_successful
    assert result.reference == REFERENCE
    assert result.amount_minor_units == 1_500_000
    assert result.currency == "NGN"
    assert result.paid_at == datetime(2024, 5, 1, 9, 59, tzinfo=timezone.utc)
    assert result.metadata["property_id"] == promotion_metadata()["property_id"]
    assert result.raw["gateway_response"] == "Successful"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "provider_status,expected",
    [
        ("success", "success"),
        ("abandoned", "abandoned"),
        ("failed", "failed"),
        ("reversed", "failed"),
        ("ongoing", "pending"),
        ("queued", "pending"),
        ("something_new", "failed"),
    ],
)
async def test_verify_maps_provider_status(provider_status, expected):
    recorder = Recorder(payload=_verified(status=provider_status))
    result = await _client(recorder).verify(REFERENCE)
    assert result.status == expected


@pytest.mark.asyncio
async def test_verify_unknown_reference_raises_not_found():
    recorder = Recorder(400, {"status": False, "message": "Transaction reference not found"})
    with pytest.raises(PaymentNotFoundError) as exc_info:
        await _client(recorder).verify("HLC-PROP-FORGED")
    assert exc_info.value.reference == "HLC-PROP-FORGED"


@pytest.mark.asyncio
async def test_verify_rejects_mismatched_reference():
    recorder = Recorder(payload=_verified(reference="HLC-PROP-OTHER"))
    with pytest.raises(PaymentProviderError):
        await _client(recorder).verify(REFERENCE)


@pytest.mark.asyncio
async def test_verify_rejects_missing_amount():
    payload = _verified()
    del payload["data"]["amount"]
    with pytest.raises(PaymentProviderError):
        await _client(Recorder(payload=payload)).verify(REFERENCE)


@pytest.mark.asyncio
@pytest.mark.parametrize("gateway_response", [{"code": "00"}, ["Approved"], 0])
async def test_verify_rejects_mistyped_gateway_response(gateway_response):
    recorder = Recorder(payload=_verified(gateway_response=gateway_response))
    with pytest.raises(PaymentProviderError) as exc_info:
        await _client(recorder).verify(REFERENCE)
    assert exc_info.value.reference == REFERENCE
    assert "Malformed verification data" in exc_info.value.message


@pytest.mark.asyncio
async def test_verify_blank_reference_is_validation_error():
    recorder = Recorder(payload=_verified())
    with pytest.raises(PaymentValidationError):
        await _client(recorder).verify("   ")
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_secret_key_is_read_on_every_call():
    keys = iter(["sk_test_old", "sk_test_rotated"])
    recorder = Recorder(payload=_verified())
    client = _client(recorder, settings_loader=lambda: _settings(secret_key=next(keys)))

    await client.verify(REFERENCE)
    await client.verify(REFERENCE)

    assert [r.headers["Authorization"] for r in recorder.requests] == [
        "Bearer sk_test_old",
        "Bearer sk_test_rotated",
    ]
