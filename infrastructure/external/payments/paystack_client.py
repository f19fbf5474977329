"""
Paystack Transactions adapter over the REST API (httpx).

Endpoints used:
- POST /transaction/initialize  -> authorization_url, access_code, reference
- GET  /transaction/verify/{reference}

Both answer with the envelope {status: bool, message: str, data: {...}}; a
false `status` or a non-2xx code is a provider error. The secret key is
read from settings on every call.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from application.dtos.payments import (
    InitializedTransaction,
    PaymentIntent,
    VerificationResult,
)
from core.settings import PaymentSettings
from domain.common.exceptions import (
    PaymentConfigurationError,
    PaymentNotFoundError,
    PaymentProviderError,
    PaymentValidationError,
)
from domain.promotion.codec import decode_promotion_metadata
from domain.promotion.entity import PROMOTION_PURPOSE
from infrastructure.external.payments.base import BasePaymentClient


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value:
        return None
    try:
        ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


class PaystackClient(BasePaymentClient):
    provider = "paystack"

    def _secret_key(self, cfg: PaymentSettings) -> str:
        key = (cfg.paystack.secret_key or "").strip()
        if not key:
            raise PaymentConfigurationError(
                "PAYSTACK__SECRET_KEY not configured", provider=self.provider
            )
        return key

    async def _send(
        self,
        method: str,
        path: str,
        *,
        cfg: PaymentSettings,
        reference: str,
        json: Optional[dict[str, Any]] = None,
    ) -> tuple[httpx.Response, Any]:
        headers = {
            "Authorization": f"Bearer {self._secret_key(cfg)}",
            "Accept": "application/json",
        }
        url = f"{cfg.paystack.base_url.rstrip('/')}{path}"
        try:
            async with self.client() as client:
                resp = await client.request(
                    method, url, json=json, headers=headers, timeout=self.timeouts(cfg)
                )
        except httpx.TimeoutException as exc:
            raise PaymentProviderError(
                f"Payment provider timed out: {exc.__class__.__name__}",
                provider=self.provider,
                reference=reference,
            ) from exc
        except httpx.HTTPError as exc:
            raise PaymentProviderError(
                f"Payment provider unreachable: {exc}",
                provider=self.provider,
                reference=reference,
            ) from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        return resp, payload

    def _unwrap(self, resp: httpx.Response, payload: Any, *, reference: str) -> dict[str, Any]:
        """Return envelope `data` or raise with the provider message verbatim."""
        if not isinstance(payload, dict):
            raise PaymentProviderError(
                f"Malformed response from payment provider (HTTP {resp.status_code})",
                provider=self.provider,
                reference=reference,
                status_code=resp.status_code,
                details={"body": resp.text[:500]},
            )
        message = str(payload.get("message") or "")
        if not resp.is_success or payload.get("status") is not True:
            raise PaymentProviderError(
                message or f"Payment provider request failed (HTTP {resp.status_code})",
                provider=self.provider,
                reference=reference,
                status_code=resp.status_code,
            )
        data = payload.get("data")
        if not isinstance(data, dict):
            raise PaymentProviderError(
                "Malformed response from payment provider: missing data",
                provider=self.provider,
                reference=reference,
                status_code=resp.status_code,
            )
        return data

    @staticmethod
    def _validate_intent(intent: PaymentIntent) -> PaymentIntent:
        try:
            checked = PaymentIntent.model_validate(intent.model_dump(mode="json"))
        except ValidationError as exc:
            first = exc.errors()[0] if exc.errors() else {}
            field = ".".join(str(p) for p in first.get("loc", ())) or None
            raise PaymentValidationError(
                f"Invalid payment intent: {first.get('msg', 'validation failed')}", field=field
            ) from exc
        meta = checked.metadata or {}
        if meta.get("purpose") == PROMOTION_PURPOSE and decode_promotion_metadata(meta) is None:
            raise PaymentValidationError(
                "Promotion metadata is missing required fields", field="metadata"
            )
        return checked

    async def initialize(self, intent: PaymentIntent) -> InitializedTransaction:  # type: ignore[override]
        cfg = self._settings()
        self._secret_key(cfg)
        intent = self._validate_intent(intent)

        body: dict[str, Any] = {
            "email": str(intent.payer_email),
            "amount": intent.amount_minor_units,
            "reference": intent.reference,
        }
        callback_url = str(intent.callback_url) if intent.callback_url else cfg.paystack.callback_url
        if callback_url:
            body["callback_url"] = callback_url
        if intent.metadata is not None:
            body["metadata"] = intent.metadata

        self._log("paystack_initialize_request", reference=intent.reference, amount=intent.amount_minor_units)
        resp, payload = await self._send(
            "POST", "/transaction/initialize", cfg=cfg, reference=intent.reference, json=body
        )
        data = self._unwrap(resp, payload, reference=intent.reference)
        authorization_url = data.get("authorization_url")
        access_code = data.get("access_code")
        if not authorization_url or not access_code:
            raise PaymentProviderError(
                "Malformed response from payment provider: missing authorization_url",
                provider=self.provider,
                reference=intent.reference,
                status_code=resp.status_code,
            )
        self._log("paystack_initialize_response", reference=intent.reference)
        return InitializedTransaction(
            authorization_url=str(authorization_url),
            access_code=str(access_code),
            reference=str(data.get("reference") or intent.reference),
        )

    async def verify(self, reference: str) -> VerificationResult:  # type: ignore[override]
        cfg = self._settings()
        self._secret_key(cfg)
        reference = (reference or "").strip()
        if not reference:
            raise PaymentValidationError("Payment reference is required to verify", field="reference")

        self._log("paystack_verify_request", reference=reference)
        resp, payload = await self._send(
            "GET", f"/transaction/verify/{quote(reference, safe='')}", cfg=cfg, reference=reference
        )
        message = str(payload.get("message") or "") if isinstance(payload, dict) else ""
        if resp.status_code == 404 or "not found" in message.lower():
            raise PaymentNotFoundError(
                reference, provider=self.provider, message=message or "Transaction reference not found"
            )
        data = self._unwrap(resp, payload, reference=reference)

        echoed = data.get("reference")
        if echoed is not None and str(echoed) != reference:
            raise PaymentProviderError(
                "Verification response does not match the requested reference",
                provider=self.provider,
                reference=reference,
                details={"echoed_reference": str(echoed)},
            )
        amount = data.get("amount")
        if (
            isinstance(amount, bool)
            or not isinstance(amount, (int, float))
            or not math.isfinite(amount)
            or "status" not in data
        ):
            raise PaymentProviderError(
                "Malformed verification data from payment provider",
                provider=self.provider,
                reference=reference,
            )

        try:
            result = VerificationResult(
                status=self._map_status(str(data.get("status"))),
                reference=reference,
                amount_minor_units=int(amount),
                currency=str(data.get("currency") or cfg.paystack.currency),
                paid_at=_parse_timestamp(data.get("paid_at") or data.get("paidAt")),
                gateway_response=data.get("gateway_response"),
                metadata=data.get("metadata"),
                raw=data,
            )
        except ValidationError as exc:
            raise PaymentProviderError(
                "Malformed verification data from payment provider",
                provider=self.provider,
                reference=reference,
                details={"errors": [str(err.get("msg")) for err in exc.errors()]},
            ) from exc
        self._log("paystack_verify_response", reference=reference, status=result.status)
        return result
