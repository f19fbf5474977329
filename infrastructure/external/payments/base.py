"""
Base payment client implementing shared concerns: http, timeouts, logging, mapping.

Concrete providers should subclass and implement provider-specific logic.
No retries happen here: a verification call that silently repeats is a
caller policy decision, not a transport detail.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Callable, Optional

import httpx

from core.logging_config import get_logger
from core.settings import PaymentSettings, load_payment_settings
from application.dtos.payments import (
    InitializedTransaction,
    PaymentIntent,
    VerificationResult,
)
from application.ports.payment_gateway import PaymentGateway
from shared.codes.payment_codes import PROVIDER_STATUS_TO_INTERNAL, STATUS_FAILED


logger = get_logger(__name__)


class BasePaymentClient(PaymentGateway):
    provider: str = "base"

    def __init__(
        self,
        *,
        settings_loader: Callable[[], PaymentSettings] = load_payment_settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings_loader = settings_loader
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _settings(self) -> PaymentSettings:
        # Re-read on every call so credential rotation needs no restart
        return self._settings_loader()

    @staticmethod
    def timeouts(cfg: PaymentSettings) -> httpx.Timeout:
        return httpx.Timeout(
            timeout=cfg.timeouts.total,
            connect=cfg.timeouts.connect,
            read=cfg.timeouts.read,
            write=cfg.timeouts.write,
        )

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(transport=self._transport)
        try:
            yield self._client
        finally:
            # Keep open for reuse; explicit aclose() will close.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    # Default implementations raise to force override where needed
    async def initialize(self, intent: PaymentIntent) -> InitializedTransaction:  # type: ignore[override]
        raise NotImplementedError

    async def verify(self, reference: str) -> VerificationResult:  # type: ignore[override]
        raise NotImplementedError

    # Helpers
    def _map_status(self, provider_status: str) -> str:
        mapping = PROVIDER_STATUS_TO_INTERNAL.get(self.provider, {})
        return mapping.get((provider_status or "").lower(), STATUS_FAILED)

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
