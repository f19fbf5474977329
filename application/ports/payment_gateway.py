"""
Payment gateway port (application/ports) exposing a replaceable protocol.

Application depends on this Protocol; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.payments import (
    InitializedTransaction,
    PaymentIntent,
    VerificationResult,
)


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for third-party payment providers.

    Each call performs exactly one outbound request and mutates no local
    state. Errors use the payment taxonomy in domain.common.exceptions.
    """

    provider: str

    async def initialize(self, intent: PaymentIntent) -> InitializedTransaction: ...

    async def verify(self, reference: str) -> VerificationResult: ...
