"""
Application service exposing the payment contract to the rest of the app.

Dashboards and forms call `initialize_payment` / `verify_payment` and only
branch on the `success` / `payment_successful` flags; failures come back as
`success=False` with a message instead of raising. The gateway and the
activation service are injected from the composition root (API/tasks).
"""
from __future__ import annotations

from typing import Any, Mapping, Union

from pydantic import ValidationError

from application.dtos.payments import (
    InitializePaymentResponse,
    PaymentIntent,
    VerifyPaymentResponse,
)
from application.ports.payment_gateway import PaymentGateway
from application.services.promotion_service import PromotionActivationService
from core.logging_config import get_logger
from domain.common.exceptions import (
    BusinessException,
    PaymentConfigurationError,
    PaymentValidationError,
)


logger = get_logger(__name__)

NOT_CONFIGURED_MESSAGE = "Payment service is not configured on the server."


def _validation_message(exc: ValidationError) -> str:
    reasons = ", ".join(str(err.get("msg")) for err in exc.errors())
    return f"Invalid input: {reasons}"


class PaymentService:
    def __init__(self, gateway: PaymentGateway, activation: PromotionActivationService) -> None:
        self.gateway = gateway
        self.activation = activation

    async def initialize_payment(
        self, intent: Union[PaymentIntent, Mapping[str, Any]]
    ) -> InitializePaymentResponse:
        try:
            if not isinstance(intent, PaymentIntent):
                intent = PaymentIntent.model_validate(intent)
        except ValidationError as exc:
            return InitializePaymentResponse(success=False, message=_validation_message(exc))

        logger.info(
            "payment_initialize_request",
            reference=intent.reference,
            provider=self.gateway.provider,
            amount=intent.amount_minor_units,
        )
        try:
            tx = await self.gateway.initialize(intent)
        except PaymentConfigurationError as exc:
            logger.error("payment_not_configured", provider=self.gateway.provider, error=exc.message)
            return InitializePaymentResponse(success=False, message=NOT_CONFIGURED_MESSAGE)
        except PaymentValidationError as exc:
            return InitializePaymentResponse(success=False, message=f"Invalid input: {exc.message}")
        except BusinessException as exc:
            logger.error(
                "payment_initialize_failed",
                reference=intent.reference,
                error_type=exc.error_type,
                error=exc.message,
            )
            return InitializePaymentResponse(success=False, message=exc.message)

        logger.info("payment_initialize_response", reference=tx.reference, provider=self.gateway.provider)
        return InitializePaymentResponse(
            success=True,
            message="Authorization URL created",
            authorization_url=tx.authorization_url,
            access_code=tx.access_code,
            reference=tx.reference,
        )

    async def verify_payment(self, reference: str) -> VerifyPaymentResponse:
        if not (reference or "").strip():
            return VerifyPaymentResponse(
                success=False, message="Invalid input: Payment reference is required to verify."
            )
        try:
            outcome = await self.activation.verify_and_activate(reference)
        except PaymentConfigurationError as exc:
            logger.error("payment_not_configured", provider=self.gateway.provider, error=exc.message)
            return VerifyPaymentResponse(
                success=False,
                message=NOT_CONFIGURED_MESSAGE,
                data={"reference": reference, "error_type": exc.error_type},
            )
        except BusinessException as exc:
            logger.warning(
                "payment_verify_failed",
                reference=reference,
                error_type=exc.error_type,
                error=exc.message,
            )
            return VerifyPaymentResponse(
                success=False,
                message=exc.message,
                data={"reference": reference, "error_type": exc.error_type},
            )

        verification = outcome.verification
        if outcome.warning:
            message = outcome.warning
        elif outcome.promotion_applied:
            message = "Payment verified and listing promotion activated"
        elif outcome.payment_verified:
            message = "Payment verified"
        else:
            message = verification.gateway_response or f"Payment {verification.status}"
        return VerifyPaymentResponse(
            success=True,
            message=message,
            payment_successful=outcome.payment_verified,
            promotion_applied=outcome.promotion_applied,
            warning=outcome.warning,
            data=outcome.model_dump(mode="json", exclude={"verification": {"raw"}}),
        )

    async def aclose(self) -> None:
        # Best-effort close underlying resources
        close = getattr(self.gateway, "aclose", None)
        if callable(close):
            await close()
