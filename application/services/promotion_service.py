"""
Application services for listing promotions.

PromotionActivationService verifies a payment reference with the gateway and,
when the payment succeeded and carries promotion metadata, writes the new
promotion state onto the listing. The write is a single overwrite keyed by
property id whose value depends only on the metadata and the activation
time, so duplicate or concurrent verifications of the same reference
converge without locks or a ledger.

PromotionCheckoutService turns a chosen tier into a PaymentIntent and
initializes it with the gateway.
"""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional
from uuid import UUID

from application.dtos.payments import (
    InitializedTransaction,
    PaymentIntent,
    PromotionActivationResult,
    PromotionCheckoutRequest,
    PromotionStateDTO,
    VerificationResult,
)
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.common.exceptions import (
    PaymentValidationError,
    PromotionPersistenceError,
    PromotionTierNotFoundError,
    PromotionsDisabledError,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.promotion.codec import decode_promotion_metadata, encode_promotion_metadata
from domain.promotion.entity import ListingPromotionState, PromotionMetadata, PromotionTierConfig


logger = get_logger(__name__)

PROMOTION_NOT_RECORDED_WARNING = (
    "Payment verified but the listing promotion was not recorded; manual reconciliation required"
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _state_dto(state: ListingPromotionState) -> PromotionStateDTO:
    return PromotionStateDTO(
        is_promoted=state.is_promoted,
        promotion_tier_id=state.promotion_tier_id,
        promotion_tier_name=state.promotion_tier_name,
        promoted_at=state.promoted_at,
        promotion_expires_at=state.promotion_expires_at,
    )


class PromotionActivationService:
    def __init__(
        self,
        gateway: PaymentGateway,
        uow_factory: Callable[[], AbstractUnitOfWork],
        *,
        clock: Callable[[], datetime] = _utcnow,
        store_timeout: float = 10.0,
    ) -> None:
        self.gateway = gateway
        self._uow_factory = uow_factory
        self._clock = clock
        self._store_timeout = store_timeout
        # Strong references for shielded writes that outlive a cancelled caller
        self._inflight_writes: set[asyncio.Task] = set()

    async def verify_and_activate(self, reference: str) -> PromotionActivationResult:
        # Provider/transport errors propagate unchanged; retrying is the caller's call
        verification = await self.gateway.verify(reference)

        if not verification.is_successful:
            logger.info(
                "promotion_payment_not_successful",
                reference=verification.reference,
                status=verification.status,
            )
            return PromotionActivationResult(
                reference=verification.reference,
                payment_verified=False,
                promotion_applied=False,
                state="gateway_confirmed_failed",
                verification=verification,
            )

        meta = decode_promotion_metadata(verification.metadata)
        if meta is None:
            logger.info("promotion_skipped", reference=verification.reference)
            return PromotionActivationResult(
                reference=verification.reference,
                payment_verified=True,
                promotion_applied=False,
                state="promotion_skipped",
                verification=verification,
            )

        state = ListingPromotionState.activate(meta, self._clock())
        applied = await self._apply_promotion(meta, state, verification)
        if not applied:
            return PromotionActivationResult(
                reference=verification.reference,
                payment_verified=True,
                promotion_applied=False,
                state="promotion_not_recorded",
                property_id=meta.property_id,
                warning=PROMOTION_NOT_RECORDED_WARNING,
                verification=verification,
            )

        logger.info(
            "promotion_applied",
            reference=verification.reference,
            property_id=str(meta.property_id),
            tier_id=meta.tier_id,
            expires_at=state.promotion_expires_at.isoformat(),
        )
        return PromotionActivationResult(
            reference=verification.reference,
            payment_verified=True,
            promotion_applied=True,
            state="promotion_applied",
            property_id=meta.property_id,
            promotion=_state_dto(state),
            verification=verification,
        )

    async def _write(self, property_id: UUID, state: ListingPromotionState) -> None:
        async with self._uow_factory() as uow:
            await uow.listing_promotion_repository.apply_promotion(property_id, state)

    async def _apply_promotion(
        self,
        meta: PromotionMetadata,
        state: ListingPromotionState,
        verification: VerificationResult,
    ) -> bool:
        """Run the store write; False means the payment stands but the write did not."""
        write = asyncio.ensure_future(self._write(meta.property_id, state))
        self._inflight_writes.add(write)
        write.add_done_callback(self._inflight_writes.discard)
        try:
            await asyncio.wait_for(asyncio.shield(write), timeout=self._store_timeout)
            return True
        except asyncio.CancelledError:
            # Payment is already confirmed: let the write finish, but say so
            logger.warning(
                "promotion_activation_interrupted",
                reference=verification.reference,
                property_id=str(meta.property_id),
                write_done=write.done(),
            )
            raise
        except asyncio.TimeoutError:
            write.cancel()
            logger.error(
                "promotion_not_recorded",
                reference=verification.reference,
                property_id=str(meta.property_id),
                tier_id=meta.tier_id,
                error=f"store write exceeded {self._store_timeout}s",
            )
            return False
        except Exception as exc:
            error = exc.message if isinstance(exc, PromotionPersistenceError) else str(exc)
            logger.error(
                "promotion_not_recorded",
                reference=verification.reference,
                property_id=str(meta.property_id),
                tier_id=meta.tier_id,
                error=error,
                exc_info=not isinstance(exc, PromotionPersistenceError),
            )
            return False


def generate_reference(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


class PromotionCheckoutService:
    def __init__(
        self,
        gateway: PaymentGateway,
        tier_config_loader: Callable[[], Awaitable[PromotionTierConfig]],
        *,
        reference_prefix: str = "HLC-PROP",
    ) -> None:
        self.gateway = gateway
        self._tier_config_loader = tier_config_loader
        self._reference_prefix = reference_prefix

    async def get_tier_config(self) -> PromotionTierConfig:
        return await self._tier_config_loader()

    async def build_intent(self, req: PromotionCheckoutRequest) -> PaymentIntent:
        config = await self._tier_config_loader()
        if not config.promotions_enabled:
            raise PromotionsDisabledError()
        tier = config.find(req.tier_id)
        if tier is None:
            raise PromotionTierNotFoundError(req.tier_id)

        amount_minor_units = int(round(tier.fee * 100))
        if amount_minor_units <= 0:
            raise PaymentValidationError(
                f"Promotion tier {tier.id} has no payable fee", field="tier_id"
            )
        meta = PromotionMetadata(
            property_id=req.property_id,
            tier_id=tier.id,
            tier_name=tier.name,
            tier_duration_days=tier.duration,
            agent_id=req.agent_id,
            tier_fee_major_units=tier.fee,
        )
        return PaymentIntent(
            payer_email=req.payer_email,
            amount_minor_units=amount_minor_units,
            reference=req.reference or generate_reference(self._reference_prefix),
            callback_url=req.callback_url,
            metadata=encode_promotion_metadata(meta),
        )

    async def start_checkout(self, req: PromotionCheckoutRequest) -> InitializedTransaction:
        intent = await self.build_intent(req)
        logger.info(
            "promotion_checkout_request",
            reference=intent.reference,
            property_id=str(req.property_id),
            tier_id=req.tier_id,
            amount=intent.amount_minor_units,
        )
        return await self.gateway.initialize(intent)
