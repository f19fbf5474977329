"""
Celery tasks for payment reconciliation: re-verify a reference and re-apply
its promotion when an earlier attempt hit a provider outage or a failed
listing write.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Optional

from celery import shared_task
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from application.dtos.payments import PromotionActivationResult
from application.services.promotion_service import PromotionActivationService
from core.logging_config import get_logger
from core.settings import load_payment_settings
from domain.common.exceptions import PaymentProviderError


logger = get_logger(__name__)


def build_activation_service() -> PromotionActivationService:
    from infrastructure.external.payments import get_payment_gateway
    from infrastructure.unit_of_work import SQLAlchemyUnitOfWork

    cfg = load_payment_settings()
    return PromotionActivationService(
        gateway=get_payment_gateway(),
        uow_factory=SQLAlchemyUnitOfWork,
        store_timeout=cfg.store_timeout_seconds,
    )


async def reverify_promotion(
    reference: str,
    *,
    service_factory: Optional[Callable[[], PromotionActivationService]] = None,
    attempts: int = 3,
    base_backoff: float = 0.5,
    max_backoff: Optional[float] = 8.0,
) -> PromotionActivationResult:
    """Verify-and-activate with exponential backoff on provider errors only.

    Safe to repeat: the listing write is an idempotent overwrite.
    """
    service = (service_factory or build_activation_service)()
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=base_backoff, max=max_backoff or base_backoff),
            retry=retry_if_exception_type(PaymentProviderError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.info(
                        "promotion_reverify_retry",
                        reference=reference,
                        attempt=attempt.retry_state.attempt_number,
                    )
                return await service.verify_and_activate(reference)
    finally:
        close = getattr(service.gateway, "aclose", None)
        if callable(close):
            await close()


async def _reverify_in_worker(reference: str) -> PromotionActivationResult:
    from infrastructure.database import dispose_engine

    try:
        return await reverify_promotion(reference)
    finally:
        # Pooled connections are bound to this task's event loop
        await dispose_engine()


@shared_task(name="payments.reverify_promotion", bind=True, max_retries=3, default_retry_delay=60)
def task_reverify_promotion(self, reference: str):
    try:
        outcome = asyncio.run(_reverify_in_worker(reference))
    except PaymentProviderError as exc:
        logger.error("promotion_reverify_failed", reference=reference, error=exc.message)
        raise self.retry(exc=exc)
    logger.info(
        "promotion_reverified",
        reference=reference,
        state=outcome.state,
        payment_verified=outcome.payment_verified,
        promotion_applied=outcome.promotion_applied,
    )
    return {
        "reference": outcome.reference,
        "state": outcome.state,
        "payment_verified": outcome.payment_verified,
        "promotion_applied": outcome.promotion_applied,
        "warning": outcome.warning,
    }
