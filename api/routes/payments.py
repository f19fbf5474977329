"""
Payments API routes.

Thin wrappers over PaymentService: the inbound contract
(InitializePaymentResponse / VerifyPaymentResponse) is returned as-is so
dashboards can branch on `success` and `payment_successful`.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_payment_service, get_task_dispatcher
from application.dtos.payments import (
    InitializePaymentResponse,
    PaymentIntent,
    VerifyPaymentResponse,
)
from application.services.payment_service import PaymentService
from core.logging_config import get_logger
from core.response import success_response
from domain.common.exceptions import PaymentValidationError
from infrastructure.tasks.utils.dispatcher import TaskDispatcher


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


@router.post("/initialize", summary="Initialize payment", response_model=InitializePaymentResponse)
async def initialize_payment(
    payload: PaymentIntent,
    service: PaymentService = Depends(get_payment_service),
):
    return await service.initialize_payment(payload)


@router.get("/verify/{reference}", summary="Verify payment", response_model=VerifyPaymentResponse)
async def verify_payment(
    reference: str,
    service: PaymentService = Depends(get_payment_service),
):
    return await service.verify_payment(reference)


@router.get("/callback", summary="Provider redirect after checkout", response_model=VerifyPaymentResponse)
async def payment_callback(
    reference: Optional[str] = Query(default=None),
    trxref: Optional[str] = Query(default=None),
    service: PaymentService = Depends(get_payment_service),
):
    # Paystack appends both `reference` and `trxref`; either is enough
    ref = reference or trxref or ""
    logger.info("payment_callback_received", reference=ref)
    return await service.verify_payment(ref)


@router.post("/reverify/{reference}", summary="Schedule a background re-verification")
async def schedule_reverify(
    reference: str,
    dispatcher: TaskDispatcher = Depends(get_task_dispatcher),
):
    reference = reference.strip()
    if not reference:
        raise PaymentValidationError("Payment reference is required to verify", field="reference")
    task_id = dispatcher.enqueue_promotion_reverify(reference)
    logger.info("promotion_reverify_scheduled", reference=reference, task_id=task_id)
    return success_response(
        data={"reference": reference, "task_id": task_id},
        message="Re-verification scheduled",
    )
