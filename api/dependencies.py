"""
API依赖项 - 支付网关、推广服务与任务分发
"""
from typing import AsyncIterator

from fastapi import Depends

from application.ports.payment_gateway import PaymentGateway
from application.services.payment_service import PaymentService
from application.services.promotion_service import (
    PromotionActivationService,
    PromotionCheckoutService,
)
from core.settings import load_payment_settings
from domain.promotion.entity import PromotionTierConfig
from infrastructure.external.payments import get_payment_gateway as build_payment_gateway
from infrastructure.tasks.utils.dispatcher import TaskDispatcher
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


async def get_payment_gateway() -> AsyncIterator[PaymentGateway]:
    """每个请求一个网关实例，请求结束时关闭底层 HTTP 连接"""
    gateway = build_payment_gateway()
    try:
        yield gateway
    finally:
        close = getattr(gateway, "aclose", None)
        if callable(close):
            await close()


async def get_activation_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PromotionActivationService:
    cfg = load_payment_settings()
    return PromotionActivationService(
        gateway=gateway,
        uow_factory=SQLAlchemyUnitOfWork,
        store_timeout=cfg.store_timeout_seconds,
    )


async def get_payment_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
    activation: PromotionActivationService = Depends(get_activation_service),
) -> PaymentService:
    return PaymentService(gateway=gateway, activation=activation)


async def load_tier_config() -> PromotionTierConfig:
    """从 platform_settings 读取推广档位（只读事务）"""
    async with SQLAlchemyUnitOfWork(readonly=True) as uow:
        return await uow.promotion_tier_repository.get_tier_config()


async def get_checkout_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PromotionCheckoutService:
    return PromotionCheckoutService(
        gateway=gateway,
        tier_config_loader=load_tier_config,
        reference_prefix=load_payment_settings().reference_prefix,
    )


async def get_task_dispatcher() -> TaskDispatcher:
    return TaskDispatcher()
