"""
推广API路由 - 档位查询与推广支付下单
"""
from fastapi import APIRouter, Depends

from api.dependencies import get_checkout_service
from application.dtos.payments import (
    InitializePaymentResponse,
    PromotionCheckoutRequest,
    PromotionTierConfigDTO,
    PromotionTierDTO,
)
from application.services.promotion_service import PromotionCheckoutService
from core.response import Response as ApiResponse, success_response


router = APIRouter(prefix="/promotions", tags=["Promotions"])


@router.get("/tiers", summary="推广档位", response_model=ApiResponse[PromotionTierConfigDTO])
async def list_tiers(service: PromotionCheckoutService = Depends(get_checkout_service)):
    config = await service.get_tier_config()
    data = PromotionTierConfigDTO(
        promotions_enabled=config.promotions_enabled,
        tiers=[
            PromotionTierDTO(
                id=tier.id,
                name=tier.name,
                fee=tier.fee,
                duration=tier.duration,
                description=tier.description,
            )
            for tier in config.tiers
        ],
    )
    return success_response(data=data)


@router.post("/checkout", summary="发起推广支付", response_model=InitializePaymentResponse)
async def start_checkout(
    payload: PromotionCheckoutRequest,
    service: PromotionCheckoutService = Depends(get_checkout_service),
):
    """
    为房源选择推广档位并创建支付

    - 推广关闭：409
    - 档位不存在：404
    - 网关错误：502，由全局异常处理器渲染
    """
    tx = await service.start_checkout(payload)
    return InitializePaymentResponse(
        success=True,
        message="Authorization URL created",
        authorization_url=tx.authorization_url,
        access_code=tx.access_code,
        reference=tx.reference,
    )
