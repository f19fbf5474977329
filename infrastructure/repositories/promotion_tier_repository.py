"""
推广套餐配置仓储实现 - 读取 platform_settings 单行配置
"""
import json
import math
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.promotion.codec import coerce_duration_days
from domain.promotion.entity import PromotionTier, PromotionTierConfig
from domain.promotion.repository import PromotionTierRepository
from infrastructure.models.platform_settings import PlatformSettingsModel


logger = get_logger(__name__)


def _parse_tier(item: Any) -> Optional[PromotionTier]:
    if not isinstance(item, dict):
        return None
    # 时长须为正整数天（"14" 可以，14.7 不行）
    duration = coerce_duration_days(item.get("duration"))
    if duration is None:
        return None
    try:
        fee = float(item["fee"])
        tier = PromotionTier(
            id=str(item["id"]),
            name=str(item["name"]),
            fee=fee,
            duration=duration,
            description=str(item.get("description") or ""),
        )
    except (KeyError, TypeError, ValueError):
        return None
    if not tier.id or not math.isfinite(fee) or fee < 0:
        return None
    return tier


def parse_tiers(raw: Any) -> tuple[PromotionTier, ...]:
    """解析 promotion_tiers 列（JSON 数组或其字符串形式），跳过不合法条目"""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("promotion_tiers_unparseable")
            return ()
    if not isinstance(raw, list):
        return ()
    tiers = []
    for item in raw:
        tier = _parse_tier(item)
        if tier is None:
            logger.warning("promotion_tier_invalid", item=item)
            continue
        tiers.append(tier)
    return tuple(tiers)


class SQLAlchemyPromotionTierRepository(PromotionTierRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_tier_config(self) -> PromotionTierConfig:
        result = await self.session.execute(
            select(PlatformSettingsModel).order_by(PlatformSettingsModel.id).limit(1)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return PromotionTierConfig()
        return PromotionTierConfig(
            promotions_enabled=bool(row.promotions_enabled),
            tiers=parse_tiers(row.promotion_tiers),
        )
