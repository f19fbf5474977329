"""
推广领域实体 - 推广意图、房源推广状态与推广套餐配置
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from domain.common.exceptions import DomainValidationException

# 推广时长上限（天），超出视为非法输入
MAX_PROMOTION_DURATION_DAYS = 3650


PROMOTION_PURPOSE = "property_promotion"


def _ensure_utc(dt: datetime) -> datetime:
    """确保时间为 UTC 时区"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class PromotionMetadata:
    """
    随支付渠道往返的推广意图

    tier_fee_major_units 仅供展示，结算金额以渠道返回的 amount 为准。
    """

    property_id: UUID
    tier_id: str
    tier_name: str
    tier_duration_days: int
    agent_id: UUID
    tier_fee_major_units: Optional[float] = None
    purpose: str = PROMOTION_PURPOSE

    def __post_init__(self) -> None:
        if not self.tier_id:
            raise DomainValidationException("tier_id is required", field="tier_id")
        if not self.tier_name:
            raise DomainValidationException("tier_name is required", field="tier_name")
        if isinstance(self.tier_duration_days, bool) or not isinstance(self.tier_duration_days, int):
            raise DomainValidationException("tier_duration_days must be an integer", field="tier_duration_days")
        if self.tier_duration_days <= 0:
            raise DomainValidationException("tier_duration_days must be positive", field="tier_duration_days")
        if self.tier_duration_days > MAX_PROMOTION_DURATION_DAYS:
            raise DomainValidationException(
                f"tier_duration_days must not exceed {MAX_PROMOTION_DURATION_DAYS}", field="tier_duration_days"
            )


@dataclass(frozen=True)
class ListingPromotionState:
    """
    房源记录中允许本模块修改的推广字段

    promotion_expires_at 始终由 promoted_at + duration_days 推导，不可单独设置。
    """

    promotion_tier_id: str
    promotion_tier_name: str
    promoted_at: datetime
    duration_days: int
    is_promoted: bool = field(default=True, init=False)

    def __post_init__(self) -> None:
        if not 0 < self.duration_days <= MAX_PROMOTION_DURATION_DAYS:
            raise DomainValidationException("duration_days out of range", field="duration_days")
        object.__setattr__(self, "promoted_at", _ensure_utc(self.promoted_at))

    @property
    def promotion_expires_at(self) -> datetime:
        return self.promoted_at + timedelta(days=self.duration_days)

    @classmethod
    def activate(cls, meta: PromotionMetadata, promoted_at: datetime) -> "ListingPromotionState":
        """由推广意图与生效时间计算新的推广状态（纯函数）"""
        return cls(
            promotion_tier_id=meta.tier_id,
            promotion_tier_name=meta.tier_name,
            promoted_at=promoted_at,
            duration_days=meta.tier_duration_days,
        )

    def as_columns(self) -> dict:
        return {
            "is_promoted": self.is_promoted,
            "promotion_tier_id": self.promotion_tier_id,
            "promotion_tier_name": self.promotion_tier_name,
            "promoted_at": self.promoted_at,
            "promotion_expires_at": self.promotion_expires_at,
        }


@dataclass(frozen=True)
class PromotionTier:
    """运营可配置的推广套餐"""

    id: str
    name: str
    fee: float  # major units (NGN)
    duration: int  # days
    description: str = ""


@dataclass(frozen=True)
class PromotionTierConfig:
    promotions_enabled: bool = False
    tiers: tuple[PromotionTier, ...] = ()

    def find(self, tier_id: str) -> Optional[PromotionTier]:
        for tier in self.tiers:
            if tier.id == tier_id:
                return tier
        return None
