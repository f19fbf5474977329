"""Listing promotion domain exports."""
from .entity import (
    PROMOTION_PURPOSE,
    ListingPromotionState,
    PromotionMetadata,
    PromotionTier,
    PromotionTierConfig,
)
from .repository import ListingPromotionRepository, PromotionTierRepository

__all__ = [
    "PROMOTION_PURPOSE",
    "ListingPromotionState",
    "PromotionMetadata",
    "PromotionTier",
    "PromotionTierConfig",
    "ListingPromotionRepository",
    "PromotionTierRepository",
]
