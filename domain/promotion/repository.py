"""Repository abstractions for listing promotions and tier configuration."""
from __future__ import annotations

from abc import ABC, abstractmethod
from uuid import UUID

from .entity import ListingPromotionState, PromotionTierConfig


class ListingPromotionRepository(ABC):
    """Writes the promotion fields of a listing record."""

    @abstractmethod
    async def apply_promotion(self, property_id: UUID, state: ListingPromotionState) -> None:
        """Single conditional update keyed by property id.

        Re-applying the same state is a plain overwrite, so callers never
        read before writing. Raises PromotionPersistenceError on failure.
        """
        ...


class PromotionTierRepository(ABC):
    """Reads the admin-editable promotion tier configuration."""

    @abstractmethod
    async def get_tier_config(self) -> PromotionTierConfig:
        ...
