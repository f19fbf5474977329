"""
房源推广仓储实现 - 使用SQLAlchemy实现单条条件更新
"""
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import PromotionPersistenceError
from domain.promotion.entity import ListingPromotionState
from domain.promotion.repository import ListingPromotionRepository
from infrastructure.models.property import PropertyModel


logger = get_logger(__name__)


class SQLAlchemyListingPromotionRepository(ListingPromotionRepository):
    """房源推广仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def apply_promotion(self, property_id: UUID, state: ListingPromotionState) -> None:
        """UPDATE properties SET <promotion columns> WHERE id = :property_id"""
        stmt = (
            update(PropertyModel)
            .where(PropertyModel.id == property_id)
            .values(**state.as_columns())
            .execution_options(synchronize_session=False)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PromotionPersistenceError(
                f"Failed to update promotion for listing: {exc.__class__.__name__}",
                property_id=str(property_id),
            ) from exc
        if result.rowcount == 0:
            raise PromotionPersistenceError(
                "Listing not found for promotion update", property_id=str(property_id)
            )
        logger.info(
            "listing_promotion_written",
            property_id=str(property_id),
            tier_id=state.promotion_tier_id,
            expires_at=state.promotion_expires_at.isoformat(),
        )
