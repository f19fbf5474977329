"""SQLAlchemy Unit of Work：一次 async with 对应一个会话、至多一个事务"""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.listing_promotion_repository import (
    SQLAlchemyListingPromotionRepository,
)
from infrastructure.repositories.promotion_tier_repository import (
    SQLAlchemyPromotionTierRepository,
)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    会话在进入时创建、退出时关闭；事务由首条语句自动开启

    readonly=True 时退出不提交，关闭会话即丢弃事务。
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self.session: Optional[AsyncSession] = None

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        self.session = self._session_factory()
        self.listing_promotion_repository = SQLAlchemyListingPromotionRepository(self.session)
        self.promotion_tier_repository = SQLAlchemyPromotionTierRepository(self.session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self.session is not None:
                await self.session.close()
            self.session = None
            self.listing_promotion_repository = None  # type: ignore[assignment]
            self.promotion_tier_repository = None  # type: ignore[assignment]

    async def commit(self) -> None:
        if not self._readonly and self.session is not None:
            await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self.session is not None and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False
