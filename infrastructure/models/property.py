"""
房源数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型；本服务只写推广相关列
"""
from sqlalchemy import (
    Column, String, Numeric, DateTime, Boolean, Index, Uuid, text
)
from datetime import datetime, timezone
import uuid

from .base import Base


class PropertyModel(Base):
    """
    房源数据库模型（properties 表）

    推广相关列由支付核验流程通过单条 UPDATE ... WHERE id = ? 写入
    """
    __tablename__ = "properties"

    # 主键
    id = Column(Uuid, primary_key=True, default=uuid.uuid4, comment="房源ID")
    human_readable_id = Column(String(50), nullable=True, unique=True, comment="可读编号")

    # 基本信息
    title = Column(String(255), nullable=False, comment="标题")
    agent_id = Column(Uuid, nullable=True, index=True, comment="经纪人ID")
    status = Column(String(30), nullable=False, default="pending", comment="审核状态")
    price = Column(Numeric(precision=15, scale=2), nullable=False, default=0, comment="价格")

    # 推广信息
    is_promoted = Column(
        Boolean, nullable=False, default=False, server_default=text("false"), comment="是否推广中"
    )
    promotion_tier_id = Column(String(100), nullable=True, comment="推广套餐ID")
    promotion_tier_name = Column(String(200), nullable=True, comment="推广套餐名称")
    promoted_at = Column(DateTime(timezone=True), nullable=True, comment="推广生效时间")
    promotion_expires_at = Column(DateTime(timezone=True), nullable=True, comment="推广到期时间")

    # 时间戳
    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    __table_args__ = (
        Index("ix_properties_promoted_expires", "is_promoted", "promotion_expires_at"),
    )

    def __repr__(self):
        return (
            f"<PropertyModel(id={self.id}, title='{self.title}', "
            f"is_promoted={self.is_promoted}, tier='{self.promotion_tier_id}')>"
        )
