"""
平台设置数据库模型（单行表）
推广套餐配置保存在 promotion_tiers JSON 列，由运营后台编辑
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON, text
from datetime import datetime, timezone

from .base import Base


class PlatformSettingsModel(Base):
    __tablename__ = "platform_settings"

    id = Column(Integer, primary_key=True)
    site_name = Column(String(200), nullable=True, comment="站点名称")
    default_currency = Column(String(3), nullable=True, default="NGN", comment="默认币种")
    promotions_enabled = Column(
        Boolean, nullable=True, default=False, server_default=text("false"), comment="是否开启推广"
    )
    # [{"id", "name", "fee", "duration", "description"}, ...]
    promotion_tiers = Column(JSON, nullable=True, comment="推广套餐配置")
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )
