"""add_listing_promotion_tables

Revision ID: 4c1e8a2b7d10
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4c1e8a2b7d10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'properties',
        sa.Column('id', sa.Uuid(), nullable=False, comment='房源ID'),
        sa.Column('human_readable_id', sa.String(length=50), nullable=True, comment='可读编号'),
        sa.Column('title', sa.String(length=255), nullable=False, comment='标题'),
        sa.Column('agent_id', sa.Uuid(), nullable=True, comment='经纪人ID'),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='pending', comment='审核状态'),
        sa.Column('price', sa.Numeric(precision=15, scale=2), nullable=False, server_default='0', comment='价格'),
        sa.Column('is_promoted', sa.Boolean(), nullable=False, server_default=sa.text('false'), comment='是否推广中'),
        sa.Column('promotion_tier_id', sa.String(length=100), nullable=True, comment='推广套餐ID'),
        sa.Column('promotion_tier_name', sa.String(length=200), nullable=True, comment='推广套餐名称'),
        sa.Column('promoted_at', sa.DateTime(timezone=True), nullable=True, comment='推广生效时间'),
        sa.Column('promotion_expires_at', sa.DateTime(timezone=True), nullable=True, comment='推广到期时间'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('id', name='pk_properties'),
        sa.UniqueConstraint('human_readable_id', name='uq_properties_human_readable_id'),
        comment='房源表；本服务只写推广相关列',
    )
    op.create_index('ix_properties_agent_id', 'properties', ['agent_id'], unique=False)
    op.create_index('ix_properties_promoted_expires', 'properties', ['is_promoted', 'promotion_expires_at'], unique=False)

    op.create_table(
        'platform_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('site_name', sa.String(length=200), nullable=True, comment='站点名称'),
        sa.Column('default_currency', sa.String(length=3), nullable=True, comment='默认币种'),
        sa.Column('promotions_enabled', sa.Boolean(), nullable=True, server_default=sa.text('false'), comment='是否开启推广'),
        sa.Column('promotion_tiers', sa.JSON(), nullable=True, comment='推广套餐配置'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False, comment='更新时间'),
        sa.PrimaryKeyConstraint('id', name='pk_platform_settings'),
        comment='平台设置（单行表）',
    )


def downgrade() -> None:
    op.drop_table('platform_settings')
    op.drop_index('ix_properties_promoted_expires', table_name='properties')
    op.drop_index('ix_properties_agent_id', table_name='properties')
    op.drop_table('properties')
