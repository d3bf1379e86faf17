"""Add electricity_price and daily_stats tables

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the hourly day-ahead price table keyed by (timestamp, price_area)
and the daily statistics cache keyed by (date, price_area).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from spottisahko.config import DB_SCHEMA


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create price and statistics tables."""
    op.create_table(
        'electricity_price',
        sa.Column('id', sa.Integer, autoincrement=True, nullable=False),
        sa.Column('timestamp', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('price_area', sa.String(8), nullable=False),
        sa.Column('price_cents_kwh', sa.Numeric(10, 2), nullable=False),
        sa.Column('forecast', sa.Boolean, nullable=False),
        sa.Column('created_at', sa.DateTime, server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.Column('updated_at', sa.DateTime, server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id', name='electricity_price_pkey'),
        sa.UniqueConstraint('timestamp', 'price_area', name='electricity_price_timestamp_price_area_key'),
        sa.CheckConstraint('price_cents_kwh >= 0', name='electricity_price_non_negative'),
        schema=DB_SCHEMA
    )

    op.create_index(
        'idx_electricity_price_timestamp',
        'electricity_price',
        ['timestamp'],
        schema=DB_SCHEMA
    )

    op.create_table(
        'daily_stats',
        sa.Column('id', sa.Integer, autoincrement=True, nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('price_area', sa.String(8), nullable=False),
        sa.Column('avg_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('min_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('max_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('median_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('price_count', sa.Integer, nullable=False),
        sa.Column('updated_at', sa.DateTime, server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id', name='daily_stats_pkey'),
        sa.UniqueConstraint('date', 'price_area', name='daily_stats_date_price_area_key'),
        schema=DB_SCHEMA
    )


def downgrade() -> None:
    """Drop price and statistics tables."""
    op.drop_table('daily_stats', schema=DB_SCHEMA)
    op.drop_index('idx_electricity_price_timestamp', table_name='electricity_price', schema=DB_SCHEMA)
    op.drop_table('electricity_price', schema=DB_SCHEMA)
