"""SQLAlchemy models for the price database.

These models represent the tables in the configured schema of the postgres
database and are the target metadata for Alembic migrations. Runtime
reads and writes go through psycopg2 in storage.py using the same names.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean, CheckConstraint, Date, DateTime, Index, Integer, Numeric, String,
    UniqueConstraint, PrimaryKeyConstraint, text
)
from sqlalchemy.dialects.postgresql import TIMESTAMP
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from spottisahko.config import DB_SCHEMA


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class ElectricityPrice(Base):
    """Day-ahead spot price per delivery hour and bidding area."""
    __tablename__ = 'electricity_price'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='electricity_price_pkey'),
        UniqueConstraint('timestamp', 'price_area', name='electricity_price_timestamp_price_area_key'),
        CheckConstraint('price_cents_kwh >= 0', name='electricity_price_non_negative'),
        Index('idx_electricity_price_timestamp', 'timestamp'),
        {'schema': DB_SCHEMA}
    )

    id: Mapped[int] = mapped_column(Integer, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    price_area: Mapped[str] = mapped_column(String(8), nullable=False)
    price_cents_kwh: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    forecast: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime, server_default=text('CURRENT_TIMESTAMP'))
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, server_default=text('CURRENT_TIMESTAMP'))


class DailyStatsCache(Base):
    """Cached daily aggregates computed from settled prices."""
    __tablename__ = 'daily_stats'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='daily_stats_pkey'),
        UniqueConstraint('date', 'price_area', name='daily_stats_date_price_area_key'),
        {'schema': DB_SCHEMA}
    )

    id: Mapped[int] = mapped_column(Integer, autoincrement=True)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    price_area: Mapped[str] = mapped_column(String(8), nullable=False)
    avg_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    min_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    max_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    median_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    price_count: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, server_default=text('CURRENT_TIMESTAMP'))
