#!/usr/bin/env python3
"""
Daily price statistics derived from settled (non-forecast) prices.

Statistics of complete UTC days are cached in the daily_stats table;
the current day is computed on every request.
"""

import logging
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from spottisahko.common import utc_day_bounds, utc_now
from spottisahko.records import DailyStats, PriceRecord, round_cents
from spottisahko.storage import BasePriceStore


def stats_from_prices(prices: Sequence[Decimal], day: date, price_area: str) -> Optional[DailyStats]:
    """
    Aggregate a day's prices.

    The median is the element at index count // 2 of the sorted prices.

    Returns:
        DailyStats, or None when there are no prices
    """
    if not prices:
        return None

    ordered = sorted(Decimal(p) for p in prices)
    count = len(ordered)
    return DailyStats(
        date=day,
        price_area=price_area,
        avg_price=round_cents(sum(ordered, Decimal("0")) / count),
        min_price=round_cents(ordered[0]),
        max_price=round_cents(ordered[-1]),
        median_price=round_cents(ordered[count // 2]),
        price_count=count,
    )


def compute_daily_stats(
    records: Iterable[PriceRecord],
    day: date,
    price_area: str
) -> Optional[DailyStats]:
    """Statistics of the non-forecast records of one area."""
    prices = [
        record.price_cents_kwh for record in records
        if not record.forecast and record.price_area == price_area
    ]
    return stats_from_prices(prices, day, price_area)


def is_complete_day(day: date, now: datetime) -> bool:
    return utc_day_bounds(day)[1] <= now


class DailyStatsService:
    """Reads, computes and caches DailyStats through a price store."""

    def __init__(self, store: BasePriceStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    def get_daily_stats(
        self,
        day: date,
        price_area: str,
        now: Optional[datetime] = None
    ) -> Optional[DailyStats]:
        """
        Cached statistics for a date, computed and cached on a miss.

        Args:
            day: UTC calendar date
            price_area: Bidding area code
            now: Reference clock (defaults to current UTC time)

        Returns:
            DailyStats, or None if no settled prices exist for the date
        """
        now = now or utc_now()

        cached = self.store.read_daily_stats(day, price_area)
        if cached is not None:
            return cached

        day_start, day_end = utc_day_bounds(day)
        records = self.store.read_by_date_range(day_start, day_end, price_area)
        stats = compute_daily_stats(records, day, price_area)
        if stats is None:
            self.logger.warning(f"No settled prices for {day.isoformat()} ({price_area})")
            return None

        if is_complete_day(day, now):
            self.store.upsert_daily_stats(stats)
            self.logger.info(f"✓ Cached daily stats for {day.isoformat()} ({price_area})")
        return stats

    def refresh_range(
        self,
        start_day: date,
        end_day: date,
        price_area: str,
        now: Optional[datetime] = None
    ) -> List[DailyStats]:
        """
        Recompute statistics for every date in [start_day, end_day].

        Reads the whole range once and caches every complete day,
        replacing existing cache entries.

        Returns:
            DailyStats per date that has settled prices, ascending
        """
        now = now or utc_now()
        range_start = utc_day_bounds(start_day)[0]
        range_end = utc_day_bounds(end_day)[1]

        records = self.store.read_by_date_range(range_start, range_end, price_area)
        if not records:
            self.logger.warning(
                f"No prices between {start_day.isoformat()} and {end_day.isoformat()}"
            )
            return []

        df = pd.DataFrame([asdict(record) for record in records])
        df = df[~df["forecast"].astype(bool)]
        if df.empty:
            return []
        df["date"] = pd.to_datetime(df["timestamp"], utc=True).dt.date

        results = []
        for day, group in df.groupby("date", sort=True):
            stats = stats_from_prices(group["price_cents_kwh"].tolist(), day, price_area)
            if stats is None:
                continue
            if is_complete_day(day, now):
                self.store.upsert_daily_stats(stats)
            results.append(stats)

        self.logger.info(f"✓ Computed daily stats for {len(results)} days ({price_area})")
        return results
