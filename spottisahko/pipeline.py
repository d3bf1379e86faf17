#!/usr/bin/env python3
"""
Day-ahead price ingestion: fetch each target date and reconcile it.

A failed fetch aborts only its own date. Configuration errors abort the run.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from spottisahko.common import utc_now
from spottisahko.entsoe.client import EntsoeClient
from spottisahko.exceptions import ParseError, UpstreamError
from spottisahko.reconciler import PriceReconciler, ReconcileSummary


def default_target_dates(today: date, days_back: int = 1, days_ahead: int = 1) -> List[date]:
    """
    Dates fetched by a scheduled run: recent past, today and near future.

    Args:
        today: Current UTC date
        days_back: Past days to re-fetch
        days_ahead: Future days to fetch (tomorrow is published around 12:00 UTC)

    Returns:
        Ascending list of dates
    """
    return [today + timedelta(days=offset) for offset in range(-days_back, days_ahead + 1)]


@dataclass
class IngestionResult:
    """Merged outcome of a multi-date run."""

    summary: ReconcileSummary = field(default_factory=ReconcileSummary)
    fetched_count: int = 0
    failed_dates: List[date] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_dates and self.summary.success

    def to_dict(self) -> Dict[str, Any]:
        result = self.summary.to_dict()
        result["fetched_count"] = self.fetched_count
        result["failed_dates"] = [d.isoformat() for d in self.failed_dates]
        return result


class PriceIngestionPipeline:
    """Runs the fetcher and the reconciler for a list of target dates.

    Without a reconciler the pipeline only fetches and parses (dry run).
    """

    def __init__(
        self,
        client: EntsoeClient,
        reconciler: Optional[PriceReconciler] = None,
        delay_seconds: float = 0.0,
        sleep: Optional[Callable[[float], None]] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize pipeline.

        Args:
            client: ENTSO-E client
            reconciler: Reconciler writing to the store, None for a dry run
            delay_seconds: Pause between dates to respect API rate limits
            sleep: Sleep function (defaults to time.sleep)
            logger: Logger instance
        """
        self.client = client
        self.reconciler = reconciler
        self.delay_seconds = delay_seconds
        self.sleep = sleep or time.sleep
        self.logger = logger or logging.getLogger(__name__)

    def _reconcile(self, records, now: Optional[datetime]) -> ReconcileSummary:
        if self.reconciler is None:
            self.logger.info(f"  DRY RUN - Would upsert {len(records)} records")
            return ReconcileSummary()
        return self.reconciler.reconcile(records, now=now)

    def run_for_date(self, day: date, now: Optional[datetime] = None) -> ReconcileSummary:
        """
        Fetch one date and reconcile it.

        Raises:
            UpstreamError: If the fetch failed
            ParseError: If the response could not be parsed
        """
        records = self.client.fetch_day_ahead_prices(day, now=now or utc_now())
        self.logger.info(f"  Fetched {len(records)} prices for {day.isoformat()}")
        return self._reconcile(records, now)

    def run(self, days: Iterable[date], now: Optional[datetime] = None) -> IngestionResult:
        """
        Ingest every date, continuing past dates whose fetch fails.

        Args:
            days: Target dates
            now: Reference clock (defaults to current UTC time per date)

        Returns:
            IngestionResult with the merged summary and failed dates
        """
        result = IngestionResult()

        for index, day in enumerate(days):
            if index and self.delay_seconds:
                self.sleep(self.delay_seconds)

            self.logger.info(f"Processing {day.isoformat()}...")
            try:
                records = self.client.fetch_day_ahead_prices(day, now=now or utc_now())
            except (UpstreamError, ParseError) as e:
                self.logger.error(f"✗ Fetch failed for {day.isoformat()}: {e}")
                result.failed_dates.append(day)
                result.summary.add_error(f"{day.isoformat()}: {e}")
                continue

            result.fetched_count += len(records)
            self.logger.info(f"  Fetched {len(records)} prices")
            result.summary.merge(self._reconcile(records, now))

        return result
