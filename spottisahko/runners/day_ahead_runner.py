#!/usr/bin/env python3
"""
Day-Ahead Price Runner.

Fetches ENTSO-E day-ahead prices (A44) for the configured bidding zone,
reconciles them into the electricity_price table and settles forecast
flags of hours that have passed.

Usage:
    spottisahko-fetch-prices [--debug] [--dry-run]
    spottisahko-fetch-prices --date 2024-01-15
    spottisahko-fetch-prices --start 2024-01-01 --end 2024-01-31
"""

from datetime import date
from typing import List, Optional

from spottisahko import config
from spottisahko.entsoe.client import EntsoeClient
from spottisahko.exceptions import ConfigurationError, StorageError
from spottisahko.pipeline import PriceIngestionPipeline, default_target_dates
from spottisahko.reconciler import PriceReconciler
from spottisahko.runners.base_runner import BaseRunner


class DayAheadPriceRunner(BaseRunner):
    """Runner for ENTSO-E day-ahead prices."""

    RUNNER_NAME = "ENTSO-E Day-Ahead Price Runner"

    def __init__(self, days_back: int = 1, days_ahead: int = 1, **kwargs):
        super().__init__(**kwargs)
        self.days_back = days_back
        self.days_ahead = days_ahead
        self.client = None

    def default_dates(self, today: date) -> List[date]:
        return default_target_dates(today, self.days_back, self.days_ahead)

    def _init_client(self) -> bool:
        """Initialize ENTSO-E client."""
        self.logger.info("Initializing ENTSO-E client...")
        try:
            self.client = EntsoeClient(price_area=self.price_area, logger=self.logger)
            self.logger.info("✓ Client initialized")
            return True
        except ConfigurationError as e:
            self.logger.error(f"✗ Client initialization failed: {e}")
            return False

    def _build_pipeline(self, reconciler: Optional[PriceReconciler]) -> PriceIngestionPipeline:
        delay = config.BACKFILL_DELAY_SECONDS if self.is_backfill else 0.0
        return PriceIngestionPipeline(
            self.client, reconciler, delay_seconds=delay, logger=self.logger
        )

    def run(self) -> bool:
        """Execute the day-ahead price pipeline."""
        self.print_header()

        if not self._init_client():
            self.print_footer(success=False)
            return False

        try:
            dates = self.get_target_dates()
            self.logger.info(
                f"Area {self.price_area}: {len(dates)} date(s) "
                f"{dates[0].isoformat()} to {dates[-1].isoformat()} (UTC)"
            )
            self.logger.info("")

            if self.dry_run:
                result = self._build_pipeline(None).run(dates)
            else:
                with self.price_store() as store:
                    reconciler = PriceReconciler(store, logger=self.logger)
                    result = self._build_pipeline(reconciler).run(dates)

            summary = result.summary
            self.logger.info("")
            self.logger.info(f"Prices fetched: {result.fetched_count}")
            self.logger.info(f"Records updated: {summary.updated_count}")
            self.logger.info(f"Duplicates skipped: {summary.duplicate_count}")
            self.logger.info(f"Forecasts settled: {summary.swept_count}")
            self.logger.info(f"Errors: {summary.error_count}")
            for message in summary.errors:
                self.logger.info(f"  • {message}")

            self.print_footer(success=result.success)
            return result.success

        except (ConfigurationError, StorageError, ValueError) as e:
            self.log_exception("Pipeline failed", e)
            self.print_footer(success=False)
            return False
        finally:
            self.client.close()

    @classmethod
    def create_argument_parser(cls):
        parser = super().create_argument_parser()
        parser.add_argument(
            '--days-back',
            type=int,
            default=1,
            help='Past days to re-fetch in a scheduled run (default 1)'
        )
        parser.add_argument(
            '--days-ahead',
            type=int,
            default=1,
            help='Future days to fetch in a scheduled run (default 1)'
        )
        return parser

    @classmethod
    def runner_kwargs(cls, args):
        kwargs = super().runner_kwargs(args)
        kwargs['days_back'] = args.days_back
        kwargs['days_ahead'] = args.days_ahead
        return kwargs


def main():
    DayAheadPriceRunner.main()


if __name__ == '__main__':
    main()
