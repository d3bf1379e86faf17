#!/usr/bin/env python3
"""
Daily Statistics Runner.

Computes avg/min/max/median prices from settled prices and caches them
in the daily_stats table. Defaults to yesterday (UTC).

Usage:
    spottisahko-daily-stats [--debug] [--dry-run]
    spottisahko-daily-stats --start 2024-01-01 --end 2024-12-31
"""

from datetime import date, timedelta
from typing import List

from spottisahko.exceptions import ConfigurationError, StorageError
from spottisahko.runners.base_runner import BaseRunner
from spottisahko.stats import DailyStatsService


class DailyStatsRunner(BaseRunner):
    """Runner recomputing cached daily statistics."""

    RUNNER_NAME = "Daily Price Statistics Runner"

    def default_dates(self, today: date) -> List[date]:
        return [today - timedelta(days=1)]

    def run(self) -> bool:
        """Recompute and cache statistics for the target dates."""
        self.print_header()

        if self.dry_run:
            self.logger.info("DRY RUN - Statistics runner has nothing to do without a database")
            self.print_footer(success=True)
            return True

        try:
            dates = self.get_target_dates()
            with self.price_store() as store:
                service = DailyStatsService(store, logger=self.logger)
                results = service.refresh_range(dates[0], dates[-1], self.price_area)

            for stats in results:
                self.logger.info(
                    f"  {stats.date.isoformat()}: avg {stats.avg_price} "
                    f"min {stats.min_price} max {stats.max_price} "
                    f"median {stats.median_price} c/kWh ({stats.price_count} prices)"
                )

            self.print_footer(success=True)
            return True

        except (ConfigurationError, StorageError, ValueError) as e:
            self.log_exception("Statistics run failed", e)
            self.print_footer(success=False)
            return False


def main():
    DailyStatsRunner.main()


if __name__ == '__main__':
    main()
