#!/usr/bin/env python3
"""
Base runner module providing shared functionality for all cron runners.

Features:
- Scoped price store with context manager
- Logging setup
- Dry-run support
- Target date selection (single date, backfill range, default window)
"""

import sys
import logging
import argparse
import traceback
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime
from typing import List, Optional

from spottisahko import config
from spottisahko.common import date_range, parse_date, utc_now, validate_date_range
from spottisahko.storage import PostgresPriceStore


class BaseRunner(ABC):
    """Base class for all runners.

    Provides common functionality for:
    - Database store lifecycle
    - Logging
    - Date selection from command-line arguments
    - Header/footer banners
    """

    # Override in subclasses
    RUNNER_NAME = "BaseRunner"

    def __init__(
        self,
        debug: bool = False,
        dry_run: bool = False,
        target_date: Optional[date] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        price_area: Optional[str] = None
    ):
        """
        Initialize runner.

        Args:
            debug: Enable debug logging
            dry_run: Fetch and compute but don't write
            target_date: Single date to process
            start: First date of a backfill range
            end: Last date of a backfill range (defaults to start)
            price_area: Bidding area code (defaults to env var)
        """
        self.debug = debug
        self.dry_run = dry_run
        self.target_date = target_date
        self.start = start
        self.end = end or start
        self.price_area = (price_area or config.PRICE_AREA).upper()
        self.logger = self._setup_logging()

    def _setup_logging(self) -> logging.Logger:
        """Configure logging for the runner."""
        log_level = logging.DEBUG if self.debug else logging.INFO
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # SECURITY: Suppress urllib3/requests debug logging to prevent
        # API tokens from appearing in logs (they log full URLs with query params)
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)

        return logging.getLogger(self.RUNNER_NAME)

    @property
    def is_backfill(self) -> bool:
        return self.start is not None

    @contextmanager
    def price_store(self):
        """
        Context manager for the price store.

        Yields:
            PostgresPriceStore with its own connection

        Raises:
            ConfigurationError: If database credentials are missing
        """
        store = PostgresPriceStore.from_config(logger=self.logger)
        self.logger.info(f"Using database {config.DB_NAME}@{config.DB_HOST}:{config.DB_PORT}")
        try:
            yield store
        finally:
            store.close()

    def default_dates(self, today: date) -> List[date]:
        """Dates processed when neither --date nor --start is given."""
        return [today]

    def get_target_dates(self, today: Optional[date] = None) -> List[date]:
        """
        Resolve the dates to process from the command-line arguments.

        Returns:
            Ascending list of dates
        """
        today = today or utc_now().date()
        if self.is_backfill:
            validate_date_range(self.start, self.end)
            return list(date_range(self.start, self.end))
        if self.target_date is not None:
            return [self.target_date]
        return self.default_dates(today)

    def log_exception(self, message: str, error: Exception) -> None:
        self.logger.error(f"✗ {message}: {error}")
        if self.debug:
            traceback.print_exc()

    def print_header(self) -> None:
        """Print runner header."""
        self.logger.info("")
        self.logger.info("╔══════════════════════════════════════════════════════════╗")
        self.logger.info(f"║  {self.RUNNER_NAME:<56} ║")
        self.logger.info("╚══════════════════════════════════════════════════════════╝")
        self.logger.info(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        if self.dry_run:
            self.logger.info("DRY RUN MODE - No data will be written")
        self.logger.info("")

    def print_footer(self, success: bool = True) -> None:
        """Print runner footer."""
        status = "Completed Successfully" if success else "Completed with Errors"
        self.logger.info("")
        self.logger.info("╔══════════════════════════════════════════════════════════╗")
        self.logger.info(f"║  {status:<56} ║")
        self.logger.info("╚══════════════════════════════════════════════════════════╝")
        self.logger.info(f"Finished at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        self.logger.info("")

    @abstractmethod
    def run(self) -> bool:
        """
        Execute the runner.

        Returns:
            True if successful, False otherwise
        """
        pass

    @classmethod
    def create_argument_parser(cls) -> argparse.ArgumentParser:
        """Create argument parser for the runner."""
        parser = argparse.ArgumentParser(
            description=f"{cls.RUNNER_NAME} - Spot Price Pipeline"
        )
        parser.add_argument(
            '--debug',
            action='store_true',
            help='Enable debug logging'
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Fetch and compute but don\'t write to database'
        )
        parser.add_argument(
            '--date',
            dest='target_date',
            type=parse_date,
            help='Process a single date (YYYY-MM-DD, UTC)'
        )
        parser.add_argument(
            '--start',
            type=parse_date,
            help='Backfill start date (YYYY-MM-DD, UTC)'
        )
        parser.add_argument(
            '--end',
            type=parse_date,
            help='Backfill end date, inclusive (defaults to --start)'
        )
        parser.add_argument(
            '--area',
            dest='price_area',
            help='Price area code (defaults to PRICE_AREA)'
        )
        return parser

    @classmethod
    def runner_kwargs(cls, args: argparse.Namespace) -> dict:
        """Map parsed arguments to constructor keyword arguments."""
        return {
            'debug': args.debug,
            'dry_run': args.dry_run,
            'target_date': args.target_date,
            'start': args.start,
            'end': args.end,
            'price_area': args.price_area,
        }

    @classmethod
    def main(cls, argv: Optional[List[str]] = None) -> None:
        """Main entry point for the runner."""
        parser = cls.create_argument_parser()
        args = parser.parse_args(argv)
        if args.end and not args.start:
            parser.error('--end requires --start')
        if args.target_date and args.start:
            parser.error('--date cannot be combined with --start/--end')

        runner = cls(**cls.runner_kwargs(args))
        success = runner.run()
        sys.exit(0 if success else 1)
