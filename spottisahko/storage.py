#!/usr/bin/env python3
"""
Price store used by the reconciler and the statistics service.

BasePriceStore defines the storage interface. PostgresPriceStore implements
it with psycopg2, owns its connection, and reconnects with exponential
backoff when the connection drops.
"""

import logging
import time
from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, List, Optional

import psycopg2
from psycopg2 import errors

from spottisahko import config
from spottisahko.exceptions import StorageError
from spottisahko.models import DailyStatsCache, ElectricityPrice
from spottisahko.records import DailyStats, PriceRecord

PRICE_TABLE = ElectricityPrice.__tablename__
STATS_TABLE = DailyStatsCache.__tablename__


class UpsertResult(Enum):
    """Outcome of a single keyed write."""
    SUCCESS = "success"
    DUPLICATE = "duplicate"


class BasePriceStore(ABC):
    """Storage interface for price records and cached daily statistics."""

    @abstractmethod
    def upsert(self, record: PriceRecord) -> UpsertResult:
        """
        Insert or update one record keyed by (timestamp, price_area).

        A stored forecast=false is never turned back to true.

        Raises:
            StorageError: If the write fails for any reason other than a duplicate key
        """

    @abstractmethod
    def sweep_forecast_flags(self, now: datetime) -> int:
        """Clear forecast on every record with timestamp <= now. Returns rows changed."""

    @abstractmethod
    def read_by_date_range(
        self,
        start: datetime,
        end: datetime,
        price_area: Optional[str] = None
    ) -> List[PriceRecord]:
        """Records with start <= timestamp < end, ascending."""

    @abstractmethod
    def read_daily_stats(self, day: date, price_area: str) -> Optional[DailyStats]:
        """Cached statistics for a date, or None."""

    @abstractmethod
    def upsert_daily_stats(self, stats: DailyStats) -> None:
        """Insert or replace cached statistics keyed by (date, price_area)."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


def connect_from_config():
    """Open a psycopg2 connection from environment configuration."""
    config.require_database_credentials()
    return psycopg2.connect(
        host=config.DB_HOST,
        user=config.DB_USER,
        password=config.DB_PASSWORD,
        database=config.DB_NAME,
        port=config.DB_PORT,
        connect_timeout=config.DB_CONNECT_TIMEOUT,
        options=(
            f'-c search_path={config.DB_SCHEMA} '
            f'-c statement_timeout={config.DB_STATEMENT_TIMEOUT_MS}'
        )
    )


class PostgresPriceStore(BasePriceStore):
    """PostgreSQL implementation of the price store.

    Every write is committed on its own. Connection-level failures
    (OperationalError, InterfaceError) drop the connection and are retried
    up to ``max_retries`` times with ``backoff_factor * 2**attempt`` seconds
    between attempts. Any other database error becomes a StorageError.
    """

    UPSERT_QUERY = f"""
        INSERT INTO {PRICE_TABLE} (timestamp, price_area, price_cents_kwh, forecast)
        VALUES (%s, %s, %s, %s)
        ON CONFLICT (timestamp, price_area)
        DO UPDATE SET
            price_cents_kwh = EXCLUDED.price_cents_kwh,
            forecast = {PRICE_TABLE}.forecast AND EXCLUDED.forecast,
            updated_at = CURRENT_TIMESTAMP
    """

    INSERT_QUERY = f"""
        INSERT INTO {PRICE_TABLE} (timestamp, price_area, price_cents_kwh, forecast)
        VALUES (%s, %s, %s, %s)
    """

    SWEEP_QUERY = f"""
        UPDATE {PRICE_TABLE}
        SET forecast = FALSE, updated_at = CURRENT_TIMESTAMP
        WHERE forecast = TRUE AND timestamp <= %s
    """

    SELECT_RANGE_QUERY = f"""
        SELECT timestamp, price_cents_kwh, price_area, forecast
        FROM {PRICE_TABLE}
        WHERE timestamp >= %s AND timestamp < %s
    """

    SELECT_STATS_QUERY = f"""
        SELECT date, price_area, avg_price, min_price, max_price, median_price, price_count
        FROM {STATS_TABLE}
        WHERE date = %s AND price_area = %s
    """

    UPSERT_STATS_QUERY = f"""
        INSERT INTO {STATS_TABLE} (
            date, price_area, avg_price, min_price, max_price, median_price, price_count
        ) VALUES (%s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (date, price_area)
        DO UPDATE SET
            avg_price = EXCLUDED.avg_price,
            min_price = EXCLUDED.min_price,
            max_price = EXCLUDED.max_price,
            median_price = EXCLUDED.median_price,
            price_count = EXCLUDED.price_count,
            updated_at = CURRENT_TIMESTAMP
    """

    def __init__(
        self,
        connection_factory: Callable = connect_from_config,
        insert_only: bool = False,
        max_retries: int = 3,
        backoff_factor: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize store. The connection is opened lazily.

        Args:
            connection_factory: Callable returning a DB-API connection
            insert_only: Plain INSERT; duplicate keys are reported as DUPLICATE
            max_retries: Reconnect attempts after a connection-level failure
            backoff_factor: Base delay in seconds between reconnect attempts
            sleep: Sleep function (injectable for tests)
            logger: Logger instance
        """
        self.connection_factory = connection_factory
        self.insert_only = insert_only
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)
        self._conn = None

    @classmethod
    def from_config(cls, **kwargs) -> "PostgresPriceStore":
        """Build a store from environment configuration."""
        config.require_database_credentials()
        kwargs.setdefault("max_retries", config.DB_MAX_RETRIES)
        kwargs.setdefault("backoff_factor", config.DB_BACKOFF_FACTOR)
        return cls(**kwargs)

    def _get_connection(self):
        if self._conn is None or getattr(self._conn, "closed", 0):
            self._conn = self.connection_factory()
            self.logger.debug("Database connection opened")
        return self._conn

    def _discard_connection(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except psycopg2.Error:
                pass
            self._conn = None

    def _rollback(self, conn) -> None:
        try:
            conn.rollback()
        except psycopg2.Error as e:
            self.logger.warning(f"Rollback failed, dropping connection: {e}")
            self._discard_connection()

    def _execute(self, operation: Callable, description: str):
        """
        Run ``operation(conn)`` with reconnect and backoff.

        Args:
            operation: Callable taking a connection and returning a result
            description: Short label for log and error messages

        Returns:
            Whatever ``operation`` returns

        Raises:
            StorageError: On non-transient errors or when retries are exhausted
        """
        attempt = 0
        while True:
            conn = None
            try:
                conn = self._get_connection()
                return operation(conn)
            except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
                self._discard_connection()
                if attempt >= self.max_retries:
                    raise StorageError(
                        f"{description} failed after {attempt + 1} attempts: {e}"
                    ) from e
                delay = self.backoff_factor * (2 ** attempt)
                attempt += 1
                self.logger.warning(
                    f"{description}: connection error ({e}), "
                    f"retry {attempt}/{self.max_retries} in {delay:.1f}s"
                )
                self.sleep(delay)
            except psycopg2.Error as e:
                if conn is not None:
                    self._rollback(conn)
                raise StorageError(f"{description} failed: {e}") from e

    def upsert(self, record: PriceRecord) -> UpsertResult:
        values = (
            record.timestamp,
            record.price_area,
            record.price_cents_kwh,
            record.forecast,
        )

        def operation(conn):
            with conn.cursor() as cursor:
                if self.insert_only:
                    try:
                        cursor.execute(self.INSERT_QUERY, values)
                    except errors.UniqueViolation:
                        conn.rollback()
                        return UpsertResult.DUPLICATE
                else:
                    cursor.execute(self.UPSERT_QUERY, values)
            conn.commit()
            return UpsertResult.SUCCESS

        return self._execute(operation, f"Upsert {record.timestamp.isoformat()}")

    def sweep_forecast_flags(self, now: datetime) -> int:
        def operation(conn):
            with conn.cursor() as cursor:
                cursor.execute(self.SWEEP_QUERY, (now,))
                updated = cursor.rowcount
            conn.commit()
            return updated

        return self._execute(operation, "Forecast sweep")

    def read_by_date_range(
        self,
        start: datetime,
        end: datetime,
        price_area: Optional[str] = None
    ) -> List[PriceRecord]:
        query = self.SELECT_RANGE_QUERY
        params = [start, end]
        if price_area:
            query += " AND price_area = %s"
            params.append(price_area)
        query += " ORDER BY timestamp"

        def operation(conn):
            with conn.cursor() as cursor:
                cursor.execute(query, tuple(params))
                rows = cursor.fetchall()
            conn.commit()
            return rows

        rows = self._execute(operation, "Range read")
        return [
            PriceRecord(
                timestamp=_as_utc(timestamp),
                price_cents_kwh=price,
                price_area=area,
                forecast=forecast,
            )
            for timestamp, price, area, forecast in rows
        ]

    def read_daily_stats(self, day: date, price_area: str) -> Optional[DailyStats]:
        def operation(conn):
            with conn.cursor() as cursor:
                cursor.execute(self.SELECT_STATS_QUERY, (day, price_area))
                row = cursor.fetchone()
            conn.commit()
            return row

        row = self._execute(operation, f"Daily stats read {day.isoformat()}")
        if row is None:
            return None
        return DailyStats(*row)

    def upsert_daily_stats(self, stats: DailyStats) -> None:
        values = (
            stats.date,
            stats.price_area,
            stats.avg_price,
            stats.min_price,
            stats.max_price,
            stats.median_price,
            stats.price_count,
        )

        def operation(conn):
            with conn.cursor() as cursor:
                cursor.execute(self.UPSERT_STATS_QUERY, values)
            conn.commit()

        self._execute(operation, f"Daily stats upsert {stats.date.isoformat()}")

    def close(self) -> None:
        if self._conn is not None:
            self._discard_connection()
            self.logger.info("Database connection closed")


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
