#!/usr/bin/env python3
"""
Price reconciler: merges fetched PriceRecords into the price store.

Writes are keyed upserts, so repeating a run is harmless. Failures are
collected per record and the batch always completes with a summary.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from spottisahko.common import utc_now
from spottisahko.exceptions import StorageError
from spottisahko.records import PriceRecord
from spottisahko.storage import BasePriceStore, UpsertResult

# Error messages kept in a summary
MAX_REPORTED_ERRORS = 10


@dataclass
class ReconcileSummary:
    """Outcome of one reconciliation batch (or several merged ones)."""

    updated_count: int = 0
    duplicate_count: int = 0
    error_count: int = 0
    swept_count: int = 0
    errors: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.error_count += 1
        if len(self.errors) < MAX_REPORTED_ERRORS:
            self.errors.append(message)

    def merge(self, other: "ReconcileSummary") -> "ReconcileSummary":
        self.updated_count += other.updated_count
        self.duplicate_count += other.duplicate_count
        self.error_count += other.error_count
        self.swept_count += other.swept_count
        room = MAX_REPORTED_ERRORS - len(self.errors)
        if room > 0:
            self.errors.extend(other.errors[:room])
        return self

    @property
    def success(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updated_count": self.updated_count,
            "duplicate_count": self.duplicate_count,
            "error_count": self.error_count,
            "swept_count": self.swept_count,
            "errors": list(self.errors),
        }


class PriceReconciler:
    """Upserts PriceRecords and keeps forecast flags accurate.

    The forecast flag of a stored record only ever goes from true to false:
    incoming records are settled against ``now`` before writing, the store
    merges flags with AND, and the sweep only clears flags.
    """

    def __init__(self, store: BasePriceStore, logger: Optional[logging.Logger] = None):
        self.store = store
        self.logger = logger or logging.getLogger(__name__)

    def reconcile(
        self,
        records: Iterable[PriceRecord],
        now: Optional[datetime] = None
    ) -> ReconcileSummary:
        """
        Write a batch of records, then run the forecast sweep.

        Args:
            records: PriceRecords, possibly overlapping stored ones
            now: Reference clock (defaults to current UTC time)

        Returns:
            ReconcileSummary with counts and the first error messages
        """
        now = now or utc_now()
        summary = ReconcileSummary()

        for record in records:
            record = record.settled(now)
            try:
                result = self.store.upsert(record)
            except StorageError as e:
                self.logger.error(f"✗ Failed to save price for {record.timestamp.isoformat()}: {e}")
                summary.add_error(f"{record.timestamp.isoformat()}: {e}")
                continue

            if result is UpsertResult.DUPLICATE:
                self.logger.debug(f"Already stored: {record.timestamp.isoformat()} {record.price_area}")
                summary.duplicate_count += 1
            else:
                summary.updated_count += 1

        try:
            summary.swept_count = self.store.sweep_forecast_flags(now)
            if summary.swept_count:
                self.logger.info(f"✓ Settled {summary.swept_count} forecast prices")
        except StorageError as e:
            self.logger.error(f"✗ Forecast sweep failed: {e}")
            summary.add_error(f"{now.isoformat()}: forecast sweep failed: {e}")

        self.logger.info(
            f"Reconciled: {summary.updated_count} written, "
            f"{summary.duplicate_count} duplicates, {summary.error_count} errors"
        )
        return summary
