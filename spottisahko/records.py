"""Value types passed between the fetcher, reconciler and store."""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round_cents(value: Decimal) -> Decimal:
    """Round to two decimals, ties away from zero."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceRecord:
    """Spot price of one delivery interval in one bidding area."""

    timestamp: datetime
    price_cents_kwh: Decimal
    price_area: str
    forecast: bool

    @property
    def key(self):
        return (self.timestamp, self.price_area)

    def settled(self, now: datetime) -> "PriceRecord":
        """Return the record with its forecast flag corrected against ``now``.

        Only ever clears the flag; a record that is already settled stays so.
        """
        if self.forecast and self.timestamp <= now:
            return replace(self, forecast=False)
        return self


@dataclass(frozen=True)
class DailyStats:
    """Aggregated prices of one UTC calendar date for one area."""

    date: date
    price_area: str
    avg_price: Decimal
    min_price: Decimal
    max_price: Decimal
    median_price: Decimal
    price_count: int
