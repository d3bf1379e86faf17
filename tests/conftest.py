"""Shared fixtures: sample ENTSO-E documents and an in-memory price store."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from spottisahko.exceptions import StorageError
from spottisahko.records import PriceRecord
from spottisahko.storage import BasePriceStore, UpsertResult


SAMPLE_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Publication_MarketDocument xmlns="urn:iec62325.351:tc57wg16:451-3:publicationdocument:7:3">
  <TimeSeries>
    <Period>
      <timeInterval>
        <start>2024-01-15T00:00Z</start>
        <end>2024-01-16T00:00Z</end>
      </timeInterval>
      <resolution>PT60M</resolution>
      <Point>
        <position>1</position>
        <price.amount>75.50</price.amount>
      </Point>
      <Point>
        <position>2</position>
        <price.amount>65.25</price.amount>
      </Point>
    </Period>
  </TimeSeries>
</Publication_MarketDocument>"""

EMPTY_XML = """<?xml version="1.0" encoding="UTF-8"?>
<Publication_MarketDocument>
</Publication_MarketDocument>"""


def build_day_xml(start="2024-01-15T00:00Z", prices=None, resolution="PT60M"):
    """A single-period A44 document with one Point per price."""
    prices = prices if prices is not None else [50 + i for i in range(24)]
    points = "".join(
        f"<Point><position>{i}</position><price.amount>{price}</price.amount></Point>"
        for i, price in enumerate(prices, start=1)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        "<Publication_MarketDocument><TimeSeries><Period>"
        f"<timeInterval><start>{start}</start><end>2099-01-01T00:00Z</end></timeInterval>"
        f"<resolution>{resolution}</resolution>{points}"
        "</Period></TimeSeries></Publication_MarketDocument>"
    )


def make_record(hour, price="5.00", forecast=False, day=datetime(2024, 1, 15, tzinfo=timezone.utc), area="FI"):
    return PriceRecord(
        timestamp=day + timedelta(hours=hour),
        price_cents_kwh=Decimal(price),
        price_area=area,
        forecast=forecast,
    )


class MemoryPriceStore(BasePriceStore):
    """Dict-backed store with the same upsert semantics as the Postgres store."""

    def __init__(self, insert_only=False, fail_on=None):
        self.records = {}
        self.stats = {}
        self.insert_only = insert_only
        self.fail_on = set(fail_on or [])
        self.sweep_calls = 0
        self.stats_writes = 0
        self.closed = False

    def upsert(self, record):
        if record.timestamp in self.fail_on:
            raise StorageError("connection reset by peer")
        existing = self.records.get(record.key)
        if existing is None:
            self.records[record.key] = record
            return UpsertResult.SUCCESS
        if self.insert_only:
            return UpsertResult.DUPLICATE
        self.records[record.key] = replace(
            record, forecast=existing.forecast and record.forecast
        )
        return UpsertResult.SUCCESS

    def sweep_forecast_flags(self, now):
        self.sweep_calls += 1
        updated = 0
        for key, record in list(self.records.items()):
            if record.forecast and record.timestamp <= now:
                self.records[key] = replace(record, forecast=False)
                updated += 1
        return updated

    def read_by_date_range(self, start, end, price_area=None):
        return sorted(
            (
                r for r in self.records.values()
                if start <= r.timestamp < end and (price_area is None or r.price_area == price_area)
            ),
            key=lambda r: r.timestamp,
        )

    def read_daily_stats(self, day, price_area):
        return self.stats.get((day, price_area))

    def upsert_daily_stats(self, stats):
        self.stats_writes += 1
        self.stats[(stats.date, stats.price_area)] = stats

    def close(self):
        self.closed = True


@pytest.fixture
def store():
    return MemoryPriceStore()


@pytest.fixture
def sample_xml():
    return SAMPLE_XML


@pytest.fixture
def empty_xml():
    return EMPTY_XML
