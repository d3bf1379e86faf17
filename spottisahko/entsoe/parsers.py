#!/usr/bin/env python3
"""
ENTSO-E XML parser for day-ahead price documents (A44).

BaseParser provides timestamp and resolution helpers; DayAheadPriceParser
turns a Publication_MarketDocument into sorted PriceRecords.
"""

import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Union

from spottisahko.common import utc_now
from spottisahko.exceptions import ParseError
from spottisahko.records import PriceRecord, round_cents


class BaseParser(ABC):
    """Base class for ENTSO-E XML parsers.

    Provides common utilities for:
    - Timestamp parsing (ISO 8601 → aware UTC datetime)
    - Resolution parsing (PT15M, PT60M, PT1H → minutes)
    """

    # Characters of the raw response kept for diagnostics
    PREVIEW_LENGTH = 200

    def __init__(self, now: Optional[datetime] = None, logger: Optional[logging.Logger] = None):
        """
        Initialize parser.

        Args:
            now: Reference clock for forecast flags (defaults to parse time)
            logger: Logger instance
        """
        self.now = now
        self.logger = logger or logging.getLogger(__name__)
        self.data: List[PriceRecord] = []

    def parse_timestamp(self, timestamp_str: str) -> datetime:
        """
        Parse ISO 8601 timestamp (always in UTC from ENTSO-E).

        Args:
            timestamp_str: ISO 8601 timestamp string, e.g. 2024-01-15T00:00Z

        Returns:
            Timezone-aware datetime in UTC
        """
        dt = datetime.fromisoformat(timestamp_str.strip().replace('Z', '+00:00'))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)

    def get_resolution_minutes(self, resolution_str: Optional[str]) -> int:
        """
        Parse resolution string to minutes.

        Args:
            resolution_str: ISO 8601 duration (e.g., PT15M, PT60M, PT1H)

        Returns:
            Resolution in minutes (60 when absent)
        """
        if not resolution_str:
            return 60
        resolution_str = resolution_str.strip()
        if resolution_str.endswith('M'):
            return int(resolution_str[2:-1])
        elif resolution_str.endswith('H'):
            return int(resolution_str[2:-1]) * 60
        return 60

    def preview(self, content: Union[str, bytes]) -> str:
        """Truncated response text for log messages."""
        if isinstance(content, bytes):
            content = content.decode('utf-8', errors='replace')
        return content[:self.PREVIEW_LENGTH]

    @abstractmethod
    def parse_xml(self, xml_file_path: str) -> List[PriceRecord]:
        """
        Parse XML file and return structured data.

        Args:
            xml_file_path: Path to XML file

        Returns:
            List of parsed records
        """
        pass


class DayAheadPriceParser(BaseParser):
    """Parser for ENTSO-E day-ahead prices (documentType=A44).

    Each Point carries a 1-based position and price.amount in EUR/MWh.
    Prices are converted to c/kWh and rounded to the cent.
    """

    def __init__(
        self,
        price_area: str = "FI",
        now: Optional[datetime] = None,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(now=now, logger=logger)
        self.price_area = price_area

    def parse_xml(self, xml_file_path: str) -> List[PriceRecord]:
        """Parse an A44 document stored on disk."""
        with open(xml_file_path, 'r', encoding='utf-8') as f:
            return self.parse_xml_string(f.read())

    def parse_xml_string(self, xml_content: Union[str, bytes]) -> List[PriceRecord]:
        """
        Parse an A44 document.

        Args:
            xml_content: Raw XML returned by the API

        Returns:
            PriceRecords sorted ascending by timestamp; empty when the
            document has no TimeSeries

        Raises:
            ParseError: If the XML is malformed or a Point is unreadable
        """
        now = self.now or utc_now()

        if isinstance(xml_content, str):
            xml_content = xml_content.strip()

        try:
            root = ET.fromstring(xml_content)
        except ET.ParseError as e:
            preview = self.preview(xml_content)
            self.logger.error(f"✗ Invalid XML from ENTSO-E: {e}. Response preview: {preview!r}")
            raise ParseError(f"Invalid XML response from ENTSO-E API: {e}", preview=preview) from e

        timeseries_list = root.findall('.//{*}TimeSeries')
        if not timeseries_list:
            reason = root.find('.//{*}Reason/{*}text')
            if reason is not None and reason.text:
                self.logger.warning(f"No TimeSeries in ENTSO-E response: {reason.text}")
            else:
                self.logger.warning("No TimeSeries data in ENTSO-E response")
            self.data = []
            return self.data

        records: List[PriceRecord] = []
        try:
            for timeseries in timeseries_list:
                for period in timeseries.findall('{*}Period'):
                    records.extend(self._process_period(period, now))
        except ParseError as e:
            e.preview = self.preview(xml_content)
            self.logger.error(f"✗ {e}. Response preview: {e.preview!r}")
            raise

        records.sort(key=lambda record: record.timestamp)
        self.data = records
        return records

    def _process_period(self, period: ET.Element, now: datetime) -> List[PriceRecord]:
        """Convert the Points of a single Period element."""
        start_elem = period.find('{*}timeInterval/{*}start')
        if start_elem is None or not start_elem.text:
            raise ParseError("Period without timeInterval/start")

        try:
            period_start = self.parse_timestamp(start_elem.text)
        except ValueError as e:
            raise ParseError(f"Invalid period start '{start_elem.text}'") from e

        resolution_elem = period.find('{*}resolution')
        try:
            resolution_minutes = self.get_resolution_minutes(
                resolution_elem.text if resolution_elem is not None else None
            )
        except ValueError as e:
            raise ParseError(f"Invalid resolution '{resolution_elem.text}'") from e

        records = []
        for point in period.findall('{*}Point'):
            position_elem = point.find('{*}position')
            amount_elem = point.find('{*}price.amount')
            if position_elem is None or amount_elem is None:
                raise ParseError("Point without position or price.amount")
            if not (position_elem.text or "").strip() or not (amount_elem.text or "").strip():
                raise ParseError("Point with empty position or price.amount")

            try:
                position = int(position_elem.text)
                price_eur_mwh = Decimal(amount_elem.text.strip())
            except (TypeError, ValueError, InvalidOperation) as e:
                raise ParseError(
                    f"Invalid Point (position={position_elem.text!r}, "
                    f"price.amount={amount_elem.text!r})"
                ) from e

            # Position 1 is the first interval of the period
            timestamp = period_start + timedelta(minutes=(position - 1) * resolution_minutes)

            records.append(PriceRecord(
                timestamp=timestamp,
                price_cents_kwh=round_cents(price_eur_mwh / 10),
                price_area=self.price_area,
                forecast=timestamp > now,
            ))

        return records
