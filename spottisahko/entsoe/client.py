#!/usr/bin/env python3
"""
ENTSO-E API client for fetching day-ahead electricity prices.

This module fetches A44 price documents from the ENTSO-E Transparency
Platform for one UTC calendar date and converts them into PriceRecords.
"""

import logging
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Tuple, Union

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from spottisahko import config
from spottisahko.common import utc_day_bounds
from spottisahko.entsoe.constants import BIDDING_ZONES, DOC_TYPE_DAY_AHEAD_PRICES
from spottisahko.entsoe.parsers import DayAheadPriceParser
from spottisahko.exceptions import ConfigurationError, UpstreamError
from spottisahko.records import PriceRecord


class EntsoeClient:
    """Client for the ENTSO-E Transparency Platform day-ahead price query.

    Features:
    - Calendar date normalisation to a [00:00, 24:00) UTC window
    - Bounded request timeout
    - Optional retry adapter (disabled by default, the scheduler re-runs)
    - Token masking in logs
    """

    DOC_TYPE_DAY_AHEAD_PRICES = DOC_TYPE_DAY_AHEAD_PRICES

    def __init__(
        self,
        security_token: Optional[str] = None,
        bidding_zone: Optional[str] = None,
        price_area: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        max_retries: int = 0,
        backoff_factor: float = 1.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize ENTSO-E client.

        Args:
            security_token: API security token (defaults to env var)
            bidding_zone: EIC code used as in_Domain and out_Domain (defaults to
                the known zone of price_area, then ENTSOE_BIDDING_ZONE)
            price_area: Area code stamped on records (defaults to PRICE_AREA)
            base_url: API base URL (defaults to env var)
            timeout: Request timeout in seconds (defaults to env var)
            max_retries: Retry attempts on 429/5xx inside one call (default 0)
            backoff_factor: Backoff factor for exponential delay (default 1.0)
            logger: Logger instance

        Raises:
            ConfigurationError: If the token or bidding zone is missing
        """
        self.base_url = base_url or config.ENTSOE_BASE_URL
        self.security_token = security_token or config.ENTSOE_SECURITY_TOKEN
        self.price_area = (price_area or config.PRICE_AREA).upper()
        self.bidding_zone = (
            bidding_zone
            or BIDDING_ZONES.get(self.price_area)
            or config.ENTSOE_BIDDING_ZONE
        )
        self.timeout = timeout or config.ENTSOE_TIMEOUT
        self.logger = logger or logging.getLogger(__name__)

        if not self.security_token:
            raise ConfigurationError(
                "ENTSO-E security token not configured. "
                "Set ENTSOE_SECURITY_TOKEN in .env file"
            )

        if not self.bidding_zone:
            raise ConfigurationError(
                f"No ENTSO-E bidding zone known for price area '{self.price_area}'. "
                "Set ENTSOE_BIDDING_ZONE in .env file"
            )

        self.session = requests.Session()
        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    def _format_timestamp(self, dt: datetime) -> str:
        """
        Format datetime to ENTSO-E API format (yyyyMMddHHmm).

        If datetime is timezone-aware, it is converted to UTC.
        If naive, it's assumed to be UTC.

        Args:
            dt: datetime object (naive or timezone-aware)

        Returns:
            str: Formatted timestamp in UTC
        """
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc)

        return dt.replace(tzinfo=None).strftime("%Y%m%d%H%M")

    @staticmethod
    def get_day_window(day: Union[date, datetime]) -> Tuple[datetime, datetime]:
        """
        Normalise a date to the [00:00, 24:00) UTC fetch window.

        Args:
            day: date or datetime (time of day is ignored)

        Returns:
            tuple: (period_start, period_end) as aware UTC datetimes
        """
        return utc_day_bounds(day)

    def _build_params(
        self,
        document_type: str,
        period_start: datetime,
        period_end: datetime
    ) -> Dict[str, str]:
        """
        Build API query parameters.

        Args:
            document_type: Document type code (A44)
            period_start: Start datetime
            period_end: End datetime

        Returns:
            dict: Query parameters including the security token
        """
        return {
            "securityToken": self.security_token,
            "documentType": document_type,
            "in_Domain": self.bidding_zone,
            "out_Domain": self.bidding_zone,
            "periodStart": self._format_timestamp(period_start),
            "periodEnd": self._format_timestamp(period_end),
        }

    def fetch_data(
        self,
        document_type: str,
        period_start: datetime,
        period_end: datetime
    ) -> str:
        """
        Fetch a document from the ENTSO-E API.

        Args:
            document_type: Document type code
            period_start: Start datetime
            period_end: End datetime

        Returns:
            str: XML content

        Raises:
            ValueError: If period_end is not after period_start
            UpstreamError: On non-success status, timeout or connection failure
        """
        if period_end <= period_start:
            raise ValueError(
                f"period_end ({period_end}) must be greater than "
                f"period_start ({period_start})"
            )

        params = self._build_params(document_type, period_start, period_end)
        masked = {k: ("***" if k == "securityToken" else v) for k, v in params.items()}
        self.logger.debug(f"GET {self.base_url} {masked}")

        try:
            response = self.session.get(
                self.base_url,
                params=params,
                headers={"Accept": "application/xml"},
                timeout=self.timeout
            )
        except requests.Timeout as e:
            raise UpstreamError(
                f"ENTSO-E API request timed out after {self.timeout}s"
            ) from e
        except requests.RequestException as e:
            # Exception text can contain the full URL, token included
            raise UpstreamError(
                f"ENTSO-E API request failed: {type(e).__name__}"
            ) from e

        if not response.ok:
            raise UpstreamError(
                f"ENTSO-E API error: {response.status_code} {response.reason}",
                status_code=response.status_code,
                status_text=response.reason
            )

        return response.text

    def fetch_day_ahead_xml(self, day: Union[date, datetime]) -> str:
        """
        Fetch the raw A44 document for one UTC calendar date.

        Args:
            day: Calendar date

        Returns:
            str: XML content
        """
        period_start, period_end = self.get_day_window(day)
        return self.fetch_data(self.DOC_TYPE_DAY_AHEAD_PRICES, period_start, period_end)

    def fetch_day_ahead_prices(
        self,
        day: Union[date, datetime],
        now: Optional[datetime] = None
    ) -> List[PriceRecord]:
        """
        Fetch and parse day-ahead prices for one UTC calendar date.

        Args:
            day: Calendar date
            now: Reference clock for forecast flags (defaults to parse time)

        Returns:
            PriceRecords sorted by timestamp, empty if nothing is published

        Raises:
            UpstreamError: If the request fails
            ParseError: If the response is not a readable document
        """
        xml_content = self.fetch_day_ahead_xml(day)
        parser = DayAheadPriceParser(price_area=self.price_area, now=now, logger=self.logger)
        return parser.parse_xml_string(xml_content)

    def close(self) -> None:
        self.session.close()
