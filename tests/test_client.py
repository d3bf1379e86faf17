"""Tests for the ENTSO-E client.

Network calls are mocked; no real requests are made.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from spottisahko import config
from spottisahko.entsoe.client import EntsoeClient
from spottisahko.exceptions import ConfigurationError, ParseError, UpstreamError

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def mock_response(text="", status_code=200, reason="OK"):
    response = MagicMock()
    response.ok = 200 <= status_code < 300
    response.status_code = status_code
    response.reason = reason
    response.text = text
    return response


@pytest.fixture
def client():
    client = EntsoeClient(security_token="test-api-key", bidding_zone="10YFI-1--------U")
    client.session = MagicMock()
    return client


class TestEntsoeClientInit:
    """Test configuration handling."""

    def test_init_with_token(self):
        client = EntsoeClient(security_token="test-api-key")
        assert client.security_token == "test-api-key"
        assert client.bidding_zone == "10YFI-1--------U"

    def test_missing_token_raises_configuration_error(self, monkeypatch):
        monkeypatch.setattr(config, "ENTSOE_SECURITY_TOKEN", None)
        with pytest.raises(ConfigurationError):
            EntsoeClient()

    def test_configuration_error_is_value_error(self, monkeypatch):
        monkeypatch.setattr(config, "ENTSOE_SECURITY_TOKEN", None)
        with pytest.raises(ValueError):
            EntsoeClient()

    def test_known_area_selects_bidding_zone(self):
        client = EntsoeClient(security_token="test-api-key", price_area="ee")
        assert client.price_area == "EE"
        assert client.bidding_zone == "10Y1001A1001A39I"

    def test_unknown_area_without_zone_is_rejected(self, monkeypatch):
        monkeypatch.setattr(config, "ENTSOE_BIDDING_ZONE", None)
        with pytest.raises(ConfigurationError, match="NO1"):
            EntsoeClient(security_token="test-api-key", price_area="NO1")

    def test_unknown_area_uses_configured_zone(self, monkeypatch):
        monkeypatch.setattr(config, "ENTSOE_BIDDING_ZONE", "10YNO-1--------2")
        client = EntsoeClient(security_token="test-api-key", price_area="NO1")
        assert client.bidding_zone == "10YNO-1--------2"

    def test_token_from_config(self, monkeypatch):
        monkeypatch.setattr(config, "ENTSOE_SECURITY_TOKEN", "from-env")
        assert EntsoeClient().security_token == "from-env"


class TestDayWindow:
    """Test calendar date normalisation."""

    def test_date_window(self):
        start, end = EntsoeClient.get_day_window(date(2024, 1, 15))
        assert start == datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert end == datetime(2024, 1, 16, tzinfo=timezone.utc)

    def test_time_of_day_is_ignored(self):
        start, end = EntsoeClient.get_day_window(datetime(2024, 1, 15, 17, 45))
        assert start == datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert end == datetime(2024, 1, 16, tzinfo=timezone.utc)

    def test_format_timestamp(self, client):
        assert client._format_timestamp(datetime(2024, 1, 15, 7, 5, tzinfo=timezone.utc)) == "202401150705"


class TestFetchDayAheadPrices:
    """Test the request and response handling."""

    def test_request_parameters(self, client, sample_xml):
        client.session.get.return_value = mock_response(sample_xml)

        client.fetch_day_ahead_prices(date(2024, 1, 15), now=NOW)

        assert client.session.get.call_count == 1
        args, kwargs = client.session.get.call_args
        assert args[0] == client.base_url
        assert kwargs["params"] == {
            "securityToken": "test-api-key",
            "documentType": "A44",
            "in_Domain": "10YFI-1--------U",
            "out_Domain": "10YFI-1--------U",
            "periodStart": "202401150000",
            "periodEnd": "202401160000",
        }
        assert kwargs["timeout"] == client.timeout

    def test_returns_parsed_records(self, client, sample_xml):
        client.session.get.return_value = mock_response(sample_xml)

        prices = client.fetch_day_ahead_prices(date(2024, 1, 15), now=NOW)

        assert [p.price_cents_kwh for p in prices] == [Decimal("7.55"), Decimal("6.53")]
        assert prices[0].timestamp == datetime(2024, 1, 15, tzinfo=timezone.utc)
        assert all(p.forecast is False for p in prices)

    def test_empty_response(self, client, empty_xml):
        client.session.get.return_value = mock_response(empty_xml)
        assert client.fetch_day_ahead_prices(date(2024, 1, 15), now=NOW) == []

    def test_http_error_raises_upstream_error(self, client):
        client.session.get.return_value = mock_response(
            "", status_code=500, reason="Internal Server Error"
        )

        with pytest.raises(UpstreamError, match="ENTSO-E API error: 500 Internal Server Error") as exc_info:
            client.fetch_day_ahead_prices(date(2024, 1, 15))

        assert exc_info.value.status_code == 500
        assert exc_info.value.status_text == "Internal Server Error"

    def test_timeout_raises_upstream_error(self, client):
        client.session.get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(UpstreamError, match="timed out"):
            client.fetch_day_ahead_prices(date(2024, 1, 15))

    def test_connection_error_does_not_leak_token(self, client):
        client.session.get.side_effect = requests.ConnectionError(
            "https://web-api.tp.entsoe.eu/api?securityToken=test-api-key"
        )

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_day_ahead_prices(date(2024, 1, 15))

        assert "test-api-key" not in str(exc_info.value)

    def test_malformed_body_raises_parse_error(self, client):
        client.session.get.return_value = mock_response("<Publication_MarketDocument>")

        with pytest.raises(ParseError):
            client.fetch_day_ahead_prices(date(2024, 1, 15))

    def test_invalid_range_rejected(self, client):
        start = datetime(2024, 1, 15, tzinfo=timezone.utc)
        with pytest.raises(ValueError):
            client.fetch_data("A44", start, start)
