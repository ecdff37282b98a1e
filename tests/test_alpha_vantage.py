# tests/test_alpha_vantage.py
"""
Tests for the Alpha Vantage adapter.

HTTP is stubbed with httpx.MockTransport; no network access.
"""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import httpx
import pytest

from datasources.alpha_vantage import AlphaVantageClient
from datasources.errors import (
    ConfigurationError, NotFoundError, ProviderError, ProviderTimeoutError, RateLimitedError,
)
from infrastructure.rate_limit import RateLimitTracker

GLOBAL_QUOTE = {
    "Global Quote": {
        "01. symbol": "IBM",
        "02. open": "168.0000",
        "05. price": "169.4500",
        "06. volume": "3215432",
        "07. latest trading day": "2024-03-08",
        "08. previous close": "167.4500",
        "09. change": "2.0000",
        "10. change percent": "1.1944%",
    }
}


def make_client(handler, api_key="demo", tracker=None):
    tracker = tracker or RateLimitTracker()
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AlphaVantageClient(api_key, tracker, http=http), tracker


def json_handler(payload, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(200, json=payload)
    return handler


class TestQuote:
    def test_parses_global_quote(self):
        calls = []
        client, _ = make_client(json_handler(GLOBAL_QUOTE, calls))
        quote = asyncio.run(client.fetch_quote("IBM"))

        assert quote.symbol == "IBM"
        assert quote.price == 169.45
        assert quote.change == 2.0
        assert quote.change_percent == pytest.approx(1.1944)  # percent, not fraction
        assert quote.volume == 3215432
        assert quote.previous_close == 167.45
        assert quote.latest_trading_day == "2024-03-08"
        assert quote.source == "alphavantage"
        assert quote.is_mock_data is False

        params = calls[0].url.params
        assert params["function"] == "GLOBAL_QUOTE"
        assert params["symbol"] == "IBM"
        assert params["apikey"] == "demo"

    def test_empty_global_quote_is_not_found(self):
        client, _ = make_client(json_handler({"Global Quote": {}}))
        with pytest.raises(NotFoundError):
            asyncio.run(client.fetch_quote("ZZZZZZ"))

    def test_non_numeric_price_is_provider_error(self):
        bad = {"Global Quote": dict(GLOBAL_QUOTE["Global Quote"], **{"05. price": "abc"})}
        client, _ = make_client(json_handler(bad))
        with pytest.raises(ProviderError):
            asyncio.run(client.fetch_quote("IBM"))

    def test_missing_key_raises_before_request(self):
        calls = []
        client, _ = make_client(json_handler(GLOBAL_QUOTE, calls), api_key="")
        with pytest.raises(ConfigurationError):
            asyncio.run(client.fetch_quote("IBM"))
        assert calls == []


class TestSoftFailures:
    def test_note_marks_tracker_and_short_circuits(self):
        calls = []
        client, tracker = make_client(json_handler({"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute"}, calls))

        with pytest.raises(RateLimitedError) as exc:
            asyncio.run(client.fetch_quote("IBM"))
        assert exc.value.provider == "alphavantage"
        assert tracker.is_limited("alphavantage")

        with pytest.raises(RateLimitedError):
            asyncio.run(client.fetch_quote("IBM"))
        assert len(calls) == 1

    def test_information_rate_limit(self):
        client, tracker = make_client(json_handler({"Information": "You have reached the 25 requests per day limit"}))
        with pytest.raises(RateLimitedError):
            asyncio.run(client.fetch_quote("IBM"))
        assert tracker.is_limited("alphavantage")

    def test_other_information_is_provider_error(self):
        client, tracker = make_client(json_handler({"Information": "This is a premium endpoint"}))
        with pytest.raises(ProviderError):
            asyncio.run(client.fetch_quote("IBM"))
        assert not tracker.is_limited("alphavantage")

    def test_apikey_error_message_is_configuration_error(self):
        client, _ = make_client(json_handler({"Error Message": "the parameter apikey is invalid or missing."}))
        with pytest.raises(ConfigurationError):
            asyncio.run(client.fetch_quote("IBM"))

    def test_other_error_message_is_provider_error(self):
        client, _ = make_client(json_handler({"Error Message": "Invalid API call."}))
        with pytest.raises(ProviderError):
            asyncio.run(client.fetch_quote("IBM"))

    def test_empty_payload_is_not_found(self):
        client, _ = make_client(json_handler({}))
        with pytest.raises(NotFoundError):
            asyncio.run(client.fetch_quote("IBM"))


class TestHttpFailures:
    @pytest.mark.parametrize("status,error", [
        (429, RateLimitedError),
        (401, ConfigurationError),
        (403, ConfigurationError),
        (404, NotFoundError),
        (500, ProviderError),
    ])
    def test_status_mapping(self, status, error):
        client, _ = make_client(lambda request: httpx.Response(status, json={}))
        with pytest.raises(error):
            asyncio.run(client.fetch_quote("IBM"))

    def test_html_body_is_provider_error(self):
        client, _ = make_client(lambda request: httpx.Response(200, text="<html>maintenance</html>",
                                                               headers={"content-type": "text/html"}))
        with pytest.raises(ProviderError):
            asyncio.run(client.fetch_quote("IBM"))

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client, _ = make_client(handler)
        with pytest.raises(ProviderTimeoutError):
            asyncio.run(client.fetch_quote("IBM"))

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = make_client(handler)
        with pytest.raises(ProviderError):
            asyncio.run(client.fetch_quote("IBM"))


def test_overview_missing_markers_become_none():
    payload = {
        "Symbol": "IBM",
        "Name": "International Business Machines",
        "Exchange": "NYSE",
        "Currency": "USD",
        "Country": "USA",
        "Sector": "TECHNOLOGY",
        "Industry": "COMPUTER & OFFICE EQUIPMENT",
        "OfficialSite": "https://www.ibm.com",
        "MarketCapitalization": "156000000000",
        "PERatio": "None",
        "EPS": "8.14",
        "Beta": "-",
        "DividendYield": "0.0394",
        "ProfitMargin": "0.124",
        "OperatingMarginTTM": "",
    }
    client, _ = make_client(json_handler(payload))
    overview = asyncio.run(client.fetch_overview("IBM"))

    assert overview.name == "International Business Machines"
    assert overview.website == "https://www.ibm.com"
    assert overview.market_cap == 156e9
    assert overview.pe is None
    assert overview.beta is None
    assert overview.operating_margin is None
    assert overview.eps == 8.14
    assert overview.dividend_yield == 0.0394  # already a fraction
    assert overview.profit_margin == 0.124


def test_overview_without_symbol_is_not_found():
    client, _ = make_client(json_handler({"Name": ""}))
    with pytest.raises(NotFoundError):
        asyncio.run(client.fetch_overview("ZZZZZZ"))


def test_daily_series_is_ascending():
    payload = {
        "Meta Data": {},
        "Time Series (Daily)": {
            "2024-03-08": {"1. open": "3", "2. high": "4", "3. low": "2", "4. close": "3.5", "5. volume": "100"},
            "2024-03-06": {"1. open": "1", "2. high": "2", "3. low": "1", "4. close": "1.5", "5. volume": "100"},
            "2024-03-07": {"1. open": "2", "2. high": "3", "3. low": "1", "4. close": "2.5", "5. volume": "100"},
        },
    }
    calls = []
    client, _ = make_client(json_handler(payload, calls))
    series = asyncio.run(client.fetch_time_series("IBM", interval="daily", output_size="full"))

    assert [p.date for p in series] == ["2024-03-06", "2024-03-07", "2024-03-08"]
    assert series[-1].close == 3.5
    assert calls[0].url.params["function"] == "TIME_SERIES_DAILY"
    assert calls[0].url.params["outputsize"] == "full"


def test_intraday_series_uses_interval_and_iso_datetimes():
    payload = {
        "Time Series (5min)": {
            "2024-03-08 16:00:00": {"1. open": "1", "2. high": "1", "3. low": "1", "4. close": "1", "5. volume": "1"},
            "2024-03-08 15:55:00": {"1. open": "1", "2. high": "1", "3. low": "1", "4. close": "1", "5. volume": "1"},
        },
    }
    calls = []
    client, _ = make_client(json_handler(payload, calls))
    series = asyncio.run(client.fetch_time_series("IBM", interval="5min"))

    assert [p.date for p in series] == ["2024-03-08T15:55:00", "2024-03-08T16:00:00"]
    assert calls[0].url.params["function"] == "TIME_SERIES_INTRADAY"
    assert calls[0].url.params["interval"] == "5min"


def test_indices_flag_failed_items():
    def handler(request):
        if request.url.params["symbol"] == "^DJI":
            return httpx.Response(200, json={"Global Quote": {}})
        return httpx.Response(200, json=GLOBAL_QUOTE)

    client, _ = make_client(handler)
    indices = asyncio.run(client.fetch_indices([("^GSPC", "S&P 500"), ("^DJI", "Dow Jones")]))

    assert [i.symbol for i in indices] == ["^GSPC", "^DJI"]
    assert indices[0].error is False
    assert indices[0].price == 169.45
    assert indices[1].error is True


def test_series_with_colliding_stamps_has_unique_dates():
    """Space- and T-separated stamps for one bar collapse to one point, the later entry winning."""
    bar = {"1. open": "1", "2. high": "1", "3. low": "1", "5. volume": "1"}
    payload = {
        "Time Series (60min)": {
            "2024-03-08 16:00:00": dict(bar, **{"4. close": "1"}),
            "2024-03-08 15:00:00": dict(bar, **{"4. close": "2"}),
            "2024-03-08T16:00:00": dict(bar, **{"4. close": "3"}),
        },
    }
    client, _ = make_client(json_handler(payload))
    series = asyncio.run(client.fetch_time_series("IBM", interval="60min"))

    assert [p.date for p in series] == ["2024-03-08T15:00:00", "2024-03-08T16:00:00"]
    assert series[-1].close == 3.0
