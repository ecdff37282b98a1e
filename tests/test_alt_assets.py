# tests/test_alt_assets.py
"""Tests for the commodity, treasury and crypto lookups."""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

import httpx
import pytest

from datasources.alt_assets import AltAssetClient, available_commodities, available_treasuries
from datasources.errors import NotFoundError, ProviderError, RateLimitedError
from datasources.timeframes import resolve_timeframe
from infrastructure.rate_limit import RateLimitTracker


def make_client(payload, calls=None, tracker=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        return httpx.Response(200, json=payload)

    tracker = tracker or RateLimitTracker()
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AltAssetClient("demo", tracker, http=http), tracker


WTI_DAILY = {
    "name": "Crude Oil Prices WTI",
    "interval": "daily",
    "unit": "dollars per barrel",
    "data": [
        {"date": "2024-03-08", "value": "78.01"},
        {"date": "2024-03-07", "value": "78.93"},
        {"date": "2024-03-06", "value": "."},
        {"date": "2024-02-01", "value": "73.82"},
    ],
}


def test_commodity_series_skips_gaps_and_trims_window():
    calls = []
    client, _ = make_client(WTI_DAILY, calls)
    series = asyncio.run(client.commodity_series("wti", resolve_timeframe("1M")))

    assert [p.date for p in series] == ["2024-03-07", "2024-03-08"]
    assert series[-1].close == 78.01
    assert series[-1].open == series[-1].high == series[-1].low == 78.01
    assert calls[0].url.params["function"] == "WTI"
    assert calls[0].url.params["interval"] == "daily"


def test_non_energy_commodities_use_monthly():
    calls = []
    client, _ = make_client({"data": [{"date": "2024-03-01", "value": "8500"}]}, calls)
    asyncio.run(client.commodity_series("COPPER", resolve_timeframe("1D")))
    assert calls[0].url.params["interval"] == "monthly"


def test_unknown_commodity_makes_no_request():
    calls = []
    client, _ = make_client(WTI_DAILY, calls)
    with pytest.raises(NotFoundError):
        asyncio.run(client.commodity_series("GOLDBUGS", resolve_timeframe("1M")))
    assert calls == []


def test_treasury_quote_compares_last_two_points():
    calls = []
    payload = {"data": [{"date": "2024-03-08", "value": "4.08"}, {"date": "2024-03-07", "value": "4.00"}]}
    client, _ = make_client(payload, calls)
    quote = asyncio.run(client.treasury_quote("10year", resolve_timeframe("1M")))

    assert quote.symbol == "TREASURY_10year"
    assert quote.name == "10-Year Treasury Yield"
    assert quote.price == 4.08
    assert quote.change == pytest.approx(0.08)
    assert quote.change_percent == pytest.approx(2.0)
    assert calls[0].url.params["function"] == "TREASURY_YIELD"
    assert calls[0].url.params["maturity"] == "10year"


def test_commodity_quote():
    client, _ = make_client(WTI_DAILY)
    quote = asyncio.run(client.commodity_quote("WTI", resolve_timeframe("1M")))
    assert quote.name == "Crude Oil (WTI)"
    assert quote.change == pytest.approx(78.01 - 78.93)


def test_crypto_series():
    calls = []
    payload = {
        "Meta Data": {},
        "Time Series (Digital Currency Daily)": {
            "2024-03-08": {"1. open": "66000", "2. high": "68000", "3. low": "65500", "4. close": "67800", "5. volume": "1200.5"},
            "2024-03-07": {"1. open": "65000", "2. high": "66500", "3. low": "64000", "4. close": "66000", "5. volume": "1100"},
        },
    }
    client, _ = make_client(payload, calls)
    series = asyncio.run(client.crypto_series("btc", resolve_timeframe("1M")))

    assert [p.date for p in series] == ["2024-03-07", "2024-03-08"]
    assert series[-1].close == 67800
    assert series[-1].volume == 1200
    assert calls[0].url.params["function"] == "DIGITAL_CURRENCY_DAILY"
    assert calls[0].url.params["symbol"] == "BTC"
    assert calls[0].url.params["market"] == "USD"


def test_rate_limit_is_shared_with_stock_adapter():
    """The lookups and the stock adapter share Alpha Vantage's tracker entry."""
    client, tracker = make_client({"Note": "API call frequency exceeded"})
    with pytest.raises(RateLimitedError):
        asyncio.run(client.treasury_series("2year", resolve_timeframe("1M")))
    assert tracker.is_limited("alphavantage")


def test_available_lists():
    commodities = available_commodities()
    assert len(commodities) == 10
    assert {"symbol": "WTI", "name": "Crude Oil (WTI)"} in commodities
    assert [t["symbol"] for t in available_treasuries()] == ["3month", "2year", "5year", "7year", "10year", "30year"]


@pytest.mark.parametrize("payload, method, symbol", [
    ({"data": [{"date": "not-a-date", "value": "1.0"}]}, "commodity_series", "WTI"),
    ({"data": ["2024-03-08"]}, "treasury_series", "10year"),
    ({"Time Series (Digital Currency Daily)": {"2024-03-08": "67800"}}, "crypto_series", "BTC"),
])
def test_malformed_payload_is_provider_error(payload, method, symbol):
    client, _ = make_client(payload)
    with pytest.raises(ProviderError):
        asyncio.run(getattr(client, method)(symbol, resolve_timeframe("1M")))
