# datasources/alt_assets.py
"""
Dedicated lookups for asset classes that do not fit the stock time-series
endpoints: commodities, treasury yields and crypto.

All three are served by Alpha Vantage, so they share its rate-limit state,
but their payloads differ from TIME_SERIES_*:

    commodities / TREASURY_YIELD -> {"data": [{"date": "2024-01-02", "value": "73.81"}, ...]}
    DIGITAL_CURRENCY_*           -> {"Time Series (Digital Currency Daily)": {date: {...}}}

Full histories come back regardless of the window the UI asked for, so every
series is trimmed to the timeframe's lookback measured from its newest point.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from datasources.alpha_vantage import BASE_URL, check_payload
from datasources.api_clients import ProviderSession, parse_float, parse_int
from datasources.errors import ConfigurationError, MarketDataError, NotFoundError, ProviderError
from datasources.models import MarketIndex, TimeSeriesPoint, normalize_series
from datasources.timeframes import TimeframeSpec
from infrastructure.logging import alt_assets_log
from infrastructure.metrics import track_metrics
from infrastructure.rate_limit import RateLimitTracker

COMMODITIES: Dict[str, str] = {
    "WTI": "Crude Oil (WTI)",
    "BRENT": "Crude Oil (Brent)",
    "NATURAL_GAS": "Natural Gas",
    "COPPER": "Copper",
    "ALUMINUM": "Aluminum",
    "WHEAT": "Wheat",
    "CORN": "Corn",
    "COTTON": "Cotton",
    "SUGAR": "Sugar",
    "COFFEE": "Coffee",
}

# Only the energy series are published daily/weekly; the rest are monthly at best
FINE_GRAINED_COMMODITIES = ("WTI", "BRENT", "NATURAL_GAS")

TREASURIES: Dict[str, str] = {
    "3month": "3-Month Treasury",
    "2year": "2-Year Treasury",
    "5year": "5-Year Treasury",
    "7year": "7-Year Treasury",
    "10year": "10-Year Treasury",
    "30year": "30-Year Treasury",
}

CRYPTO_FUNCTIONS: Dict[str, tuple] = {
    "daily": ("DIGITAL_CURRENCY_DAILY", "Time Series (Digital Currency Daily)"),
    "weekly": ("DIGITAL_CURRENCY_WEEKLY", "Time Series (Digital Currency Weekly)"),
    "monthly": ("DIGITAL_CURRENCY_MONTHLY", "Time Series (Digital Currency Monthly)"),
}


def available_commodities() -> List[Dict[str, str]]:
    return [{"symbol": symbol, "name": name} for symbol, name in COMMODITIES.items()]


def available_treasuries() -> List[Dict[str, str]]:
    return [{"symbol": symbol, "name": name} for symbol, name in TREASURIES.items()]


def trim_to_window(points: List[TimeSeriesPoint], lookback: int) -> List[TimeSeriesPoint]:
    """Keep the points within `lookback` seconds of the newest one (input ascending)."""
    if not points:
        return points
    newest = datetime.fromisoformat(points[-1].date)
    cutoff = newest - timedelta(seconds=lookback)
    return [p for p in points if datetime.fromisoformat(p.date) >= cutoff]


class AltAssetClient:
    """Commodity, treasury and crypto series from Alpha Vantage."""

    name = "alphavantage"

    def __init__(
        self,
        api_key: str,
        tracker: RateLimitTracker,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        base_url: str = BASE_URL,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.session = ProviderSession(self.name, tracker, http=http, timeout=timeout)

    async def _request(self, function: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise ConfigurationError("Alpha Vantage API key is not configured", provider=self.name)
        query = {"function": function, **params, "apikey": self.api_key}
        try:
            data = await self.session.get_json(self.base_url, params=query)
            return check_payload(data, self.session, f"{function} {params}")
        except Exception as e:
            alt_assets_log.warning(f"Alpha Vantage error for {function} with params {params}: {e}")
            raise

    def _parsed(self, what: str, build: Callable[[], List[TimeSeriesPoint]], lookback: int) -> List[TimeSeriesPoint]:
        """Run a payload parser and trim its result; a malformed payload becomes ProviderError."""
        try:
            return trim_to_window(build(), lookback)
        except MarketDataError:
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            alt_assets_log.warning(f"Malformed Alpha Vantage payload for {what}: {e}")
            raise ProviderError(f"Malformed payload for {what}: {e}", provider=self.name) from e

    def _value_points(self, rows: Iterable[Dict[str, Any]]) -> List[TimeSeriesPoint]:
        points = []
        for row in rows:
            value = parse_float(row.get("value"), "value", self.name)
            # "." marks a day without a print
            if value is None or not row.get("date"):
                continue
            points.append(TimeSeriesPoint(date=row["date"], open=value, high=value, low=value, close=value))
        return normalize_series(points)

    @track_metrics("commodity_series")
    async def commodity_series(self, symbol: str, spec: TimeframeSpec) -> List[TimeSeriesPoint]:
        symbol = symbol.upper()
        if symbol not in COMMODITIES:
            raise NotFoundError(f"Unsupported commodity symbol: {symbol}", provider=self.name)

        interval = spec.alt_interval if symbol in FINE_GRAINED_COMMODITIES else "monthly"
        data = await self._request(symbol, {"interval": interval})
        rows = data.get("data")
        if not isinstance(rows, list) or not rows:
            raise NotFoundError(f"No time series data found for commodity: {symbol}", provider=self.name)
        return self._parsed(f"commodity {symbol}", lambda: self._value_points(rows), spec.lookback)

    @track_metrics("treasury_series")
    async def treasury_series(self, maturity: str, spec: TimeframeSpec) -> List[TimeSeriesPoint]:
        if maturity not in TREASURIES:
            raise NotFoundError(f"Unsupported treasury maturity: {maturity}", provider=self.name)

        data = await self._request("TREASURY_YIELD", {"interval": spec.alt_interval, "maturity": maturity})
        rows = data.get("data")
        if not isinstance(rows, list) or not rows:
            raise NotFoundError(f"No time series data found for treasury: {maturity}", provider=self.name)
        return self._parsed(f"treasury {maturity}", lambda: self._value_points(rows), spec.lookback)

    @track_metrics("crypto_series")
    async def crypto_series(self, symbol: str, spec: TimeframeSpec, market: str = "USD") -> List[TimeSeriesPoint]:
        function, key = CRYPTO_FUNCTIONS[spec.alt_interval]
        data = await self._request(function, {"symbol": symbol.upper(), "market": market})
        series = data.get(key)
        if not series:
            raise NotFoundError(f"No time series data found for crypto: {symbol}", provider=self.name)

        def field(values: Dict[str, Any], short: str, legacy: str, required: bool = True) -> Optional[float]:
            raw = values.get(short, values.get(legacy))
            return parse_float(raw, short, self.name, required=required)

        def build() -> List[TimeSeriesPoint]:
            return normalize_series(
                TimeSeriesPoint(
                    date=stamp,
                    open=field(values, "1. open", f"1a. open ({market})"),
                    high=field(values, "2. high", f"2a. high ({market})"),
                    low=field(values, "3. low", f"3a. low ({market})"),
                    close=field(values, "4. close", f"4a. close ({market})"),
                    volume=parse_int(values.get("5. volume"), "5. volume", self.name),
                )
                for stamp, values in series.items()
            )

        return self._parsed(f"crypto {symbol}", build, spec.lookback)

    def _latest_change(self, symbol: str, name: str, points: List[TimeSeriesPoint]) -> MarketIndex:
        if len(points) < 2:
            raise ProviderError(f"Insufficient data for {symbol}", provider=self.name)
        latest, previous = points[-1], points[-2]
        change = latest.close - previous.close
        change_percent = (change / previous.close) * 100 if previous.close else 0.0
        return MarketIndex(
            symbol=symbol,
            name=name,
            price=latest.close,
            change=change,
            change_percent=change_percent,
        )

    async def commodity_quote(self, symbol: str, spec: TimeframeSpec) -> MarketIndex:
        """Latest commodity print versus the one before it."""
        points = await self.commodity_series(symbol, spec)
        return self._latest_change(symbol.upper(), COMMODITIES[symbol.upper()], points)

    async def treasury_quote(self, maturity: str, spec: TimeframeSpec) -> MarketIndex:
        """Latest treasury yield versus the one before it."""
        points = await self.treasury_series(maturity, spec)
        return self._latest_change(f"TREASURY_{maturity}", f"{TREASURIES[maturity]} Yield", points)

    async def aclose(self) -> None:
        await self.session.aclose()
