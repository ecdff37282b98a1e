# datasources/alpha_vantage.py
"""
Alpha Vantage adapter.

Requests look like GET https://www.alphavantage.co/query?function=<op>&symbol=<sym>&apikey=<key>.
Every number in the response is a string, and failures (bad key, throttling)
arrive as HTTP 200 with an "Error Message", "Note" or "Information" field.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from datasources.api_clients import (
    DEFAULT_INDICES, ProviderSession, indices_from_quotes, parse_float, parse_int,
)
from datasources.errors import ConfigurationError, NotFoundError, ProviderError
from datasources.models import MarketIndex, Overview, Quote, TimeSeriesPoint, normalize_series
from infrastructure.metrics import track_metrics
from infrastructure.rate_limit import RateLimitTracker

BASE_URL = "https://www.alphavantage.co/query"

RATE_LIMIT_MARKERS = ("call frequency", "rate limit", "requests per day", "api call volume")

INTRADAY_INTERVALS = ("1min", "5min", "15min", "30min", "60min")

# interval -> (function, key of the series in the response)
SERIES_FUNCTIONS: Dict[str, Tuple[str, str]] = {
    "daily": ("TIME_SERIES_DAILY", "Time Series (Daily)"),
    "weekly": ("TIME_SERIES_WEEKLY", "Weekly Time Series"),
    "monthly": ("TIME_SERIES_MONTHLY", "Monthly Time Series"),
}
SERIES_FUNCTIONS.update({
    interval: ("TIME_SERIES_INTRADAY", f"Time Series ({interval})") for interval in INTRADAY_INTERVALS
})


def check_payload(data: Any, session: ProviderSession, what: str) -> Dict[str, Any]:
    """
    Turn Alpha Vantage's in-band failure signals into typed errors.

    Shared with the commodity/treasury lookups, which use the same base URL.
    """
    name = session.name
    if not isinstance(data, dict):
        raise ProviderError(f"Unexpected response shape for {what}", provider=name)

    message = data.get("Error Message")
    if message:
        if "apikey" in message.lower() or "api key" in message.lower():
            raise ConfigurationError(f"Alpha Vantage API key error: {message}", provider=name)
        raise ProviderError(f"Alpha Vantage API error: {message}", provider=name)

    note = data.get("Note")
    if note:
        raise session.rate_limited(f"Alpha Vantage API rate limit: {note}")

    info = data.get("Information")
    if info:
        if any(marker in info.lower() for marker in RATE_LIMIT_MARKERS):
            raise session.rate_limited(f"Alpha Vantage API rate limit: {info}")
        raise ProviderError(f"Alpha Vantage API info: {info}", provider=name)

    if not data:
        raise NotFoundError(f"Empty response from Alpha Vantage for {what}", provider=name)
    return data


class AlphaVantageClient:
    """Alpha Vantage API client."""

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

    async def _request(self, function: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Make API request."""
        if not self.api_key:
            raise ConfigurationError("Alpha Vantage API key is not configured", provider=self.name)

        query = {"function": function, **(params or {}), "apikey": self.api_key}
        try:
            data = await self.session.get_json(self.base_url, params=query)
            return check_payload(data, self.session, f"{function} {params or {}}")
        except Exception as e:
            self.session.log.warning(f"Alpha Vantage error for {function} with params {params}: {e}")
            raise

    @track_metrics("quote")
    async def fetch_quote(self, symbol: str) -> Quote:
        """Get stock quote from Alpha Vantage."""
        data = await self._request("GLOBAL_QUOTE", {"symbol": symbol})
        gq = data.get("Global Quote")

        if not gq:
            raise NotFoundError(f"No quote data found for symbol: {symbol}", provider=self.name)

        return Quote(
            symbol=gq.get("01. symbol") or symbol,
            price=parse_float(gq.get("05. price"), "05. price", self.name, required=True),
            change=parse_float(gq.get("09. change"), "09. change", self.name, required=True),
            change_percent=parse_float(gq.get("10. change percent"), "10. change percent", self.name, required=True),
            volume=parse_int(gq.get("06. volume"), "06. volume", self.name),
            previous_close=parse_float(gq.get("08. previous close"), "08. previous close", self.name),
            latest_trading_day=gq.get("07. latest trading day"),
            # GLOBAL_QUOTE carries no currency
            currency="USD",
            source=self.name,
        )

    @track_metrics("overview")
    async def fetch_overview(self, symbol: str) -> Overview:
        """Get company overview from Alpha Vantage."""
        data = await self._request("OVERVIEW", {"symbol": symbol})

        if not data.get("Symbol"):
            raise NotFoundError(f"No overview data found for symbol: {symbol}", provider=self.name)

        def num(key: str) -> Optional[float]:
            return parse_float(data.get(key), key, self.name)

        return Overview(
            symbol=data["Symbol"],
            name=data.get("Name") or data["Symbol"],
            description=data.get("Description") or "",
            exchange=data.get("Exchange") or "",
            currency=data.get("Currency") or "USD",
            country=data.get("Country") or "",
            sector=data.get("Sector") or "",
            industry=data.get("Industry") or "",
            website=data.get("OfficialSite") or data.get("Website") or "",
            market_cap=num("MarketCapitalization"),
            pe=num("PERatio"),
            eps=num("EPS"),
            beta=num("Beta"),
            high_52_week=num("52WeekHigh"),
            low_52_week=num("52WeekLow"),
            dividend_yield=num("DividendYield"),
            dividend_per_share=num("DividendPerShare"),
            ev_to_ebitda=num("EVToEBITDA"),
            profit_margin=num("ProfitMargin"),
            operating_margin=num("OperatingMarginTTM"),
            return_on_assets=num("ReturnOnAssetsTTM"),
            return_on_equity=num("ReturnOnEquityTTM"),
            revenue_per_share=num("RevenuePerShareTTM"),
            price_to_book=num("PriceToBookRatio"),
            price_to_sales=num("PriceToSalesRatioTTM"),
            source=self.name,
        )

    @track_metrics("time_series")
    async def fetch_time_series(
        self,
        symbol: str,
        interval: str = "daily",
        output_size: str = "compact",
        resolution: str = "D",
        lookback: int = 2592000,
    ) -> List[TimeSeriesPoint]:
        """
        Get OHLCV bars. `interval` selects the function (intraday, daily,
        weekly, monthly); `resolution` and `lookback` are Finnhub's knobs and
        are ignored here.
        """
        function, key = SERIES_FUNCTIONS.get(interval, SERIES_FUNCTIONS["daily"])
        params: Dict[str, Any] = {"symbol": symbol, "outputsize": output_size}
        if function == "TIME_SERIES_INTRADAY":
            params["interval"] = interval

        data = await self._request(function, params)
        series = data.get(key)
        if not series:
            raise NotFoundError(f"No time series data found for symbol: {symbol}", provider=self.name)

        return normalize_series(self._bar(stamp, values) for stamp, values in series.items())

    def _bar(self, stamp: str, values: Dict[str, Any]) -> TimeSeriesPoint:
        return TimeSeriesPoint(
            date=stamp.replace(" ", "T"),
            open=parse_float(values.get("1. open"), "1. open", self.name, required=True),
            high=parse_float(values.get("2. high"), "2. high", self.name, required=True),
            low=parse_float(values.get("3. low"), "3. low", self.name, required=True),
            close=parse_float(values.get("4. close"), "4. close", self.name, required=True),
            volume=parse_int(values.get("5. volume"), "5. volume", self.name),
        )

    async def fetch_indices(self, indices: Optional[Sequence[Tuple[str, str]]] = None) -> List[MarketIndex]:
        """Alpha Vantage has no batch index endpoint; fetch each index as a quote."""
        return await indices_from_quotes(self.fetch_quote, indices or DEFAULT_INDICES, self.name)

    async def aclose(self) -> None:
        await self.session.aclose()
