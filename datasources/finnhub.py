# datasources/finnhub.py
"""
Finnhub adapter.

Requests look like GET https://finnhub.io/api/v1/<op>?symbol=<sym> with the key
in the X-Finnhub-Token header. Numbers arrive as JSON numbers; an unknown
symbol comes back as a quote full of zeros rather than an error.
"""
from __future__ import annotations

import time
import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from datasources.api_clients import (
    DEFAULT_INDICES, ProviderSession, indices_from_quotes, parse_float, parse_int, scale,
)
from datasources.errors import ConfigurationError, MarketDataError, NotFoundError, ProviderError
from datasources.models import MarketIndex, Overview, Quote, TimeSeriesPoint, normalize_series
from infrastructure.metrics import track_metrics
from infrastructure.rate_limit import RateLimitTracker

BASE_URL = "https://finnhub.io/api/v1"

DATE_RESOLUTIONS = ("D", "W", "M")


async def gather_all(*aws: Any) -> List[Any]:
    """Await every request even when one fails, then raise the first failure."""
    results = await asyncio.gather(*aws, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class FinnhubClient:
    """Finnhub API client."""

    name = "finnhub"

    def __init__(
        self,
        api_key: str,
        tracker: RateLimitTracker,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
        base_url: str = BASE_URL,
        clock: Callable[[], float] = time.time,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self._clock = clock
        self.session = ProviderSession(self.name, tracker, http=http, timeout=timeout)

    async def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make API request."""
        if not self.api_key:
            raise ConfigurationError("Finnhub API key is not configured", provider=self.name)

        try:
            data = await self.session.get_json(
                f"{self.base_url}/{endpoint}",
                params=params or {},
                headers={"X-Finnhub-Token": self.api_key},
            )
            if isinstance(data, dict) and data.get("error"):
                message = str(data["error"])
                lowered = message.lower()
                if "limit" in lowered:
                    raise self.session.rate_limited(f"Finnhub API rate limit: {message}")
                if "api key" in lowered or "token" in lowered:
                    raise ConfigurationError(f"Finnhub API key error: {message}", provider=self.name)
                raise ProviderError(f"Finnhub API error: {message}", provider=self.name)
            return data
        except Exception as e:
            self.session.log.warning(f"Finnhub error for {endpoint} with params {params}: {e}")
            raise

    async def _profile(self, symbol: str) -> Dict[str, Any]:
        profile = await self._request("stock/profile2", {"symbol": symbol})
        if not isinstance(profile, dict) or not profile.get("name"):
            raise NotFoundError(f"No profile data found for symbol: {symbol}", provider=self.name)
        return profile

    async def _profile_or_none(self, symbol: str) -> Optional[Dict[str, Any]]:
        try:
            return await self._profile(symbol)
        except MarketDataError as e:
            self.session.log.debug(f"Profile lookup for {symbol} failed, assuming USD: {e}")
            return None

    @track_metrics("quote")
    async def fetch_quote(self, symbol: str) -> Quote:
        """Get stock quote from Finnhub; the profile supplies currency and name."""
        data, profile = await gather_all(
            self._request("quote", {"symbol": symbol}),
            self._profile_or_none(symbol),
        )

        if not isinstance(data, dict) or not data or (not data.get("c") and not data.get("t")):
            raise NotFoundError(f"No quote data found for symbol: {symbol}", provider=self.name)

        stamp = parse_int(data.get("t"), "t", self.name)
        profile = profile or {}
        return Quote(
            symbol=symbol,
            price=parse_float(data.get("c"), "c", self.name, required=True),
            change=parse_float(data.get("d"), "d", self.name, required=True),
            change_percent=parse_float(data.get("dp"), "dp", self.name, required=True),
            previous_close=parse_float(data.get("pc"), "pc", self.name),
            latest_trading_day=(
                datetime.fromtimestamp(stamp, tz=timezone.utc).strftime("%Y-%m-%d") if stamp else None
            ),
            currency=profile.get("currency") or "USD",
            name=profile.get("name"),
            source=self.name,
        )

    @track_metrics("overview")
    async def fetch_overview(self, symbol: str) -> Overview:
        """Get company overview; Finnhub needs a profile and a metrics call."""
        profile, metrics = await gather_all(
            self._profile(symbol),
            self._request("stock/metric", {"symbol": symbol, "metric": "all"}),
        )
        metric = (metrics or {}).get("metric") or {}

        def num(*keys: str) -> Optional[float]:
            for key in keys:
                value = parse_float(metric.get(key), key, self.name)
                if value is not None:
                    return value
            return None

        # Finnhub reports margins, returns and yields in percent
        def pct(*keys: str) -> Optional[float]:
            return scale(num(*keys), 0.01)

        return Overview(
            symbol=profile.get("ticker") or symbol,
            name=profile["name"],
            description=profile.get("description") or "",
            exchange=profile.get("exchange") or "",
            currency=profile.get("currency") or "USD",
            country=profile.get("country") or "",
            sector=profile.get("finnhubIndustry") or "",
            industry=profile.get("finnhubIndustry") or "",
            website=profile.get("weburl") or "",
            # profile market cap is in millions
            market_cap=scale(parse_float(profile.get("marketCapitalization"), "marketCapitalization", self.name), 1e6),
            pe=num("peBasicExclExtraTTM", "peTTM"),
            eps=num("epsBasicExclExtraItemsTTM", "epsTTM"),
            beta=num("beta"),
            high_52_week=num("52WeekHigh"),
            low_52_week=num("52WeekLow"),
            dividend_yield=pct("dividendYieldIndicatedAnnual"),
            dividend_per_share=num("dividendPerShareAnnual"),
            ev_to_ebitda=num("evEbitdaTTM", "enterpriseValueEbitdaTTM"),
            profit_margin=pct("netProfitMarginTTM", "netProfitMarginAnnual"),
            operating_margin=pct("operatingMarginTTM", "operatingMarginAnnual"),
            return_on_assets=pct("roaTTM", "roaRfy"),
            return_on_equity=pct("roeTTM", "roeRfy"),
            revenue_per_share=num("revenuePerShareTTM", "revenuePerShareAnnual"),
            price_to_book=num("pbQuarterly", "pbAnnual"),
            price_to_sales=num("psTTM", "psAnnual"),
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
        Get candles for the last `lookback` seconds at `resolution`
        (1, 5, 15, 30, 60, D, W, M). `interval` and `output_size` are
        Alpha Vantage's knobs and are ignored here.
        """
        to = int(self._clock())
        data = await self._request("stock/candle", {
            "symbol": symbol,
            "resolution": resolution,
            "from": to - int(lookback),
            "to": to,
        })

        if not isinstance(data, dict) or data.get("s") == "no_data" or not data.get("t"):
            raise NotFoundError(f"No candle data found for symbol: {symbol}", provider=self.name)

        t, o, h, l, c = (data.get(k) or [] for k in ("t", "o", "h", "l", "c"))
        v = data.get("v") or []
        if not (len(t) == len(o) == len(h) == len(l) == len(c)):
            raise ProviderError(f"Mismatched candle arrays for symbol: {symbol}", provider=self.name)

        date_format = "%Y-%m-%d" if resolution in DATE_RESOLUTIONS else "%Y-%m-%dT%H:%M:%S"
        points = []
        for i, stamp in enumerate(t):
            points.append(TimeSeriesPoint(
                date=datetime.fromtimestamp(int(stamp), tz=timezone.utc).strftime(date_format),
                open=parse_float(o[i], "o", self.name, required=True),
                high=parse_float(h[i], "h", self.name, required=True),
                low=parse_float(l[i], "l", self.name, required=True),
                close=parse_float(c[i], "c", self.name, required=True),
                volume=parse_int(v[i], "v", self.name) if i < len(v) else None,
            ))
        return normalize_series(points)

    async def fetch_indices(self, indices: Optional[Sequence[Tuple[str, str]]] = None) -> List[MarketIndex]:
        """Finnhub has no batch index endpoint either; fetch each index as a quote."""
        return await indices_from_quotes(self.fetch_quote, indices or DEFAULT_INDICES, self.name)

    async def aclose(self) -> None:
        await self.session.aclose()
