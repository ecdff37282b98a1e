# datasources/market_data.py
"""
Unified Market Data Service - the API the dashboard talks to.

Single fetches (quote, overview, time series) go through the orchestrator and
raise NotFoundError / AllProvidersFailedError to the caller. Batches (indices,
top stocks, comparisons) never fail as a whole: each item catches its own
failure and is either substituted with tagged mock data or flagged with
error=True.

Usage:
    async with MarketDataService.from_settings() as service:
        quote = await service.get_quote("AAPL")
        series = await service.get_time_series("AAPL", "3M")
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import httpx

from datasources.alt_assets import (
    COMMODITIES, TREASURIES, AltAssetClient, available_commodities, available_treasuries,
)
from datasources.api_clients import DEFAULT_INDICES, build_clients
from datasources.errors import MarketDataError, NotFoundError
from datasources.mock_data import MockDataSynthesizer
from datasources.models import (
    AssetComparison, AssetRequest, AssetType, MarketIndex, MetricTimeSeries, Overview, Quote,
    TimeSeriesPoint,
)
from datasources.provider import DataProvider, DegradePolicy, FetchConfig
from datasources.timeframes import TimeframeSpec, resolve_timeframe
from infrastructure.logging import service_log
from infrastructure.rate_limit import RateLimitTracker
from infrastructure.response_cache import ResponseCache
from utils.config import Settings, load_settings

TOP_STOCKS: Tuple[str, ...] = ("AAPL", "MSFT", "GOOGL", "AMZN")

QUOTE_TTL = 60
OVERVIEW_TTL = 86400
TIMESERIES_TTL = 300


def _normalize_symbol(symbol: str) -> str:
    symbol = (symbol or "").strip().upper()
    if not symbol:
        raise NotFoundError("A symbol is required")
    return symbol


def _as_request(asset: Union[AssetRequest, Mapping[str, Any]]) -> AssetRequest:
    if isinstance(asset, AssetRequest):
        return asset
    symbol = asset.get("symbol")
    if not symbol:
        raise NotFoundError("A symbol is required")
    try:
        asset_type = AssetType(asset.get("type", "stock"))
    except ValueError:
        raise NotFoundError(f"Unsupported asset type: {asset.get('type')}") from None
    return AssetRequest(symbol=symbol, type=asset_type)


class MarketDataService:
    """Quotes, overviews, series, indices and comparisons with caching and fallback."""

    def __init__(
        self,
        provider: DataProvider,
        alt_assets: Optional[AltAssetClient] = None,
        primary: Optional[str] = "alphavantage",
        fallback: Optional[str] = "finnhub",
        quote_ttl: float = QUOTE_TTL,
        overview_ttl: float = OVERVIEW_TTL,
        timeseries_ttl: float = TIMESERIES_TTL,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.provider = provider
        self.alt_assets = alt_assets
        self.primary = primary
        self.fallback = fallback
        self.quote_ttl = quote_ttl
        self.overview_ttl = overview_ttl
        self.timeseries_ttl = timeseries_ttl
        self._http = http

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        policy: Optional[DegradePolicy] = None,
    ) -> "MarketDataService":
        """Wire adapters, tracker, cache and orchestrator from configuration."""
        settings = settings or load_settings()
        policy = policy or DegradePolicy.parse(settings.degrade_policy)

        http = httpx.AsyncClient(timeout=settings.request_timeout)
        tracker = RateLimitTracker(cooldown_seconds=settings.rate_limit_cooldown)
        provider = DataProvider(
            build_clients(settings, tracker, http=http),
            ResponseCache(),
            policy=policy,
            mock=MockDataSynthesizer(),
            tracker=tracker,
        )
        alt_assets = AltAssetClient(
            settings.alphavantage_api_key, tracker, http=http, timeout=settings.request_timeout,
        )
        service_log.info(
            f"Market data service ready (primary={settings.primary_provider}, "
            f"fallback={settings.fallback_provider}, policy={policy.value})"
        )
        return cls(
            provider,
            alt_assets=alt_assets,
            primary=settings.primary_provider,
            fallback=settings.fallback_provider,
            quote_ttl=settings.quote_cache_ttl,
            overview_ttl=settings.overview_cache_ttl,
            timeseries_ttl=settings.timeseries_cache_ttl,
            http=http,
        )

    @property
    def mock(self) -> MockDataSynthesizer:
        return self.provider.mock

    def _config(self, ttl: float) -> FetchConfig:
        return FetchConfig(primary=self.primary, fallback=self.fallback, cache_duration=ttl)

    # === Single fetches ===

    async def get_quote(self, symbol: str) -> Quote:
        symbol = _normalize_symbol(symbol)
        try:
            return await self.provider.fetch("quote", {"symbol": symbol}, self._config(self.quote_ttl))
        except MarketDataError as e:
            service_log.error(f"Error fetching stock quote for {symbol}: {e}")
            raise

    async def get_overview(self, symbol: str) -> Overview:
        symbol = _normalize_symbol(symbol)
        try:
            return await self.provider.fetch("overview", {"symbol": symbol}, self._config(self.overview_ttl))
        except MarketDataError as e:
            service_log.error(f"Error fetching stock overview for {symbol}: {e}")
            raise

    async def get_time_series(self, symbol: str, timeframe: Optional[str] = "1M") -> List[TimeSeriesPoint]:
        series, _ = await self._time_series(symbol, resolve_timeframe(timeframe))
        return series

    async def _time_series(self, symbol: str, spec: TimeframeSpec) -> Tuple[List[TimeSeriesPoint], bool]:
        symbol = _normalize_symbol(symbol)
        try:
            fetched = await self.provider.fetch_with_source(
                "time_series", spec.series_params(symbol), self._config(self.timeseries_ttl),
            )
        except MarketDataError as e:
            service_log.error(f"Error fetching time series for {symbol}: {e}")
            raise
        return list(fetched.value), fetched.is_mock

    # === Batches ===

    async def get_indices(self, indices: Optional[Sequence[Tuple[str, str]]] = None) -> List[MarketIndex]:
        """Watch-list index levels; an index that fails is replaced with tagged mock data."""

        async def one(symbol: str, name: str) -> MarketIndex:
            try:
                quote = await self.get_quote(symbol)
            except MarketDataError as e:
                service_log.fetch_failed(f"Index {symbol}", e)
                return self.mock.index_quote(symbol, name)
            # a substituted stock-style quote has no index level or currency
            if quote.is_mock_data:
                return self.mock.index_quote(symbol, name)
            return MarketIndex(
                symbol=symbol,
                name=name,
                price=quote.price,
                change=quote.change,
                change_percent=quote.change_percent,
                currency=quote.currency,
            )

        return list(await asyncio.gather(*(one(s, n) for s, n in (indices or DEFAULT_INDICES))))

    async def get_top_stocks(self, symbols: Iterable[str] = TOP_STOCKS) -> List[Quote]:
        """Watch-list quotes; a stock that fails is replaced with tagged mock data."""

        async def one(symbol: str) -> Quote:
            try:
                return await self.get_quote(symbol)
            except MarketDataError as e:
                service_log.fetch_failed(f"Top stock {symbol}", e)
                return self.mock.quote(symbol)

        return list(await asyncio.gather(*(one(s) for s in symbols)))

    async def get_asset_comparison(
        self,
        assets: Iterable[Union[AssetRequest, Mapping[str, Any]]],
        timeframe: Optional[str] = "1M",
    ) -> List[AssetComparison]:
        """
        Series for each requested asset, in request order.

        Stocks and indices use the time-series path (name from the overview
        when it can be had); commodities, treasuries and crypto use the
        dedicated lookups. A failed asset comes back with error=True and no
        data, unless mock substitution is enabled.
        """
        spec = resolve_timeframe(timeframe)
        return list(await asyncio.gather(*(self._compare_one(a, spec) for a in assets)))

    async def _compare_one(
        self, asset: Union[AssetRequest, Mapping[str, Any]], spec: TimeframeSpec,
    ) -> AssetComparison:
        try:
            request = _as_request(asset)
        except NotFoundError as e:
            symbol = str(asset.get("symbol") or "")
            service_log.fetch_failed(f"Comparison request {dict(asset)}", e, fallback="an error marker")
            return AssetComparison(symbol=symbol, name=symbol, type=None, error=True)

        try:
            name, data, is_mock = await self._comparison_series(request, spec)
        except MarketDataError as e:
            what = f"Comparison data for {request.symbol}"
            if self.provider.policy is DegradePolicy.SUBSTITUTE_MOCK:
                service_log.fetch_failed(what, e)
                return AssetComparison(
                    symbol=request.symbol,
                    name=request.symbol,
                    type=request.type,
                    data=tuple(self.mock.time_series(request.symbol, spec)),
                    is_mock_data=True,
                )
            service_log.fetch_failed(what, e, fallback="an error marker")
            return AssetComparison(symbol=request.symbol, name=request.symbol, type=request.type, error=True)
        return AssetComparison(
            symbol=request.symbol, name=name, type=request.type, data=tuple(data), is_mock_data=is_mock,
        )

    async def _comparison_series(
        self, asset: AssetRequest, spec: TimeframeSpec,
    ) -> Tuple[str, List[TimeSeriesPoint], bool]:
        if asset.type in (AssetType.STOCK, AssetType.INDEX):
            data, is_mock = await self._time_series(asset.symbol, spec)
            try:
                name = (await self.get_overview(asset.symbol)).name
            except MarketDataError:
                name = asset.symbol
            return name, data, is_mock

        if self.alt_assets is None:
            raise NotFoundError(f"No lookup configured for {asset.type.value} assets")
        if asset.type is AssetType.COMMODITY:
            data = await self.alt_assets.commodity_series(asset.symbol, spec)
            return COMMODITIES.get(asset.symbol.upper(), asset.symbol), data, False
        if asset.type is AssetType.TREASURY:
            data = await self.alt_assets.treasury_series(asset.symbol, spec)
            return TREASURIES.get(asset.symbol, asset.symbol), data, False
        data = await self.alt_assets.crypto_series(asset.symbol, spec)
        return asset.symbol.upper(), data, False

    # === Derived data ===

    async def get_metric_history(self, symbol: str, metric_names: Iterable[str]) -> List[MetricTimeSeries]:
        """
        Ratio history per metric key (pe, eps, evToEbitda, profitMargin, ...).

        No provider in use publishes ratio history, so the series are
        synthetic; unknown keys give an empty series named after the key.
        """
        service_log.debug(f"Building metric history for {symbol}")
        return [self.mock.metric_history(name) for name in metric_names]

    async def get_commodity_quote(self, symbol: str, timeframe: Optional[str] = "1M") -> MarketIndex:
        """Latest commodity print and its change from the previous one."""
        return await self._alt_quote("commodity_quote", symbol, timeframe)

    async def get_treasury_quote(self, maturity: str, timeframe: Optional[str] = "1M") -> MarketIndex:
        """Latest treasury yield and its change from the previous one."""
        return await self._alt_quote("treasury_quote", maturity, timeframe)

    async def _alt_quote(self, method: str, symbol: str, timeframe: Optional[str]) -> MarketIndex:
        if self.alt_assets is None:
            raise NotFoundError(f"No lookup configured for {symbol}")
        try:
            return await getattr(self.alt_assets, method)(symbol, resolve_timeframe(timeframe))
        except MarketDataError as e:
            service_log.error(f"Error fetching {method.replace('_', ' ')} for {symbol}: {e}")
            raise

    def available_commodities(self) -> List[Dict[str, str]]:
        return available_commodities()

    def available_treasuries(self) -> List[Dict[str, str]]:
        return available_treasuries()

    # === Lifecycle ===

    def clear_cache(self) -> None:
        self.provider.cache.clear()

    async def aclose(self) -> None:
        """Close adapter sessions and the shared HTTP client."""
        for client in self.provider.providers.values():
            close = getattr(client, "aclose", None)
            if close is not None:
                await close()
        if self.alt_assets is not None:
            await self.alt_assets.aclose()
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> "MarketDataService":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
