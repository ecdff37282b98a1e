# datasources/__init__.py
"""
Market data layer for the dashboard.

Combines:
- Provider adapters (Alpha Vantage, Finnhub)
- Dedicated commodity / treasury / crypto lookups
- Cache, rate-limit tracking, fallback and mock substitution

Usage:
    from datasources import get_service

    service = get_service()
    quote = await service.get_quote("AAPL")

    # From sync code
    from datasources import get_quote_sync
    quote = get_quote_sync("AAPL")
"""
from __future__ import annotations

import asyncio
import concurrent.futures
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar

from datasources.errors import (
    MarketDataError, ConfigurationError, RateLimitedError, NotFoundError,
    ProviderTimeoutError, ProviderError, AllProvidersFailedError,
)
from datasources.models import (
    AssetType, Timeframe, Quote, Overview, TimeSeriesPoint, MarketIndex,
    AssetRequest, AssetComparison, MetricPoint, MetricTimeSeries, to_dict,
)
from datasources.api_clients import MarketDataProvider, build_clients
from datasources.alpha_vantage import AlphaVantageClient
from datasources.finnhub import FinnhubClient
from datasources.alt_assets import AltAssetClient
from datasources.mock_data import MockDataSynthesizer
from datasources.provider import DataProvider, DegradePolicy, FetchConfig
from datasources.market_data import MarketDataService


T = TypeVar("T")

# Process-wide service for async callers
_service: Optional[MarketDataService] = None


def get_service() -> MarketDataService:
    """Get or create the shared MarketDataService."""
    global _service
    if _service is None:
        _service = MarketDataService.from_settings()
    return _service


# Sync wrappers. Each call runs on its own event loop, so each builds (and
# closes) its own service: an httpx client cannot outlive the loop it was
# used on. The cache therefore does not carry over between sync calls.

def run_with_service(call: Callable[[MarketDataService], Awaitable[T]]) -> T:
    """
    Run `call` against a fresh service from sync code.

    Inside an already running loop (a notebook, an async web handler)
    asyncio.run() would fail, so the call runs on a worker thread instead.
    """
    async def run() -> T:
        async with MarketDataService.from_settings() as service:
            return await call(service)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(run())

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, run()).result()


def get_quote_sync(symbol: str) -> Quote:
    return run_with_service(lambda service: service.get_quote(symbol))


def get_overview_sync(symbol: str) -> Overview:
    return run_with_service(lambda service: service.get_overview(symbol))


def get_time_series_sync(symbol: str, timeframe: str = "1M") -> List[TimeSeriesPoint]:
    return run_with_service(lambda service: service.get_time_series(symbol, timeframe))


def get_indices_sync() -> List[MarketIndex]:
    return run_with_service(lambda service: service.get_indices())


def get_metric_history_sync(symbol: str, metric_names: Iterable[str]) -> List[MetricTimeSeries]:
    return run_with_service(lambda service: service.get_metric_history(symbol, metric_names))


__all__ = [
    # Service
    "MarketDataService",
    "get_service",
    "run_with_service",
    "get_quote_sync",
    "get_overview_sync",
    "get_time_series_sync",
    "get_indices_sync",
    "get_metric_history_sync",
    # Orchestration
    "DataProvider",
    "DegradePolicy",
    "FetchConfig",
    "MockDataSynthesizer",
    # Adapters
    "MarketDataProvider",
    "AlphaVantageClient",
    "FinnhubClient",
    "AltAssetClient",
    "build_clients",
    # Models
    "AssetType",
    "Timeframe",
    "Quote",
    "Overview",
    "TimeSeriesPoint",
    "MarketIndex",
    "AssetRequest",
    "AssetComparison",
    "MetricPoint",
    "MetricTimeSeries",
    "to_dict",
    # Errors
    "MarketDataError",
    "ConfigurationError",
    "RateLimitedError",
    "NotFoundError",
    "ProviderTimeoutError",
    "ProviderError",
    "AllProvidersFailedError",
]
