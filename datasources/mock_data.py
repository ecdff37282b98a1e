# datasources/mock_data.py
"""
Synthetic market data for development and for degraded operation.

Every value is derived from a seed built from (endpoint, symbol), so the same
request always produces the same numbers within a process and across runs.
Dates are anchored to the injected clock. Everything returned is tagged
is_mock_data=True and every number is finite.
"""
from __future__ import annotations

import math
import time
import zlib
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from datasources.api_clients import DEFAULT_INDICES
from datasources.models import (
    MarketIndex, MetricPoint, MetricTimeSeries, Overview, Quote, TimeSeriesPoint, normalize_series,
)
from datasources.timeframes import TimeframeSpec, spec_for_lookback
from infrastructure.logging import mock_log

SOURCE = "mock"

# Index levels the synthetic index quotes wander around: symbol -> (level, currency)
INDEX_BASELINES: Dict[str, Tuple[float, str]] = {
    "^GSPC": (5021.84, "USD"),
    "^DJI": (38671.69, "USD"),
    "^IXIC": (15990.66, "USD"),
    "^FTSE": (7648.98, "GBP"),
    "^N225": (35751.42, "JPY"),
    "^HSI": (16788.55, "HKD"),
}

METRIC_POINTS = 20
METRIC_STEP = timedelta(days=30)

# metric key -> (display name, value at index i, where i=0 is the newest point)
METRIC_TEMPLATES: Dict[str, Tuple[str, Callable[[int], float]]] = {
    "pe": ("P/E Ratio", lambda i: 15 + math.sin(i) * 5),
    "eps": ("EPS", lambda i: 2 + math.cos(i) * 0.5),
    "evToEbitda": ("EV/EBITDA", lambda i: 10 + math.sin(i * 0.5) * 2),
    "profitMargin": ("Profit Margin", lambda i: 0.15 + math.cos(i * 0.3) * 0.05),
    "dividendYield": ("Dividend Yield", lambda i: 0.02 + math.sin(i * 0.4) * 0.005),
    "operatingMargin": ("Operating Margin", lambda i: 0.15 + math.cos(i * 0.3) * 0.04),
    "returnOnEquity": ("Return on Equity", lambda i: 0.12 + math.sin(i * 0.3) * 0.03),
    "returnOnAssets": ("Return on Assets", lambda i: 0.08 + math.cos(i * 0.4) * 0.02),
    "priceToBook": ("Price/Book", lambda i: 2.5 + math.sin(i * 0.5) * 0.5),
}


def base_price(symbol: str) -> float:
    """Stable per-symbol price level between 50 and 1049."""
    return float(sum(ord(c) for c in symbol) % 1000 + 50)


class MockDataSynthesizer:
    """Deterministic generator for every endpoint the orchestrator serves."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def _rng(self, endpoint: str, symbol: str) -> random.Random:
        return random.Random(zlib.crc32(f"{endpoint}:{symbol}".encode("utf-8")))

    def _now(self) -> datetime:
        return datetime.fromtimestamp(self._clock(), tz=timezone.utc)

    def quote(self, symbol: str) -> Quote:
        rng = self._rng("quote", symbol)
        price = base_price(symbol) * (1 + rng.uniform(-0.05, 0.05))
        change_percent = rng.uniform(-2.5, 2.5)
        previous_close = price / (1 + change_percent / 100)
        return Quote(
            symbol=symbol,
            price=round(price, 2),
            change=round(price - previous_close, 2),
            change_percent=round(change_percent, 2),
            volume=rng.randint(100_000, 10_000_000),
            previous_close=round(previous_close, 2),
            latest_trading_day=self._now().strftime("%Y-%m-%d"),
            currency="USD",
            name=f"{symbol} Inc.",
            source=SOURCE,
            is_mock_data=True,
        )

    def overview(self, symbol: str) -> Overview:
        rng = self._rng("overview", symbol)
        price = base_price(symbol)
        return Overview(
            symbol=symbol,
            name=f"{symbol} Inc.",
            description=f"This is a mock description for {symbol}",
            exchange="NASDAQ",
            currency="USD",
            country="US",
            sector="Technology",
            industry="Software",
            website="https://example.com",
            market_cap=2e12,
            pe=25 + rng.random() * 10,
            eps=5 + rng.random() * 2,
            beta=1 + rng.random() * 0.5,
            high_52_week=price * (1.2 + rng.random() * 0.1),
            low_52_week=price * (0.8 - rng.random() * 0.1),
            dividend_yield=0.01 + rng.random() * 0.01,
            dividend_per_share=0.5 + rng.random() * 0.5,
            ev_to_ebitda=15 + rng.random() * 5,
            profit_margin=0.2 + rng.random() * 0.1,
            operating_margin=0.25 + rng.random() * 0.1,
            return_on_assets=0.1 + rng.random() * 0.05,
            return_on_equity=0.15 + rng.random() * 0.1,
            revenue_per_share=20 + rng.random() * 10,
            price_to_book=5 + rng.random() * 2,
            price_to_sales=4 + rng.random() * 2,
            source=SOURCE,
            is_mock_data=True,
        )

    def time_series(self, symbol: str, spec: TimeframeSpec) -> List[TimeSeriesPoint]:
        """
        Random walk of `spec.mock_points` bars spread evenly over the
        timeframe's window and ending now.
        """
        rng = self._rng(f"time_series:{spec.timeframe.value}", symbol)
        points = spec.mock_points
        step = timedelta(seconds=spec.lookback / points)
        intraday = spec.interval.endswith("min")
        date_format = "%Y-%m-%dT%H:%M:%S" if intraday else "%Y-%m-%d"
        start = self._now() - step * (points - 1)
        vol = spec.mock_volatility

        bars = []
        close = base_price(symbol)
        for i in range(points):
            open_ = close
            close = max(open_ * (1 + rng.uniform(-vol, vol)), 0.01)
            bars.append(TimeSeriesPoint(
                date=(start + step * i).strftime(date_format),
                open=round(open_, 2),
                high=round(max(open_, close) * (1 + rng.uniform(0, vol / 2)), 2),
                low=round(min(open_, close) * (1 - rng.uniform(0, vol / 2)), 2),
                close=round(close, 2),
                volume=rng.randint(100_000, 10_000_000),
            ))
        return normalize_series(bars)

    def index_quote(self, symbol: str, name: Optional[str] = None) -> MarketIndex:
        level, currency = INDEX_BASELINES.get(symbol, (base_price(symbol), "USD"))
        rng = self._rng("index", symbol)
        change_percent = rng.uniform(-1.5, 1.5)
        change = level * change_percent / 100
        return MarketIndex(
            symbol=symbol,
            name=name or symbol,
            price=round(level + change, 2),
            change=round(change, 2),
            change_percent=round(change_percent, 2),
            currency=currency,
            is_mock_data=True,
        )

    def indices(self, indices: Optional[Sequence[Tuple[str, str]]] = None) -> List[MarketIndex]:
        return [self.index_quote(symbol, name) for symbol, name in (indices or DEFAULT_INDICES)]

    def metric_history(self, metric: str) -> MetricTimeSeries:
        """20 monthly points ending today; unknown metrics give an empty series."""
        template = METRIC_TEMPLATES.get(metric)
        if template is None:
            return MetricTimeSeries(metric=metric, data=())

        display, value = template
        now = self._now()
        data = [
            MetricPoint(date=(now - METRIC_STEP * i).strftime("%Y-%m-%d"), value=value(i))
            for i in reversed(range(METRIC_POINTS))
        ]
        return MetricTimeSeries(metric=display, data=tuple(data))

    def synthesize(self, endpoint: str, params: Dict[str, Any]) -> Any:
        """Stand-in for a provider call to `endpoint` with the orchestrator's params."""
        symbol = params.get("symbol") or "AAPL"
        mock_log.debug(f"Synthesizing {endpoint} for {params}")

        if endpoint == "quote":
            return self.quote(symbol)
        if endpoint == "overview":
            return self.overview(symbol)
        if endpoint == "time_series":
            return self.time_series(symbol, spec_for_lookback(params.get("lookback")))
        if endpoint == "indices":
            return self.indices(params.get("indices"))
        raise ValueError(f"No mock data template for endpoint: {endpoint}")
