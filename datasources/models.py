# datasources/models.py
"""
Canonical, provider-agnostic market data models.

Conventions:
- change_percent is always in percent (1.5 means +1.5%).
- Overview ratios (yields, margins, returns) are fractions (0.25 means 25%).
- Missing numeric values are None, never 0 or NaN.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Iterable, List, Optional, Tuple
from enum import Enum


class AssetType(Enum):
    """Asset classes accepted by the comparison view."""
    STOCK = "stock"
    COMMODITY = "commodity"
    TREASURY = "treasury"
    CRYPTO = "crypto"
    INDEX = "index"


class Timeframe(Enum):
    """Coarse UI-facing duration selector."""
    ONE_DAY = "1D"
    ONE_WEEK = "1W"
    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    ONE_YEAR = "1Y"
    FIVE_YEARS = "5Y"


@dataclass(frozen=True)
class Quote:
    """Latest price snapshot for a symbol."""
    symbol: str
    price: float
    change: float
    change_percent: float
    volume: Optional[int] = None
    previous_close: Optional[float] = None
    latest_trading_day: Optional[str] = None
    currency: str = "USD"
    name: Optional[str] = None
    source: str = ""
    is_mock_data: bool = False


@dataclass(frozen=True)
class Overview:
    """Company profile and key financial ratios."""
    symbol: str
    name: str
    description: str = ""
    exchange: str = ""
    currency: str = "USD"
    country: str = ""
    sector: str = ""
    industry: str = ""
    website: str = ""
    market_cap: Optional[float] = None
    pe: Optional[float] = None
    eps: Optional[float] = None
    beta: Optional[float] = None
    high_52_week: Optional[float] = None
    low_52_week: Optional[float] = None
    dividend_yield: Optional[float] = None
    dividend_per_share: Optional[float] = None
    ev_to_ebitda: Optional[float] = None
    profit_margin: Optional[float] = None
    operating_margin: Optional[float] = None
    return_on_assets: Optional[float] = None
    return_on_equity: Optional[float] = None
    revenue_per_share: Optional[float] = None
    price_to_book: Optional[float] = None
    price_to_sales: Optional[float] = None
    source: str = ""
    is_mock_data: bool = False


OVERVIEW_RATIO_FIELDS = (
    "market_cap", "pe", "eps", "beta", "high_52_week", "low_52_week",
    "dividend_yield", "dividend_per_share", "ev_to_ebitda", "profit_margin",
    "operating_margin", "return_on_assets", "return_on_equity",
    "revenue_per_share", "price_to_book", "price_to_sales",
)


@dataclass(frozen=True)
class TimeSeriesPoint:
    """One OHLCV bar. `date` is ISO-8601 (date, or datetime for intraday)."""
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: Optional[int] = None


@dataclass(frozen=True)
class MarketIndex:
    """Index level; `error` marks an index that failed to load."""
    symbol: str
    name: str
    price: float
    change: float
    change_percent: float
    currency: str = "USD"
    error: bool = False
    is_mock_data: bool = False


@dataclass(frozen=True)
class AssetRequest:
    """One asset requested for comparison."""
    symbol: str
    type: AssetType = AssetType.STOCK


@dataclass(frozen=True)
class AssetComparison:
    """Time series for one compared asset."""
    symbol: str
    name: str
    # None when the request named an asset type we do not know
    type: Optional[AssetType]
    data: Tuple[TimeSeriesPoint, ...] = ()
    error: bool = False
    color: Optional[str] = None
    is_mock_data: bool = False


@dataclass(frozen=True)
class MetricPoint:
    date: str
    value: float


@dataclass(frozen=True)
class MetricTimeSeries:
    """History of a named financial metric, ascending by date."""
    metric: str
    data: Tuple[MetricPoint, ...] = field(default_factory=tuple)


def normalize_series(points: Iterable[TimeSeriesPoint]) -> List[TimeSeriesPoint]:
    """
    Sort ascending by date and drop duplicate dates (the last one wins).

    Dates are ISO-8601 strings of a single shape per series, so lexical order
    is chronological order.
    """
    by_date: Dict[str, TimeSeriesPoint] = {}
    for point in points:
        by_date[point.date] = point
    return [by_date[d] for d in sorted(by_date)]


def to_dict(value: Any) -> Any:
    """Convert models (or lists of models) into JSON-friendly structures."""
    if isinstance(value, (list, tuple)):
        return [to_dict(v) for v in value]
    if hasattr(value, "__dataclass_fields__"):
        return {k: _plain(v) for k, v in asdict(value).items()}
    return _plain(value)


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
