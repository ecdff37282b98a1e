# datasources/timeframes.py
"""
Timeframe mapping - converts the UI's 1D/1W/1M/3M/1Y/5Y selector into the
knobs each provider understands.

The table is total: anything unrecognized maps to the 1M row.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from datasources.models import Timeframe

DAY = 86400


@dataclass(frozen=True)
class TimeframeSpec:
    """Provider parameters for one timeframe."""
    timeframe: Timeframe
    interval: str       # Alpha Vantage interval (5min, 60min, daily, weekly, monthly)
    output_size: str    # Alpha Vantage outputsize (compact, full)
    resolution: str     # Finnhub candle resolution (5, 60, D, W, M)
    lookback: int       # window length in seconds
    alt_interval: str   # commodity / treasury / crypto interval (daily, weekly, monthly)
    mock_points: int    # number of synthetic points
    mock_volatility: float

    def series_params(self, symbol: str) -> Dict[str, Any]:
        """Keyword arguments for MarketDataProvider.fetch_time_series."""
        return {
            "symbol": symbol,
            "interval": self.interval,
            "output_size": self.output_size,
            "resolution": self.resolution,
            "lookback": self.lookback,
        }


TIMEFRAMES: Dict[Timeframe, TimeframeSpec] = {
    Timeframe.ONE_DAY: TimeframeSpec(Timeframe.ONE_DAY, "5min", "compact", "5", DAY, "daily", 24, 0.005),
    Timeframe.ONE_WEEK: TimeframeSpec(Timeframe.ONE_WEEK, "60min", "compact", "60", 7 * DAY, "daily", 7, 0.01),
    Timeframe.ONE_MONTH: TimeframeSpec(Timeframe.ONE_MONTH, "daily", "compact", "D", 30 * DAY, "daily", 30, 0.02),
    Timeframe.THREE_MONTHS: TimeframeSpec(Timeframe.THREE_MONTHS, "daily", "compact", "D", 90 * DAY, "daily", 90, 0.03),
    Timeframe.ONE_YEAR: TimeframeSpec(Timeframe.ONE_YEAR, "weekly", "compact", "W", 365 * DAY, "weekly", 52, 0.05),
    Timeframe.FIVE_YEARS: TimeframeSpec(Timeframe.FIVE_YEARS, "monthly", "full", "M", 1825 * DAY, "monthly", 60, 0.1),
}

DEFAULT_TIMEFRAME = Timeframe.ONE_MONTH


def parse_timeframe(value: Optional[Union[str, Timeframe]]) -> Timeframe:
    """Coerce user input to a Timeframe, defaulting to 1M."""
    if isinstance(value, Timeframe):
        return value
    try:
        return Timeframe((value or "").strip().upper())
    except ValueError:
        return DEFAULT_TIMEFRAME


def resolve_timeframe(value: Optional[Union[str, Timeframe]]) -> TimeframeSpec:
    return TIMEFRAMES[parse_timeframe(value)]


def spec_for_lookback(lookback: Optional[int]) -> TimeframeSpec:
    """Find the row whose window is `lookback` seconds (each window is unique)."""
    for spec in TIMEFRAMES.values():
        if spec.lookback == lookback:
            return spec
    return TIMEFRAMES[DEFAULT_TIMEFRAME]
