# tests/test_mock_data.py
"""Tests for the synthetic data generator."""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import math

import pytest

from datasources.mock_data import MockDataSynthesizer, base_price
from datasources.models import OVERVIEW_RATIO_FIELDS, Timeframe
from datasources.timeframes import TIMEFRAMES, resolve_timeframe

NOW = 1709856000.0  # 2024-03-08T00:00:00Z


@pytest.fixture
def mock():
    return MockDataSynthesizer(clock=lambda: NOW)


def test_quote_is_deterministic_and_tagged(mock):
    a = mock.quote("AAPL")
    b = MockDataSynthesizer(clock=lambda: NOW).quote("AAPL")
    assert a == b
    assert a.is_mock_data is True
    assert a.source == "mock"
    assert a.price > 0
    assert -2.5 <= a.change_percent <= 2.5
    assert mock.quote("MSFT") != a


def test_aapl_overview_has_finite_fields(mock):
    overview = mock.overview("AAPL")
    assert overview.is_mock_data is True
    assert overview.name == "AAPL Inc."
    for name in OVERVIEW_RATIO_FIELDS:
        value = getattr(overview, name)
        assert value is not None, name
        assert math.isfinite(value), name
    assert overview.low_52_week < overview.high_52_week


@pytest.mark.parametrize("timeframe", list(Timeframe))
def test_time_series_shape(mock, timeframe):
    spec = TIMEFRAMES[timeframe]
    series = mock.time_series("AAPL", spec)

    dates = [p.date for p in series]
    assert len(series) == spec.mock_points
    assert dates == sorted(dates)
    assert len(set(dates)) == len(dates)
    for p in series:
        assert p.low <= min(p.open, p.close)
        assert p.high >= max(p.open, p.close)
        assert all(math.isfinite(v) for v in (p.open, p.high, p.low, p.close))


def test_time_series_ends_now(mock):
    assert mock.time_series("AAPL", resolve_timeframe("1M"))[-1].date == "2024-03-08"
    assert mock.time_series("AAPL", resolve_timeframe("1D"))[-1].date == "2024-03-08T00:00:00"


def test_index_quote_uses_baseline(mock):
    index = mock.index_quote("^FTSE", "FTSE 100")
    assert index.currency == "GBP"
    assert index.is_mock_data is True
    assert abs(index.price - 7648.98) < 7648.98 * 0.02


def test_indices_default_watch_list(mock):
    assert [i.symbol for i in mock.indices()] == ["^GSPC", "^DJI", "^IXIC", "^FTSE", "^N225", "^HSI"]


def test_metric_history(mock):
    pe = mock.metric_history("pe")
    assert pe.metric == "P/E Ratio"
    assert len(pe.data) == 20
    assert [p.date for p in pe.data] == sorted(p.date for p in pe.data)
    assert pe.data[-1].date == "2024-03-08"
    assert pe.data[-1].value == pytest.approx(15.0)  # newest point is i=0

    assert mock.metric_history("nonsense").data == ()


def test_synthesize_dispatch(mock):
    assert mock.synthesize("quote", {"symbol": "AAPL"}) == mock.quote("AAPL")
    series = mock.synthesize("time_series", resolve_timeframe("1Y").series_params("AAPL"))
    assert len(series) == 52
    with pytest.raises(ValueError):
        mock.synthesize("news", {"symbol": "AAPL"})


def test_base_price_range():
    assert 50 <= base_price("AAPL") < 1050
    assert base_price("AAPL") == base_price("AAPL")
