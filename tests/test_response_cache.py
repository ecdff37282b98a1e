# tests/test_response_cache.py
"""Tests for the response cache."""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from infrastructure.response_cache import ResponseCache


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_make_key_is_order_independent():
    """Parameter order should not change the key."""
    a = ResponseCache.make_key("quote", {"symbol": "AAPL", "x": 1})
    b = ResponseCache.make_key("quote", {"x": 1, "symbol": "AAPL"})
    assert a == b
    assert a.startswith("quote:")
    assert ResponseCache.make_key("quote", {"symbol": "MSFT"}) != a


def test_entry_fresh_within_window():
    """An entry is served while younger than max_age and not after."""
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("k", "v")

    clock.now += 59
    assert cache.get("k", max_age=60) == "v"

    clock.now += 1
    assert cache.get("k", max_age=60) is None


def test_freshness_is_decided_per_read():
    """The same entry can be stale for one caller and fresh for another."""
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("k", "v")
    clock.now += 120

    assert cache.get("k", max_age=60) is None
    assert cache.get("k", max_age=86400) == "v"


def test_set_overwrites_and_restamps():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("k", "old")
    clock.now += 50
    cache.set("k", "new")
    clock.now += 50

    assert cache.get("k", max_age=60) == "new"
    assert len(cache) == 1


def test_clear_and_stats():
    cache = ResponseCache(clock=FakeClock())
    cache.set("a", 1)
    cache.get("a", max_age=10)
    cache.get("b", max_age=10)

    assert cache.stats == {"hits": 1, "misses": 1, "size": 1}
    cache.clear()
    assert cache.get("a", max_age=10) is None
    assert cache.stats["size"] == 0
