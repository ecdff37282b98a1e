# infrastructure/response_cache.py
"""
Response Cache - process-wide memory cache for normalized provider results.

Keys are the logical endpoint plus the JSON-serialized parameter set, so
the same request shape always maps to the same entry:

    quote:{"symbol": "AAPL"}
    time_series:{"interval": "daily", "lookback": 2592000, ...}

Freshness is decided by the caller: every read passes the maximum age it is
willing to accept (60s for quotes, a day for company overviews). Entries are
never evicted by size; they live until `clear()` or process exit.
"""
from __future__ import annotations

import json
import time
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    """A cached value and the moment it was captured."""
    key: str
    value: Any
    captured_at: float


class ResponseCache:
    """
    Memory cache with per-read freshness windows.

    Example:
        cache = ResponseCache()
        key = cache.make_key("quote", {"symbol": "AAPL"})
        cache.set(key, quote)
        cache.get(key, max_age=60)
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self._stats = {"hits": 0, "misses": 0}

    @staticmethod
    def make_key(endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Generate a deterministic cache key."""
        return f"{endpoint}:{json.dumps(params or {}, sort_keys=True, default=str)}"

    def get(self, key: str, max_age: float) -> Optional[Any]:
        """Return the cached value if it is younger than `max_age` seconds."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or self._clock() - entry.captured_at >= max_age:
                self._stats["misses"] += 1
                return None
            self._stats["hits"] += 1
            return entry.value

    def set(self, key: str, value: Any) -> None:
        """Store a value, replacing any previous entry for the key."""
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, captured_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {**self._stats, "size": len(self._entries)}
