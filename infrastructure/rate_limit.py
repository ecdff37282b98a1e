# infrastructure/rate_limit.py
"""
Rate Limit Tracker - remembers which providers have told us to back off.

Each provider is either Available or RateLimited(since). The flag is set by
adapters when a provider signals throttling and is cleared lazily: the first
check after the cool-down has elapsed resets it. There is no background
timer.

While a provider is limited, adapters short-circuit without issuing a request.
"""
from __future__ import annotations

import time
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from infrastructure.logging import get_logger

log = get_logger("provider")

DEFAULT_COOLDOWN_SECONDS = 24 * 60 * 60


@dataclass
class RateLimitState:
    """Per-provider rate limit state."""
    limited: bool = False
    since: Optional[float] = None


class RateLimitTracker:
    """
    Per-provider rate limit flags with a fixed cool-down.

    Example:
        tracker = RateLimitTracker(cooldown_seconds=3600)
        tracker.mark_limited("alphavantage")
        tracker.is_limited("alphavantage")  # True for the next hour
    """

    def __init__(
        self,
        cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._states: Dict[str, RateLimitState] = {}
        self._lock = threading.Lock()

    def mark_limited(self, provider: str) -> None:
        """Record that `provider` signalled throttling just now."""
        with self._lock:
            state = self._states.setdefault(provider, RateLimitState())
            if state.limited:
                return
            state.limited = True
            state.since = self._clock()
        log.warning(f"[{provider}] rate limited, cooling down for {self.cooldown_seconds:.0f}s")

    def is_limited(self, provider: str) -> bool:
        """Check the flag, clearing it if the cool-down has elapsed."""
        with self._lock:
            state = self._states.get(provider)
            if state is None or not state.limited:
                return False
            if self._clock() - state.since >= self.cooldown_seconds:
                state.limited = False
                state.since = None
                cleared = True
            else:
                cleared = False
        if cleared:
            log.info(f"[{provider}] rate limit cool-down elapsed, retrying")
            return False
        return True

    def remaining(self, provider: str) -> float:
        """Seconds left in the cool-down (0 if available)."""
        with self._lock:
            state = self._states.get(provider)
            if state is None or not state.limited:
                return 0.0
            return max(0.0, self.cooldown_seconds - (self._clock() - state.since))

    def state(self, provider: str) -> RateLimitState:
        with self._lock:
            current = self._states.get(provider, RateLimitState())
            return RateLimitState(limited=current.limited, since=current.since)

    def reset(self, provider: Optional[str] = None) -> None:
        """Forget rate limit state for one provider, or all of them."""
        with self._lock:
            if provider is None:
                self._states.clear()
            else:
                self._states.pop(provider, None)
