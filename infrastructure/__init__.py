# infrastructure/__init__.py
"""
Infrastructure Layer for the market data service.

Components:
- ResponseCache: memory cache with per-read freshness windows
- RateLimitTracker: per-provider throttling flags with cool-down
- Metrics: per-call latency and success tracking
- Loguru: Structured logging

Usage:
    from infrastructure import ResponseCache, RateLimitTracker

    cache = ResponseCache()
    tracker = RateLimitTracker(cooldown_seconds=3600)
"""
from .response_cache import ResponseCache, CacheEntry
from .rate_limit import RateLimitTracker, RateLimitState, DEFAULT_COOLDOWN_SECONDS
from .metrics import (
    CallMetrics,
    track_metrics,
    get_session_metrics,
    clear_session_metrics,
    format_metrics_summary,
    provider_stats,
    ProviderStats,
)
from .logging import setup_logging, configure_from_settings, get_logger, ComponentLogger

__all__ = [
    "ResponseCache",
    "CacheEntry",
    "RateLimitTracker",
    "RateLimitState",
    "DEFAULT_COOLDOWN_SECONDS",
    "CallMetrics",
    "track_metrics",
    "get_session_metrics",
    "clear_session_metrics",
    "format_metrics_summary",
    "provider_stats",
    "ProviderStats",
    "setup_logging",
    "configure_from_settings",
    "get_logger",
    "ComponentLogger",
]
