# infrastructure/metrics.py
"""
Per-call metrics for provider adapters.

Each decorated adapter operation appends one CallMetrics record to a
process-wide list: which provider, which operation, how long it took and
whether (and how) it failed. Rate-limit short-circuits show up as failures
with near-zero latency.
"""
from __future__ import annotations

import time
import functools
from typing import Callable, Dict, List, Optional
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class CallMetrics:
    """One adapter call."""
    provider: str
    operation: str
    latency_ms: float = 0.0
    success: bool = True
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class ProviderStats:
    """Aggregate over all calls to one provider."""
    calls: int = 0
    failures: int = 0
    total_latency_ms: float = 0.0

    @property
    def avg_latency_ms(self) -> float:
        return self.total_latency_ms / self.calls if self.calls else 0.0


_session_metrics: List[CallMetrics] = []


def get_session_metrics() -> List[CallMetrics]:
    return _session_metrics.copy()


def clear_session_metrics() -> None:
    _session_metrics.clear()


def add_metrics(metrics: CallMetrics) -> None:
    _session_metrics.append(metrics)


def track_metrics(operation: str):
    """
    Record latency and outcome of an async adapter method.

    The provider is the bound instance's `name`; exceptions are recorded as
    "ErrorType: message" and re-raised unchanged.

    Usage:
        class FinnhubClient:
            name = "finnhub"

            @track_metrics("quote")
            async def fetch_quote(self, symbol):
                ...
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            start = time.perf_counter()
            error = None
            try:
                return await func(self, *args, **kwargs)
            except Exception as e:
                error = f"{type(e).__name__}: {e}"
                raise
            finally:
                add_metrics(CallMetrics(
                    provider=getattr(self, "name", type(self).__name__),
                    operation=operation,
                    latency_ms=(time.perf_counter() - start) * 1000,
                    success=error is None,
                    error=error,
                ))
        return wrapper
    return decorator


def provider_stats(metrics: Optional[List[CallMetrics]] = None) -> Dict[str, ProviderStats]:
    """Group calls by provider, in first-seen order."""
    stats: Dict[str, ProviderStats] = {}
    for m in get_session_metrics() if metrics is None else metrics:
        s = stats.setdefault(m.provider, ProviderStats())
        s.calls += 1
        s.failures += 0 if m.success else 1
        s.total_latency_ms += m.latency_ms
    return stats


def format_metrics_summary() -> str:
    """Render per-provider totals followed by every call."""
    metrics = get_session_metrics()

    if not metrics:
        return "[Metrics] No metrics collected"

    success_count = sum(1 for m in metrics if m.success)
    lines = [
        "=" * 60,
        "PROVIDER CALLS",
        "=" * 60,
        f"  Calls: {len(metrics)} ({success_count} successful)",
    ]
    for provider, s in provider_stats(metrics).items():
        lines.append(f"  {provider}: {s.calls} calls, {s.failures} failed, avg {s.avg_latency_ms:.0f}ms")

    lines += ["", "  Per-call breakdown:"]
    for m in metrics:
        status = "+" if m.success else "x"
        suffix = f" ({m.error})" if m.error else ""
        lines.append(f"    {status} {m.provider}.{m.operation}: {m.latency_ms:.0f}ms{suffix}")
    lines.append("=" * 60)
    return "\n".join(lines)
