# datasources/errors.py
"""
Error taxonomy for the market data layer.

Adapters classify provider failures into these types; the orchestrator
decides between fallback, mock substitution and propagation based on them.
"""
from __future__ import annotations

from typing import Optional, Sequence


class MarketDataError(RuntimeError):
    """Base class. `provider` names the upstream that produced the error."""

    def __init__(self, message: str, provider: Optional[str] = None):
        super().__init__(message)
        self.provider = provider


class ConfigurationError(MarketDataError):
    """Missing or rejected API key, unknown provider. Never retried."""


class RateLimitedError(MarketDataError):
    """Upstream signalled throttling, or the provider is still cooling down."""


class NotFoundError(MarketDataError):
    """Unknown symbol or empty payload."""


class ProviderTimeoutError(MarketDataError):
    """Outbound call exceeded its deadline."""


class ProviderError(MarketDataError):
    """Malformed response, unparsable number, or a generic provider error."""


class AllProvidersFailedError(MarketDataError):
    """Both primary and fallback failed and mock substitution is not allowed."""

    def __init__(self, message: str, errors: Sequence[MarketDataError] = ()):
        super().__init__(message)
        self.errors = list(errors)
