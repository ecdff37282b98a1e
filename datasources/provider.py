# datasources/provider.py
"""
Data Provider Orchestrator - cache, primary, fallback, then mock.

For one logical request:
1. A cache entry younger than the freshness window is returned as is.
2. The primary provider is tried. A configuration problem never falls back.
3. Any other failure moves on to the fallback provider, if one is configured.
4. When everything failed, the degrade policy decides between synthetic data
   (tagged is_mock_data) and raising.

Successful provider results are cached; synthetic results never are.
"""
from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from datasources.api_clients import MarketDataProvider
from datasources.errors import (
    AllProvidersFailedError, ConfigurationError, MarketDataError, NotFoundError, ProviderError,
    RateLimitedError,
)
from datasources.mock_data import MockDataSynthesizer
from infrastructure.logging import provider_log
from infrastructure.rate_limit import RateLimitTracker
from infrastructure.response_cache import ResponseCache


class DegradePolicy(Enum):
    """What to do once every real provider has failed."""
    STRICT = "strict"
    SUBSTITUTE_MOCK = "substitute_mock"

    @classmethod
    def parse(cls, value: Union[str, "DegradePolicy", None]) -> "DegradePolicy":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower().replace("-", "_"))
        except ValueError:
            raise ConfigurationError(f"Unknown degrade policy: {value!r}") from None


@dataclass(frozen=True)
class FetchConfig:
    """Provider selection and freshness window for one request."""
    primary: Optional[str] = "alphavantage"
    fallback: Optional[str] = "finnhub"
    cache_duration: float = 60


@dataclass(frozen=True)
class Fetched:
    """A fetch result and where it came from: a provider name, "cache" or "mock"."""
    value: Any
    source: str

    @property
    def is_mock(self) -> bool:
        return self.source == "mock"


# endpoint -> adapter method
ENDPOINT_METHODS: Dict[str, str] = {
    "quote": "fetch_quote",
    "overview": "fetch_overview",
    "time_series": "fetch_time_series",
    "indices": "fetch_indices",
}


class DataProvider:
    """
    Fetch orchestrator over a set of named provider adapters.

    Example:
        provider = DataProvider({"alphavantage": av, "finnhub": fh}, ResponseCache())
        quote = await provider.fetch("quote", {"symbol": "AAPL"}, FetchConfig(cache_duration=60))
    """

    def __init__(
        self,
        providers: Mapping[str, MarketDataProvider],
        cache: ResponseCache,
        policy: DegradePolicy = DegradePolicy.STRICT,
        mock: Optional[MockDataSynthesizer] = None,
        tracker: Optional[RateLimitTracker] = None,
    ):
        self.providers = dict(providers)
        self.cache = cache
        self.policy = policy
        self.mock = mock or MockDataSynthesizer()
        self.tracker = tracker

    async def fetch(self, endpoint: str, params: Dict[str, Any], config: FetchConfig) -> Any:
        """Return the data for `endpoint` with `params`, see the module docstring."""
        return (await self.fetch_with_source(endpoint, params, config)).value

    async def fetch_with_source(self, endpoint: str, params: Dict[str, Any], config: FetchConfig) -> Fetched:
        method = ENDPOINT_METHODS.get(endpoint)
        if method is None:
            raise ConfigurationError(f"Unknown endpoint: {endpoint}")

        key = self.cache.make_key(endpoint, params)
        cached = self.cache.get(key, config.cache_duration)
        if cached is not None:
            provider_log.debug(f"Cache hit for {key}")
            return Fetched(cached, "cache")

        if not config.primary:
            raise ConfigurationError("No primary provider configured")
        primary = self._resolve(config.primary)
        fallback = self._resolve(config.fallback) if config.fallback else None
        if fallback is primary:
            fallback = None

        try:
            return self._store(key, primary, await self._call(primary, method, params))
        except ConfigurationError as e:
            return self._degrade(endpoint, params, e)
        except MarketDataError as e:
            primary_error = e

        if fallback is None:
            return self._degrade(endpoint, params, primary_error)

        provider_log.warning(
            f"{primary.name} failed for {endpoint} {params} ({primary_error}), trying {fallback.name}"
        )
        try:
            return self._store(key, fallback, await self._call(fallback, method, params))
        except MarketDataError as e:
            fallback_error = e

        if self.policy is DegradePolicy.SUBSTITUTE_MOCK:
            return self._substitute(endpoint, params, fallback_error)
        if isinstance(primary_error, NotFoundError) and isinstance(fallback_error, NotFoundError):
            raise primary_error
        raise AllProvidersFailedError(
            f"All providers failed for {endpoint} {params}",
            errors=(primary_error, fallback_error),
        )

    def _resolve(self, name: str) -> MarketDataProvider:
        provider = self.providers.get(name)
        if provider is None:
            raise ConfigurationError(f"Unknown provider: {name}")
        return provider

    async def _call(self, provider: MarketDataProvider, method: str, params: Dict[str, Any]) -> Any:
        if self.tracker is not None and self.tracker.is_limited(provider.name):
            raise RateLimitedError(f"{provider.name} is rate limited", provider=provider.name)
        try:
            return await getattr(provider, method)(**params)
        except MarketDataError:
            raise
        except Exception as e:
            raise ProviderError(f"Unexpected error from {provider.name}: {e}", provider=provider.name) from e

    def _store(self, key: str, provider: MarketDataProvider, value: Any) -> Fetched:
        self.cache.set(key, value)
        return Fetched(value, provider.name)

    def _degrade(self, endpoint: str, params: Dict[str, Any], error: MarketDataError) -> Fetched:
        if self.policy is DegradePolicy.SUBSTITUTE_MOCK:
            return self._substitute(endpoint, params, error)
        raise error

    def _substitute(self, endpoint: str, params: Dict[str, Any], error: MarketDataError) -> Fetched:
        provider_log.warning(f"Using mock data for {endpoint} {params}: {error}")
        return Fetched(self.mock.synthesize(endpoint, params), "mock")

