# datasources/api_clients.py
"""
Provider adapter interface and the plumbing shared by all adapters.

Supports:
- Alpha Vantage (datasources.alpha_vantage)
- Finnhub (datasources.finnhub)

Adapters are plain classes that satisfy the MarketDataProvider protocol;
they share HTTP handling through a ProviderSession rather than a base class.
"""
from __future__ import annotations

import math
import asyncio
from typing import (
    Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable,
)

import httpx

from datasources.errors import (
    ConfigurationError, NotFoundError, ProviderError, ProviderTimeoutError, RateLimitedError,
)
from datasources.models import MarketIndex, Overview, Quote, TimeSeriesPoint
from infrastructure.logging import get_logger
from infrastructure.rate_limit import RateLimitTracker


# (symbol, display name) pairs fetched by fetch_indices() when no list is given
DEFAULT_INDICES: List[Tuple[str, str]] = [
    ("^GSPC", "S&P 500"),
    ("^DJI", "Dow Jones"),
    ("^IXIC", "NASDAQ"),
    ("^FTSE", "FTSE 100"),
    ("^N225", "Nikkei 225"),
    ("^HSI", "Hang Seng"),
]

# Values providers use to mean "not available"
MISSING_MARKERS = {"", "None", "none", "-", ".", "null", "N/A"}


@runtime_checkable
class MarketDataProvider(Protocol):
    """Capability set every provider adapter implements."""

    name: str

    async def fetch_quote(self, symbol: str) -> Quote: ...

    async def fetch_overview(self, symbol: str) -> Overview: ...

    async def fetch_time_series(
        self,
        symbol: str,
        interval: str = "daily",
        output_size: str = "compact",
        resolution: str = "D",
        lookback: int = 2592000,
    ) -> List[TimeSeriesPoint]: ...

    async def fetch_indices(self, indices: Optional[Sequence[Tuple[str, str]]] = None) -> List[MarketIndex]: ...


# === Numeric parsing ===

def parse_float(value: Any, field: str, provider: str, required: bool = False) -> Optional[float]:
    """
    Parse a provider number that may arrive as a string.

    Missing markers become None (or ProviderError when `required`). Anything
    else that is not a finite number raises ProviderError.
    """
    if value is None or (isinstance(value, str) and value.strip() in MISSING_MARKERS):
        if required:
            raise ProviderError(f"Missing required field '{field}'", provider=provider)
        return None
    if isinstance(value, bool):
        raise ProviderError(f"Non-numeric value for '{field}': {value!r}", provider=provider)
    try:
        number = float(value.strip().rstrip("%") if isinstance(value, str) else value)
    except (TypeError, ValueError):
        raise ProviderError(f"Non-numeric value for '{field}': {value!r}", provider=provider) from None
    if not math.isfinite(number):
        raise ProviderError(f"Non-finite value for '{field}': {value!r}", provider=provider)
    return number


def parse_int(value: Any, field: str, provider: str, required: bool = False) -> Optional[int]:
    number = parse_float(value, field, provider, required=required)
    return None if number is None else int(number)


def scale(value: Optional[float], factor: float) -> Optional[float]:
    return None if value is None else value * factor


# === HTTP session ===

class ProviderSession:
    """
    HTTP access for one provider: rate-limit short-circuit, timeouts and
    HTTP status classification.

    Side effect: any rate-limit signal marks the shared tracker for this
    provider, so every later request (from any caller) short-circuits until
    the cool-down elapses.
    """

    def __init__(
        self,
        name: str,
        tracker: RateLimitTracker,
        http: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        self.name = name
        self.tracker = tracker
        self.timeout = timeout
        self._http = http
        self._owns_http = http is None
        self.log = get_logger(name)

    @property
    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self.timeout)
        return self._http

    async def aclose(self) -> None:
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None

    def rate_limited(self, message: str) -> RateLimitedError:
        """Mark the tracker and build the error to raise."""
        self.tracker.mark_limited(self.name)
        return RateLimitedError(message, provider=self.name)

    def ensure_available(self) -> None:
        if self.tracker.is_limited(self.name):
            remaining = self.tracker.remaining(self.name)
            raise RateLimitedError(
                f"{self.name} is rate limited ({remaining:.0f}s of cool-down left)",
                provider=self.name,
            )

    async def get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """GET `url` and return decoded JSON, raising classified errors."""
        self.ensure_available()

        try:
            response = await self.http.get(url, params=params, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(f"{self.name} request timed out after {self.timeout}s", provider=self.name) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name} request failed: {e}", provider=self.name) from e

        status = response.status_code
        if status == 429:
            raise self.rate_limited(f"{self.name} returned HTTP 429")
        if status in (401, 403):
            raise ConfigurationError(f"{self.name} rejected the API key (HTTP {status})", provider=self.name)
        if status == 404:
            raise NotFoundError(f"{self.name} returned HTTP 404 for {url}", provider=self.name)
        if status >= 400:
            raise ProviderError(f"{self.name} API error: {status} {response.reason_phrase}", provider=self.name)

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            raise ProviderError(
                f"Expected JSON but got {content_type or 'unknown content type'} from {self.name}",
                provider=self.name,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Invalid JSON from {self.name}: {e}", provider=self.name) from e


# === Shared operations ===

async def indices_from_quotes(
    fetch_quote: Callable[[str], Awaitable[Quote]],
    indices: Sequence[Tuple[str, str]],
    provider: str,
) -> List[MarketIndex]:
    """
    Fetch one quote per index concurrently. Failed items are returned with
    error=True instead of failing the batch; a rate-limit short-circuit or a
    configuration problem is raised since no item could succeed.
    """
    log = get_logger(provider)

    async def one(symbol: str, name: str) -> MarketIndex:
        try:
            quote = await fetch_quote(symbol)
        except (ConfigurationError, RateLimitedError):
            raise
        except Exception as e:
            log.warning(f"Error fetching index {symbol}: {e}")
            return MarketIndex(symbol=symbol, name=name, price=0.0, change=0.0,
                               change_percent=0.0, error=True)
        return MarketIndex(
            symbol=symbol,
            name=name,
            price=quote.price,
            change=quote.change,
            change_percent=quote.change_percent,
            currency=quote.currency,
        )

    return list(await asyncio.gather(*(one(symbol, name) for symbol, name in indices)))


# === Client Registry ===

def build_clients(
    settings,
    tracker: RateLimitTracker,
    http: Optional[httpx.AsyncClient] = None,
) -> Dict[str, MarketDataProvider]:
    """Create the configured provider adapters keyed by provider name."""
    from datasources.alpha_vantage import AlphaVantageClient
    from datasources.finnhub import FinnhubClient

    return {
        AlphaVantageClient.name: AlphaVantageClient(
            api_key=settings.alphavantage_api_key,
            tracker=tracker,
            http=http,
            timeout=settings.request_timeout,
        ),
        FinnhubClient.name: FinnhubClient(
            api_key=settings.finnhub_api_key,
            tracker=tracker,
            http=http,
            timeout=settings.request_timeout,
        ),
    }
