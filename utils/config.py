# utils/config.py
# This file is used to load configuration settings for the market data layer.
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel
from dotenv import load_dotenv

_ENV_LOADED = False


def _ensure_env_loaded() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    env_path = Path(__file__).resolve().parent.parent / ".env"
    load_dotenv(env_path, override=False)
    _ENV_LOADED = True


def _get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    v = v.strip().strip('"').strip("'").lower()
    return v in ("1", "true", "yes", "on")


def _get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return float(v)


def _get_provider(name: str, default: str) -> Optional[str]:
    v = os.getenv(name, default).strip().lower().replace("-", "")
    return v or None


class Settings(BaseModel):
    alphavantage_api_key: str
    finnhub_api_key: str

    primary_provider: Optional[str]
    fallback_provider: Optional[str]

    app_env: str
    degrade_policy: str

    request_timeout: float
    rate_limit_cooldown: float

    quote_cache_ttl: float
    overview_cache_ttl: float
    timeseries_cache_ttl: float

    log_level: str
    log_dir: str
    log_json: bool

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


def _default_policy(app_env: str) -> str:
    return "substitute_mock" if app_env == "development" else "strict"


def load_settings() -> Settings:
    _ensure_env_loaded()
    app_env = os.getenv("APP_ENV", "production").strip().lower()
    return Settings(
        alphavantage_api_key=os.getenv("ALPHAVANTAGE_API_KEY", ""),
        finnhub_api_key=os.getenv("FINNHUB_API_KEY", ""),
        primary_provider=_get_provider("MARKET_DATA_PRIMARY", "alphavantage"),
        fallback_provider=_get_provider("MARKET_DATA_FALLBACK", "finnhub"),
        app_env=app_env,
        degrade_policy=os.getenv("MARKET_DATA_DEGRADE_POLICY", _default_policy(app_env)).strip().lower(),
        request_timeout=_get_float("MARKET_DATA_TIMEOUT", 15.0),
        rate_limit_cooldown=_get_float("RATE_LIMIT_COOLDOWN", 86400.0),
        quote_cache_ttl=_get_float("QUOTE_CACHE_TTL", 60.0),
        overview_cache_ttl=_get_float("OVERVIEW_CACHE_TTL", 86400.0),
        timeseries_cache_ttl=_get_float("TIMESERIES_CACHE_TTL", 300.0),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_dir=os.getenv("LOG_DIR", "logs"),
        log_json=_get_bool("LOG_JSON", False),
    )
