# tests/test_config.py
"""Tests for environment-driven settings."""
import os
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from utils.config import load_settings

ENV_VARS = [
    "ALPHAVANTAGE_API_KEY", "FINNHUB_API_KEY", "MARKET_DATA_PRIMARY", "MARKET_DATA_FALLBACK",
    "APP_ENV", "MARKET_DATA_DEGRADE_POLICY", "MARKET_DATA_TIMEOUT", "RATE_LIMIT_COOLDOWN",
    "QUOTE_CACHE_TTL", "OVERVIEW_CACHE_TTL", "TIMESERIES_CACHE_TTL", "LOG_JSON",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()
    assert settings.primary_provider == "alphavantage"
    assert settings.fallback_provider == "finnhub"
    assert settings.app_env == "production"
    assert settings.degrade_policy == "strict"
    assert settings.request_timeout == 15.0
    assert settings.rate_limit_cooldown == 86400.0
    assert (settings.quote_cache_ttl, settings.overview_cache_ttl, settings.timeseries_cache_ttl) == (60, 86400, 300)
    assert settings.log_json is False


def test_development_defaults_to_mock_substitution(clean_env):
    clean_env.setenv("APP_ENV", "development")
    settings = load_settings()
    assert settings.is_development
    assert settings.degrade_policy == "substitute_mock"


def test_explicit_policy_wins(clean_env):
    clean_env.setenv("APP_ENV", "development")
    clean_env.setenv("MARKET_DATA_DEGRADE_POLICY", "STRICT")
    assert load_settings().degrade_policy == "strict"


def test_provider_names_are_normalized(clean_env):
    clean_env.setenv("MARKET_DATA_PRIMARY", "Alpha-Vantage")
    clean_env.setenv("MARKET_DATA_FALLBACK", "")
    settings = load_settings()
    assert settings.primary_provider == "alphavantage"
    assert settings.fallback_provider is None


def test_numeric_overrides(clean_env):
    clean_env.setenv("MARKET_DATA_TIMEOUT", "5")
    clean_env.setenv("QUOTE_CACHE_TTL", "30")
    clean_env.setenv("LOG_JSON", "yes")
    settings = load_settings()
    assert settings.request_timeout == 5.0
    assert settings.quote_cache_ttl == 30.0
    assert settings.log_json is True
