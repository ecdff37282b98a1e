# infrastructure/logging.py
"""
Loguru-based structured logging for the market data layer.

Every record carries extra["component"]: the provider name for adapter
sessions ("alphavantage", "finnhub"), otherwise the layer that logged it
("provider", "alt_assets", "mock", "service").

Sinks:
- Colored console, optionally restricted to one component
- Daily-rotated JSON file with every record (LOG_JSON=true)
- One plain daily file per component next to it
"""
from __future__ import annotations

import os
import sys
from typing import Callable, Optional

from loguru import logger


CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{extra[component]: <12}</cyan> | "
    "<level>{message}</level>"
)

FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {message}"

COMPONENTS = ["alphavantage", "finnhub", "alt_assets", "provider", "mock", "service"]

logger.configure(extra={"component": "system"})


def _component_is(component: str) -> Callable[[dict], bool]:
    return lambda record: record["extra"].get("component", "").lower() == component


def setup_logging(
    level: str = "INFO",
    log_dir: str = "logs",
    console: bool = True,
    json_file: bool = False,
    component_filter: Optional[str] = None
) -> None:
    """
    Replace all sinks.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for log files
        console: Enable console output
        json_file: Enable the JSON and per-component files
        component_filter: Only show console logs from this component
    """
    logger.remove()

    if console:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=level,
            colorize=True,
            filter=_component_is(component_filter) if component_filter else None,
        )

    if not json_file:
        return

    os.makedirs(log_dir, exist_ok=True)
    logger.add(
        os.path.join(log_dir, "market_data_{time:YYYY-MM-DD}.json"),
        level=level,
        rotation="00:00",
        retention="7 days",
        serialize=True,
    )
    for component in COMPONENTS:
        logger.add(
            os.path.join(log_dir, f"{component}_{{time:YYYY-MM-DD}}.log"),
            format=FILE_FORMAT,
            level=level,
            rotation="00:00",
            retention="3 days",
            filter=_component_is(component),
        )


def configure_from_settings(settings, component_filter: Optional[str] = None) -> None:
    """Apply LOG_LEVEL / LOG_DIR / LOG_JSON from a loaded Settings."""
    setup_logging(
        level=settings.log_level,
        log_dir=settings.log_dir,
        json_file=settings.log_json,
        component_filter=component_filter,
    )


def get_logger(component: str = "system"):
    """
    Get a logger bound to a specific component.

    Usage:
        log = get_logger("provider")
        log.warning("alphavantage failed, trying finnhub")
    """
    return logger.bind(component=component)


class ComponentLogger:
    """Logger wrapper for a component, with a helper for classified fetch failures."""

    def __init__(self, component: str):
        self.component = component
        self.log = get_logger(component)

    def info(self, message: str, **kwargs):
        self.log.info(message, **kwargs)

    def debug(self, message: str, **kwargs):
        self.log.debug(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self.log.warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self.log.error(message, **kwargs)

    def fetch_failed(self, what: str, error: Exception, fallback: str = "mock data"):
        """Log a failed fetch with the error type and the provider that raised it."""
        provider = getattr(error, "provider", None) or "-"
        self.log.warning(f"{what} unavailable via {provider}, using {fallback}: {type(error).__name__}: {error}")


alt_assets_log = ComponentLogger("alt_assets")
provider_log = ComponentLogger("provider")
mock_log = ComponentLogger("mock")
service_log = ComponentLogger("service")


# Console at LOG_LEVEL until something calls setup_logging again
setup_logging(
    level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    json_file=os.getenv("LOG_JSON", "false").lower() == "true"
)
