# utils/logging.py
# Stdlib logging for the CLI. httpx and httpcore log through the stdlib, not loguru.

import logging
from typing import Optional

from colorlog import ColoredFormatter

HTTP_LOGGERS = ("httpx", "httpcore")


def setup_logging(level: int = logging.WARNING, http_level: Optional[int] = None) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(
        "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(cyan)s%(name)s%(reset)s | %(message)s",
        datefmt="%H:%M:%S",
        log_colors={
            "DEBUG": "white",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        },
    ))
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
    for name in HTTP_LOGGERS:
        logging.getLogger(name).setLevel(level if http_level is None else http_level)
