"""Centralized logging configuration."""
from __future__ import annotations

import logging
from logging.config import dictConfig

from taskpilot.core.context import get_request_id, get_use_case

NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class GenerationContextFilter(logging.Filter):
    """Stamp request_id and use_case onto every log record."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - minimal logic
        record.request_id = get_request_id() or "-"
        record.use_case = get_use_case() or "-"
        return True


def configure_logging(*, log_level: str = "INFO") -> None:
    """Configure application logging once at startup."""
    if getattr(configure_logging, "_configured", False):
        return

    level = log_level.upper()
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s | %(levelname)s | %(name)s | %(request_id)s | %(use_case)s | %(message)s",
                }
            },
            "filters": {
                "generation_context": {
                    "()": "taskpilot.core.logging.GenerationContextFilter",
                }
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "level": level,
                    "filters": ["generation_context"],
                }
            },
            "loggers": {name: {"level": "WARNING"} for name in NOISY_LOGGERS},
            "root": {
                "handlers": ["console"],
                "level": level,
            },
        }
    )

    logging.getLogger(__name__).debug("Logging configured at %s", level)
    setattr(configure_logging, "_configured", True)
