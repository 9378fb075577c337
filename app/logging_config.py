"""Logging setup for the application."""

import logging.config
from typing import Any

from app.config import settings


def setup_logging(level: str | None = None) -> dict[str, Any]:
    """Configure root logging once at startup."""
    level = (level or settings.LOG_LEVEL).upper()
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
            },
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "sqlalchemy.engine": {"level": "INFO" if settings.APP_DEBUG else "WARNING"},
        },
    }

    logging.config.dictConfig(config)
    return config
