"""Logging setup for the API and bot processes."""

import logging.config

from app.config import settings


def build_logging_config(level: str | None = None) -> dict:
    level = (level or settings.log_level).upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "{levelname} {asctime} {name} {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
        "loggers": {
            "sqlalchemy.engine": {
                "level": "WARNING",
                "propagate": True,
            },
            "discord": {
                "level": "WARNING",
                "propagate": True,
            },
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Apply the console logging configuration."""
    logging.config.dictConfig(build_logging_config(level))
