"""Application logging configuration."""

from __future__ import annotations

import logging
import logging.config


def configure_logging(level: str = "INFO") -> None:
    """Route ``pdfcompose`` loggers to stderr at ``level``."""

    resolved = level.upper()
    if not isinstance(logging.getLevelName(resolved), int):
        resolved = "INFO"

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {
                "level": "WARNING",
                "handlers": ["default"],
            },
            "loggers": {
                "pdfcompose": {"level": resolved},
            },
        }
    )
