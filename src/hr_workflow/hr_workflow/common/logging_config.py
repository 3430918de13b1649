from __future__ import annotations

import logging.config

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logging_config(level: str = "INFO", fmt: str = DEFAULT_LOG_FORMAT) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": fmt,
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level.upper(),
            "handlers": ["default"],
        },
    }


def configure_logging(settings) -> None:
    level = str(getattr(settings, "LOG_LEVEL", "INFO"))
    fmt = str(getattr(settings, "LOG_FORMAT", DEFAULT_LOG_FORMAT))
    logging.config.dictConfig(get_logging_config(level, fmt))
