"""
Logging configuration for the command line client
"""

import logging
import logging.config
from typing import Dict, Any


class HTTPRequestFilter(logging.Filter):
    """Filter to suppress httpx per-request logs."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter out the INFO request lines httpx emits for every call."""
        if record.name.startswith("httpx"):
            message = record.getMessage()
            if message.startswith("HTTP Request:") and record.levelno <= logging.INFO:
                return False  # The client logs its own requests at DEBUG
        return True


def get_logging_config(level: str = "WARNING") -> Dict[str, Any]:
    """Get logging configuration; everything goes to stderr so stdout stays parseable."""
    level = level.upper()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "http_request_filter": {
                "()": HTTPRequestFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
                "filters": ["http_request_filter"]
            }
        },
        "loggers": {
            "mesoscli": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "httpx": {
                "handlers": ["default"],
                "level": level,
                "propagate": False
            },
            "httpcore": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            }
        },
        "root": {
            "level": "WARNING",
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "WARNING") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
