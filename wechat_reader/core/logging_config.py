"""
Logging configuration for WeChat Reader.

Environment Variables:
    LOG_LEVEL: Set log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to INFO if not set or invalid.
"""

import logging
import logging.config
import os
from typing import Optional


def get_log_level() -> int:
    """
    Get log level from LOG_LEVEL environment variable.

    Returns:
        Logging level constant, INFO when unset or invalid.
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        return logging.INFO
    return level


def setup_logging(
    level: Optional[int] = None,
    format_string: Optional[str] = None,
    log_file: Optional[str] = None,
) -> None:
    """
    Configure logging using dictConfig. Safe to call more than once.

    Args:
        level: Logging level. If None, reads LOG_LEVEL (default: INFO).
        format_string: Optional custom format string.
        log_file: Optional file path to write logs to (with rotation).
    """
    if level is None:
        level = get_log_level()

    if format_string is None:
        format_string = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    config: dict = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": format_string,
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
    }

    if log_file:
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "standard",
            "filename": log_file,
            "maxBytes": 10_485_760,  # 10 MB
            "backupCount": 5,
            "encoding": "utf-8",
        }
        config["root"]["handlers"].append("file")

    logging.config.dictConfig(config)
