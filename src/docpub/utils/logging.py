"""Structured logging configuration."""

import logging
import json
import sys
from typing import Any, Dict

from ..config.settings import get_settings


class JSONFormatter(logging.Formatter):
    """Format logs as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "workspace"):
            log_data["workspace"] = record.workspace  # type: ignore[attr-defined]
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        settings = get_settings()
        handler = logging.StreamHandler(sys.stdout)
        if settings.log_format == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(handler)
        logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    return logger


def set_log_level(level: str) -> None:
    """Apply ``level`` to every docpub logger created so far."""
    value = getattr(logging, level.upper(), logging.INFO)
    logging.getLogger("docpub").setLevel(value)
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith("docpub") and isinstance(logger, logging.Logger):
            logger.setLevel(value)
