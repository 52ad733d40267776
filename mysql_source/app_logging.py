"""Logging setup for the source and its local host.

This module centralizes logging configuration. It provides:

- A simple JSON formatter (opt-in via LOG_JSON) or a human-readable formatter.
- Timed rotation of the log file (source.log), honoring retention and
  timezone options.
- An optional stderr handler so logs never mix with batches on stdout.

Environment variables: LOG_DIR, LOG_LEVEL, LOG_JSON, LOG_RETENTION_DAYS,
LOG_ROTATE_UTC, LOG_STDERR.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from logging.handlers import TimedRotatingFileHandler

SERVICE_NAME = "mysql-source"
LOGGER_NAME = "mysql_source"


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter used when LOG_JSON=true."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "level": record.levelname,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


def _get_formatter(log_json: bool) -> logging.Formatter:
    if log_json:
        return JsonFormatter()
    return logging.Formatter("[%(asctime)s] %(levelname)s in %(name)s: %(message)s")


def get_log_config(debug: bool = False) -> dict[str, object]:
    """Return the effective logging settings derived from the environment."""

    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_level = logging.DEBUG if debug else getattr(logging, log_level_str, logging.INFO)
    return {
        "log_dir": os.path.abspath(os.getenv("LOG_DIR", "logs")),
        "log_level": logging.getLevelName(log_level),
        "log_json": os.getenv("LOG_JSON", "false").lower() == "true",
        "retention_days": int(os.getenv("LOG_RETENTION_DAYS", "7")),
        "rotate_utc": os.getenv("LOG_ROTATE_UTC", "false").lower() == "true",
        "stderr": os.getenv("LOG_STDERR", "true").lower() == "true",
    }


def init_logging(debug: bool = False) -> logging.Logger:
    """Initialise the ``mysql_source`` logger and return it."""

    settings = get_log_config(debug)
    log_dir = str(settings["log_dir"])
    os.makedirs(log_dir, exist_ok=True)

    formatter = _get_formatter(bool(settings["log_json"]))
    log_level = logging.getLevelName(str(settings["log_level"]))

    source_logger = logging.getLogger(LOGGER_NAME)
    if not any(
        isinstance(h, TimedRotatingFileHandler) for h in source_logger.handlers
    ):
        handler = TimedRotatingFileHandler(
            os.path.join(log_dir, "source.log"),
            when="midnight",
            backupCount=int(settings["retention_days"]),
            utc=bool(settings["rotate_utc"]),
        )
        handler.setFormatter(formatter)
        source_logger.addHandler(handler)

    has_stream = any(
        type(h) is logging.StreamHandler for h in source_logger.handlers
    )
    if settings["stderr"] and not has_stream:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        source_logger.addHandler(stream_handler)

    source_logger.setLevel(log_level)
    return source_logger


__all__ = ["JsonFormatter", "get_log_config", "init_logging"]
