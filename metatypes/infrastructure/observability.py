"""Structured Logging — JSON formatter and setup for metatypes log output.

Invariants:
    - Every JSON line carries timestamp, level, logger name and message
    - Extra fields (meta_id, kind, loader, error_code) surfaced only when set
    - Non-JSON extra values (MetaKind, exceptions) rendered with str()

Design Decisions:
    - Library modules only call logging.getLogger(__name__); handlers are installed
      on the "metatypes" logger by the host application, never on the root logger
    - Hand-written formatter, no logging dependency to pull in
"""

import json
import logging
from datetime import datetime, timezone
from typing import Iterable

from metatypes.config import Settings, get_settings

PACKAGE_LOGGER = "metatypes"
EXTRA_KEYS = ("meta_id", "kind", "loader", "error_code")
TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def __init__(self, extra_keys: Iterable[str] = EXTRA_KEYS):
        super().__init__()
        self.extra_keys = tuple(extra_keys)

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, record.__dict__[key])
            for key in self.extra_keys
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Attach a stderr handler to the package logger and return it."""
    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.getLevelName(level.upper()))
    return handler


def configure_from_settings(settings: Settings | None = None) -> logging.Handler:
    settings = settings or get_settings()
    return setup_logging(settings.log_level, settings.log_format)
