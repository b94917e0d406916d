"""Structured Logging — JSON and key=value formatters for the EventKeeper service.

Invariants:
    - Every record carries timestamp, level, logger name and message
    - Identity fields passed via extra= (event_id, team_id, user_id, organizer_id,
      error_code, path) appear in BOTH formats, so rejections stay searchable
      by event or team in development too
    - setup_logging replaces its own handler instead of stacking a new one per call

Design Decisions:
    - stdlib logging formatters only, no structlog: services already log with
      f-string messages plus extra=, the formatters just surface the extras
    - sqlalchemy.engine pinned to WARNING unless the app runs at DEBUG
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "event_id", "team_id", "user_id", "organizer_id", "error_code", "path",
)

_HANDLER_NAME = "eventkeeper"


def _extras(record: logging.LogRecord) -> dict:
    return {
        key: record.__dict__[key]
        for key in EXTRA_FIELDS
        if record.__dict__.get(key) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_extras(record),
        }
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


class KeyValueFormatter(logging.Formatter):
    """Human-readable line with the identity fields appended as key=value."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        extras = _extras(record)
        if not extras:
            return line
        pairs = " ".join(f"{k}={v}" for k, v in extras.items())
        first, sep, rest = line.partition("\n")
        return f"{first} [{pairs}]{sep}{rest}"


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the service handler on the root logger (idempotent)."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(JSONFormatter() if fmt == "json" else KeyValueFormatter())
    root.addHandler(handler)

    root_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(root_level)
    logging.getLogger("sqlalchemy.engine").setLevel(
        root_level if root_level <= logging.DEBUG else logging.WARNING,
    )
    return handler
