"""Ledger Logging — structured log records for card writes and request failures.

Invariants:
    - Every JSON line carries timestamp, level, logger and message
    - Ledger context passed via `extra=` (owner, card_id, attempt, error_code, path,
      operation) becomes top-level keys; absent keys are omitted, never null
    - Non-JSON values in extras (UUID card ids, Decimal amounts) are rendered with str()
    - setup_logging() is idempotent: a second lifespan startup replaces its handler
      instead of duplicating every line

Design Decisions:
    - stdlib logging with a small JSON formatter: services log with plain
      logger.info(..., extra=...) and stay unaware of the output format
    - LOG_FORMAT=text for local runs and tests
"""

import json
import logging
from datetime import datetime, timezone

LEDGER_EXTRAS = ("owner", "card_id", "attempt", "error_code", "path", "operation")

_HANDLER_NAME = "cardledger"


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with ledger extras lifted to the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, record.__dict__[key])
            for key in LEDGER_EXTRAS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the card ledger handler on the root logger."""
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
