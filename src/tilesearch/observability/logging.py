"""Log setup for processes embedding the engine.

``JsonFormatter`` writes one JSON object per record. When a span is active
the record is tagged with its trace and span ids, so engine logs line up
with the ``tilesearch.search`` / ``tilesearch.index`` spans.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
import sys
from typing import Any

import orjson
from opentelemetry import trace


# Attributes every LogRecord carries; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

_PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            entry["trace_id"] = format(span_context.trace_id, "032x")
            entry["span_id"] = format(span_context.span_id, "016x")

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                entry[key] = value

        # Paths, tile coordinates and other non-JSON extras are logged by their str().
        return orjson.dumps(entry, default=str).decode("utf-8")


def configure_logging(level: str = "info", json_output: bool = True) -> None:
    """Replace the root handlers with a single stdout handler at ``level``."""
    root = logging.getLogger()
    root.setLevel(level.upper())
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(_PLAIN_FORMAT))
    root.addHandler(handler)
