"""Process logging configuration.

Two modes are supported:

* plain text lines (the default), written to *stderr* so that machine
  readable output on *stdout* stays clean;
* single-line JSON records, enabled with ``RULECHECK_STRUCTURED_LOGGING=true``,
  for log aggregators that index fields without regex parsing.

Output schema per JSON line::

    {
        "timestamp": "2025-05-15T12:34:56.789012+00:00",
        "level": "WARNING",
        "logger": "rule_engine.checks.engine",
        "message": "warnings found by check",
        "data_file": "...",        // present when passed via ``extra``
        "exc_info": "Traceback ..."  // present only on exceptions
    }
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from datetime import UTC, datetime
from typing import Any

# Record attributes that callers attach with ``extra={...}`` and that are
# copied into the JSON payload when present.
_EXTRA_FIELDS: tuple[str, ...] = (
    "data_file",
    "check_file",
    "test_file",
    "count",
    "severity",
)

_TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        """Render *record* as a single JSON line."""
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(level: int = logging.WARNING, *, structured: bool = False) -> None:
    """Install a single stderr handler on the root logger.

    Calling this more than once replaces the previous handler, which keeps
    repeated CLI invocations in one process (tests) from stacking handlers.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if structured:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root_logger.addHandler(handler)
    root_logger.setLevel(level)
