"""Structured logging configuration.

Standard library logging with one JSON object per line on stderr. Weave
context (``weave_id``, ``operation``) passed through ``extra`` is lifted to the
top level so log lines can be filtered per weave.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from weaver import __version__

_RECORD_ATTRS: frozenset[str] = frozenset(
    logging.LogRecord("", logging.NOTSET, "", 0, "", (), None).__dict__
) | {"message", "asctime"}

WEAVE_CONTEXT_FIELDS: tuple[str, ...] = ("weave_id", "operation")


class JsonFormatter(logging.Formatter):
    """Render a log record as one JSON object.

    ``context`` holds fields stamped onto every line, e.g. the service name.
    """

    def __init__(self, context: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._context = dict(context or {})

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **self._context,
        }

        extra = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        for key in WEAVE_CONTEXT_FIELDS:
            if key in extra:
                payload[key] = extra.pop(key)
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str) -> None:
    """Send JSON logs to stderr; stdout stays free for CLI output."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(JsonFormatter({"service": "weaver", "version": __version__}))
    root.addHandler(handler)
    root.setLevel(level.upper())

    # Request lines are noise below INFO.
    logging.getLogger("uvicorn.access").setLevel(max(root.level, logging.INFO))
