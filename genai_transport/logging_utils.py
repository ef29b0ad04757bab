# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Structured JSON log output with secret redaction.

:class:`GenaiJsonFormatter` renders each record as one JSON line.  Fields
passed through ``extra`` are emitted as top-level keys, and API keys or
bearer tokens that slip into a message, an extra string value or a
traceback are replaced with ``<redacted>``.

Not imported by ``genai_transport`` itself; wire it up explicitly::

    handler = logging.StreamHandler()
    handler.setFormatter(GenaiJsonFormatter())
    logging.getLogger("genai_transport").addHandler(handler)
"""

from __future__ import annotations

import json
import logging

from genai_transport._debug import redact_text

__all__ = ["GenaiJsonFormatter"]

# Attribute names present on every LogRecord; anything else came from ``extra``.
_STANDARD_ATTRS: frozenset[str] = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}

_OUTPUT_KEYS = ("timestamp", "level", "logger", "message", "exception", "stack_info")


def _scrub(value: object) -> object:
    return redact_text(value) if isinstance(value, str) else value


class GenaiJsonFormatter(logging.Formatter):
    """Single-line JSON formatter.

    Output keys ``timestamp``, ``level``, ``logger`` and ``message`` are
    always present; an ``extra`` field with one of those names is dropped
    rather than allowed to overwrite it.  Values that are not
    JSON-serializable are rendered with ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format *record* as a JSON line."""
        record.message = record.getMessage()
        out: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_text(record.message),
        }
        for key, value in record.__dict__.items():
            if key in _STANDARD_ATTRS or key in _OUTPUT_KEYS:
                continue
            out[key] = _scrub(value)
        if record.exc_info and record.exc_info[1] is not None:
            out["exception"] = redact_text(self.formatException(record.exc_info))
        if record.stack_info:
            out["stack_info"] = self.formatStack(record.stack_info)
        return json.dumps(out, default=str, ensure_ascii=False)
