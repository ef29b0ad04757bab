# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Debug logging infrastructure for wire-level diagnostics.

Provides logger instances under the ``genai_transport.wire.*`` hierarchy
and formatting helpers for requests, headers and payloads.  Enabling
``logging.getLogger("genai_transport.wire").setLevel(logging.DEBUG)``
shows every request, stream token, upload chunk and realtime frame.

All formatting helpers return ``str`` and never log directly.  They are
meant to be called inside ``isEnabledFor`` guards so disabled debug
logging costs nothing.  Secrets (API keys, bearer tokens) are always
redacted.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping

# ---------------------------------------------------------------------------
# Logger hierarchy: genai_transport.wire.*
# ---------------------------------------------------------------------------

wire_http_logger = logging.getLogger("genai_transport.wire.http")
"""HTTP requests / responses."""

wire_stream_logger = logging.getLogger("genai_transport.wire.stream")
"""Server-sent event tokens."""

wire_upload_logger = logging.getLogger("genai_transport.wire.upload")
"""Resumable upload chunks."""

wire_live_logger = logging.getLogger("genai_transport.wire.live")
"""Realtime session frames."""

# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

_MAX_VALUE_LEN = 200
"""Maximum length for payload previews."""

_REDACTED = "<redacted>"
_SECRET_HEADERS = frozenset({"x-goog-api-key", "authorization"})
_KEY_PARAM_RE = re.compile(r"([?&]key=)[^&#\s]*")
_BEARER_RE = re.compile(r"(Bearer\s+)[^\s\"']+")


def redact_url(url: str) -> str:
    """Replace the value of a ``key=`` query parameter.

    Returns:
        ``"wss://host/ws/...?key=<redacted>"``

    """
    return _KEY_PARAM_RE.sub(rf"\1{_REDACTED}", url)


def redact_text(text: str) -> str:
    """Redact ``key=`` query values and bearer tokens inside free text."""
    return _BEARER_RE.sub(rf"\1{_REDACTED}", redact_url(text))


def fmt_headers(headers: Mapping[str, str] | Iterable[tuple[str, str]]) -> str:
    """Format headers compactly with secret values redacted.

    Returns:
        ``"{content-type='application/json', x-goog-api-key='<redacted>'}"``

    """
    items = headers.items() if isinstance(headers, Mapping) else headers
    parts: list[str] = []
    for k, v in items:
        val = _REDACTED if k.lower() in _SECRET_HEADERS else v
        parts.append(f"{k.lower()}={val!r}")
    return "{" + ", ".join(parts) + "}"


def fmt_payload(data: bytes | str | None) -> str:
    """Format a body or frame preview, truncated.

    Returns:
        ``"(empty)"``, or the decoded text with a ``"... (N bytes)"`` suffix
        when truncated.

    """
    if not data:
        return "(empty)"
    text = data.decode(errors="replace") if isinstance(data, bytes) else data
    if len(text) > _MAX_VALUE_LEN:
        return f"{text[:_MAX_VALUE_LEN]}... ({len(data)} bytes)"
    return text
