# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Exception hierarchy for the genai transport layer.

Every error raised by this package derives from :class:`GenaiError`.  The
hierarchy mirrors the failure classes a caller has to distinguish:

INPUT VALIDATION
----------------
``InvalidArgumentError``: malformed identifiers or payloads.  Raised
immediately; retrying the same call cannot succeed.

CONFIGURATION
-------------
``ConfigurationError`` and its subclass ``URLCompositionError``: the
client configuration cannot produce a valid request.

TRANSPORT
---------
``TransportError``: connection refused, DNS failure, socket reset.
``RequestCancelledError``: a timeout expired while waiting on I/O.
``SessionClosedError``: the realtime socket is gone.

SERVER
------
``APIError``: the service answered with a non-2xx status.  Carries the
structured ``code`` / ``message`` / ``status`` / ``details`` verbatim.

PROTOCOL
--------
``StreamFormatError``, ``FrameFormatError``, ``TokenTooLargeError``:
bytes arrived but cannot be decoded.

UPLOAD
------
``UploadError``: short reads or an upload that never reached the
``final`` state.

No component retries.  Retry policy belongs to the caller.
"""

from __future__ import annotations

import json
from typing import Any

__all__ = [
    "APIError",
    "ConfigurationError",
    "FrameFormatError",
    "GenaiError",
    "InvalidArgumentError",
    "ProtocolError",
    "RequestCancelledError",
    "SessionClosedError",
    "StreamFormatError",
    "TokenTooLargeError",
    "TransportError",
    "URLCompositionError",
    "UploadError",
]


class GenaiError(Exception):
    """Base class for all errors raised by ``genai_transport``."""


# ---------------------------------------------------------------------------
# Input validation & configuration
# ---------------------------------------------------------------------------


class InvalidArgumentError(GenaiError, ValueError):
    """A caller-supplied identifier or payload is malformed."""


class ConfigurationError(GenaiError, ValueError):
    """The client configuration is incomplete or inconsistent."""


class URLCompositionError(ConfigurationError):
    """The composed request URL is not a valid absolute URL."""

    def __init__(self, url: str, reason: str) -> None:
        """Initialize with the offending URL and the parser's complaint."""
        self.url = url
        self.reason = reason
        super().__init__(f"invalid request URL {url!r}: {reason}")


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


class TransportError(GenaiError):
    """The request could not be delivered or the response could not be read.

    Attributes:
        method: HTTP method (or ``"WEBSOCKET"`` for realtime sessions).
        url: Target URL with secrets redacted.

    """

    def __init__(self, message: str, *, method: str = "", url: str = "") -> None:
        """Initialize with a description and the request coordinates."""
        self.method = method
        self.url = url
        prefix = f"{method} {url}: " if method or url else ""
        super().__init__(f"{prefix}{message}")


class RequestCancelledError(TransportError):
    """A timeout expired before the request or socket operation completed."""


class SessionClosedError(TransportError):
    """The realtime session's socket is closed or failed."""


# ---------------------------------------------------------------------------
# Server-reported
# ---------------------------------------------------------------------------


class APIError(GenaiError):
    """Error response reported by the service.

    Mirrors the wire shape
    ``{"error": {"code": int, "message": str, "status": str, "details": [...]}}``.

    Attributes:
        code: HTTP status code (or the ``code`` field of the error body).
        message: Server response message.
        status: Server status string, e.g. ``"INVALID_ARGUMENT"`` or, for
            bodiless responses, the HTTP status line ``"404 Not Found"``.
        details: Ordered detail objects providing more context.

    """

    def __init__(
        self,
        code: int,
        message: str = "",
        status: str = "",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize from the decoded error fields."""
        self.code = code
        self.message = message
        self.status = status
        self.details: list[dict[str, Any]] = list(details) if details else []
        super().__init__(f"Error {code}, Message: {message}, Status: {status}, Details: {self.details}")

    @classmethod
    def from_error_body(cls, body: bytes, status_code: int, reason: str) -> APIError:
        """Decode a non-2xx response body into an ``APIError``.

        An empty body yields an error built from the status line alone.  A
        body that is not the documented ``{"error": {...}}`` object keeps its
        text as the message so nothing the server said is lost.

        Args:
            body: Raw response body.
            status_code: HTTP status code of the response.
            reason: HTTP reason phrase (e.g. ``"Not Found"``).

        Returns:
            The decoded ``APIError``.

        """
        status_line = f"{status_code} {reason}".strip()
        if not body:
            return cls(status_code, status=status_line)
        try:
            decoded = json.loads(body)
        except ValueError:
            return cls(status_code, message=body.decode(errors="replace"), status=status_line)

        info = decoded.get("error") if isinstance(decoded, dict) else None
        if not isinstance(info, dict):
            return cls(status_code, message=body.decode(errors="replace"), status=status_line)

        code = info.get("code")
        details = info.get("details")
        return cls(
            code if isinstance(code, int) else status_code,
            message=str(info.get("message", "")),
            status=str(info.get("status", "")),
            details=[d for d in details if isinstance(d, dict)] if isinstance(details, list) else None,
        )

    def __eq__(self, other: object) -> bool:
        """Compare errors field by field."""
        if not isinstance(other, APIError):
            return NotImplemented
        return (self.code, self.message, self.status, self.details) == (
            other.code,
            other.message,
            other.status,
            other.details,
        )

    __hash__ = None  # type: ignore[assignment]


# ---------------------------------------------------------------------------
# Protocol / framing
# ---------------------------------------------------------------------------


class ProtocolError(GenaiError):
    """Bytes were received but do not follow the wire protocol."""


class StreamFormatError(ProtocolError):
    """A server-sent event token is malformed (bad prefix or bad JSON)."""


class FrameFormatError(ProtocolError):
    """A realtime socket frame could not be decoded as a server message."""


class TokenTooLargeError(ProtocolError):
    """A stream token exceeded the scanner's buffer ceiling."""

    def __init__(self, limit: int) -> None:
        """Initialize with the ceiling that was exceeded."""
        self.limit = limit
        super().__init__(
            f"stream token exceeds {limit} bytes; use the non-streaming method for responses this large"
        )


# ---------------------------------------------------------------------------
# Upload
# ---------------------------------------------------------------------------


class UploadError(GenaiError):
    """A chunked upload failed or ended in an inconsistent state.

    Attributes:
        offset: Byte offset at which the failure was detected.

    """

    def __init__(self, message: str, *, offset: int = 0) -> None:
        """Initialize with a description and the byte offset reached."""
        self.offset = offset
        super().__init__(message)
