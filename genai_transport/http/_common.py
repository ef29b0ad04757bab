# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Shared constants and header helpers for the HTTP transport layer."""

from __future__ import annotations

import platform
from http import HTTPStatus

import httpx

from genai_transport._debug import fmt_payload
from genai_transport.backend import BackendStrategy
from genai_transport.errors import APIError, ProtocolError
from genai_transport.types import JsonObject
from genai_transport.utils import decode_json_object

JSON_CONTENT_TYPE = "application/json"
API_KEY_HEADER = "x-goog-api-key"
API_CLIENT_HEADER = "x-goog-api-client"
USER_AGENT_HEADER = "user-agent"
HTTP_HEADERS_KEY = "httpHeaders"

UPLOAD_COMMAND_HEADER = "X-Goog-Upload-Command"
UPLOAD_OFFSET_HEADER = "X-Goog-Upload-Offset"
UPLOAD_STATUS_HEADER = "X-Goog-Upload-Status"
UPLOAD_STATUS_ACTIVE = "active"
UPLOAD_STATUS_FINAL = "final"

MAX_UPLOAD_CHUNK_SIZE = 8 * 1024 * 1024
"""Largest chunk sent in a single resumable-upload request (8 MiB)."""

MAX_STREAM_TOKEN_SIZE = 256 * 1024 * 1024
"""Largest server-sent event the stream scanner will buffer (256 MiB)."""


def _library_version() -> str:
    from genai_transport import __version__

    return __version__


def version_header_value() -> str:
    """Return ``genai-transport/<version> gl-python/<python version>``."""
    return f"genai-transport/{_library_version()} gl-python/{platform.python_version()}"


def sdk_headers(strategy: BackendStrategy) -> dict[str, str]:
    """SDK identity headers merged over call-supplied headers on every request."""
    version = version_header_value()
    return {
        "Content-Type": JSON_CONTENT_TYPE,
        **strategy.auth_headers(),
        USER_AGENT_HEADER: version,
        API_CLIENT_HEADER: version,
    }


def is_success(status_code: int) -> bool:
    """True for 2xx status codes."""
    return HTTPStatus.OK <= status_code < HTTPStatus.MULTIPLE_CHOICES


def deserialize_unary_response(response: httpx.Response) -> JsonObject:
    """Decode a fully read response into a JSON object.

    The response headers are attached under ``httpHeaders``.

    Raises:
        APIError: If the status is not 2xx.
        ProtocolError: If a 2xx body is not a JSON object.

    """
    body = response.content
    if not is_success(response.status_code):
        raise APIError.from_error_body(body, response.status_code, response.reason_phrase)
    try:
        output = decode_json_object(body, "response body") if body else {}
    except ValueError as exc:
        raise ProtocolError(f"error decoding response body {fmt_payload(body)}: {exc}") from exc
    output[HTTP_HEADERS_KEY] = dict(response.headers.items())
    return output
