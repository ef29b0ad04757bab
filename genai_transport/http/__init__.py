# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""HTTP transport for the generative-AI service using httpx.

Provides ``ApiClient`` for unary, streaming and upload calls, plus the
request builder and stream decoder it is built from.

HTTP Wire Protocol
------------------
All calls use ``Content-Type: application/json``.

- **Unary**: ``<METHOD> <base>/<version>/<path>``; the JSON reply gains an
  ``httpHeaders`` object.
- **Stream**: same request; the reply is server-sent events,
  ``data: {...}`` separated by blank lines.
- **Upload**: ``POST <upload url>`` per chunk with ``X-Goog-Upload-*``
  headers; the last reply carries ``{"file": {...}}``.

Direct API calls authenticate with ``x-goog-api-key``; hosted calls with
an OAuth bearer token scoped to ``projects/<p>/locations/<l>``.
"""

from genai_transport.http._client import ApiClient, RequestHook
from genai_transport.http._common import (
    HTTP_HEADERS_KEY,
    MAX_STREAM_TOKEN_SIZE,
    MAX_UPLOAD_CHUNK_SIZE,
    deserialize_unary_response,
    version_header_value,
)
from genai_transport.http._request import build_request, compose_url, merge_headers
from genai_transport.http._stream import EventScanner, ResponseStream, StreamResult

__all__ = [
    "HTTP_HEADERS_KEY",
    "MAX_STREAM_TOKEN_SIZE",
    "MAX_UPLOAD_CHUNK_SIZE",
    "ApiClient",
    "EventScanner",
    "RequestHook",
    "ResponseStream",
    "StreamResult",
    "build_request",
    "compose_url",
    "deserialize_unary_response",
    "merge_headers",
    "version_header_value",
]
