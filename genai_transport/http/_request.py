# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Outgoing request construction.

``build_request`` turns a logical path, HTTP method and JSON payload into an
``httpx.Request``: backend-specific URL composition, effective
``HTTPOptions`` (per-call over client defaults), JSON body and merged
headers.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import httpx

from genai_transport._debug import fmt_headers, fmt_payload, redact_url, wire_http_logger
from genai_transport.backend import BackendStrategy
from genai_transport.config import HTTPOptions
from genai_transport.errors import URLCompositionError
from genai_transport.types import JsonObject
from genai_transport.utils import encode_json

from ._common import sdk_headers

__all__ = ["build_request", "compose_url", "merge_headers", "validated_url"]


def validated_url(raw: str) -> httpx.URL:
    """Parse *raw*, requiring an absolute http(s) URL.

    Raises:
        URLCompositionError: If *raw* is malformed or not absolute.

    """
    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as exc:
        raise URLCompositionError(redact_url(raw), str(exc)) from exc
    if url.scheme not in ("http", "https") or not url.host:
        raise URLCompositionError(redact_url(raw), "expected an absolute http(s) URL")
    return url


def compose_url(strategy: BackendStrategy, path: str, method: str, options: HTTPOptions) -> httpx.URL:
    """Compose the absolute request URL for *path*.

    Args:
        strategy: Backend strategy of the client.
        path: Logical path, e.g. ``models/gemini:generateContent``.
        method: HTTP method (affects hosted base-model listings).
        options: Effective HTTP options (base URL and API version set).

    Returns:
        The parsed URL.

    Raises:
        URLCompositionError: If the composed string is not a valid absolute URL.

    """
    suffix = strategy.url_path(path, method, options.api_version)
    return validated_url(f"{options.base_url.rstrip('/')}/{suffix}")


def merge_headers(*layers: Mapping[str, str]) -> httpx.Headers:
    """Merge header layers left to right; later layers overwrite same-named headers."""
    merged = httpx.Headers()
    for layer in layers:
        merged.update(layer)
    return merged


def build_request(
    client: httpx.Client,
    strategy: BackendStrategy,
    path: str,
    payload: JsonObject | None,
    method: str,
    options: HTTPOptions,
) -> httpx.Request:
    """Build the outgoing request.

    The payload is JSON-encoded only when non-empty; ``GET`` / ``DELETE``
    calls pass an empty payload and get an empty body.

    Args:
        client: HTTP client that will send the request.
        strategy: Backend strategy of the client.
        path: Logical API path.
        payload: Wire-level request object.
        method: HTTP method.
        options: Effective HTTP options for this call.

    Returns:
        An ``httpx.Request`` ready for ``client.send``.

    Raises:
        URLCompositionError: If the composed URL is invalid.
        InvalidArgumentError: If *payload* is not JSON-encodable.

    """
    method = method.upper()
    url = compose_url(strategy, path, method, options)
    body = encode_json(payload) if payload else b""
    headers = merge_headers(options.headers, sdk_headers(strategy))
    timeout = options.timeout if options.timeout is not None else httpx.USE_CLIENT_DEFAULT
    request = client.build_request(method, url, content=body, headers=headers, timeout=timeout)
    if wire_http_logger.isEnabledFor(logging.DEBUG):
        wire_http_logger.debug(
            "Build request: %s %s headers=%s body=%s",
            method,
            redact_url(str(url)),
            fmt_headers(request.headers.items()),
            fmt_payload(body),
        )
    return request
