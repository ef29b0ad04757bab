# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Synchronous in-process client for exercising the HTTP transport.

``make_sync_client`` mounts a Falcon WSGI application into an
``httpx.Client`` through ``httpx.WSGITransport``, so ``ApiClient`` can be
driven against a fake service with no sockets::

    app = falcon.App()
    app.add_route("/v1beta/models/{name}", FakeModels())
    http = make_sync_client(app)
    client = ApiClient(config, http_client=http)

The request URL's host is ignored by the transport; only the path and
query reach the application.
"""

from __future__ import annotations

import falcon
import httpx

__all__ = ["make_sync_client"]


def make_sync_client(
    app: falcon.App[falcon.Request, falcon.Response],
    *,
    base_url: str = "https://genai.test",
    default_headers: dict[str, str] | None = None,
) -> httpx.Client:
    """Create an ``httpx.Client`` that dispatches into *app* in-process.

    Args:
        app: Falcon WSGI application acting as the fake service.
        base_url: Base URL for relative requests.
        default_headers: Headers merged into every request.

    Returns:
        A client suitable for ``ApiClient(config, http_client=...)``.

    """
    return httpx.Client(
        transport=httpx.WSGITransport(app=app),
        base_url=base_url,
        headers=default_headers,
    )
