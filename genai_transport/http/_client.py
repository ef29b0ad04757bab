# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""HTTP client implementation using httpx.

``ApiClient`` executes unary, streaming and upload calls against the
configured backend::

    config = ClientConfig.create(Backend.DIRECT_API, api_key="...")
    with ApiClient(config) as client:
        reply = client.request("models/gemini-2.0-flash:generateContent", payload)
        with client.stream("models/gemini-2.0-flash:streamGenerateContent?alt=sse", payload, "POST", dict) as events:
            for event in events.values():
                ...

Every call maps I/O failures to ``TransportError`` (``RequestCancelledError``
for timeouts) and non-2xx responses to ``APIError``.  No call retries.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from types import TracebackType
from typing import BinaryIO, Protocol

import httpx

from genai_transport._debug import fmt_headers, redact_url, wire_http_logger
from genai_transport.backend import BackendStrategy, strategy_for
from genai_transport.config import ClientConfig, HTTPOptions
from genai_transport.errors import APIError, RequestCancelledError, TransportError
from genai_transport.types import File, JsonObject
from ._common import deserialize_unary_response, is_success
from ._request import build_request
from ._stream import ResponseStream
from ._upload import upload_chunks, upload_path

__all__ = ["ApiClient", "RequestHook"]

_logger = logging.getLogger("genai_transport.http")


class RequestHook(Protocol):
    """Observer notified around every outgoing request.

    ``on_request_start`` may mutate the request (e.g. inject trace headers)
    and returns an opaque token handed back to ``on_request_end``.
    """

    def on_request_start(self, request: httpx.Request, operation: str) -> object:
        """Called before the request is sent."""
        ...

    def on_request_end(
        self,
        token: object,
        response: httpx.Response | None,
        error: BaseException | None,
    ) -> None:
        """Called once the response headers arrive or the send fails."""
        ...


class ApiClient:
    """Transport executor for one backend configuration.

    Owns an ``httpx.Client`` unless one is supplied.  A supplied client is
    used as-is (its transport, pool and auth) and is not closed by
    ``close()``; the backend's auth is still applied per request.
    """

    __slots__ = ("_auth", "_config", "_http", "_own_http", "_request_hook", "_strategy")

    def __init__(self, config: ClientConfig, *, http_client: httpx.Client | None = None) -> None:
        """Initialize the client.

        Args:
            config: Validated client configuration.
            http_client: Optional pre-built ``httpx.Client`` (for tests,
                proxies or custom pools).

        Raises:
            ConfigurationError: If *config* cannot produce a backend strategy.

        """
        self._config = config
        self._strategy = strategy_for(config)
        self._auth = self._strategy.http_auth()
        self._own_http = http_client is None
        self._http = http_client if http_client is not None else httpx.Client()
        self._request_hook: RequestHook | None = None

    @property
    def config(self) -> ClientConfig:
        """Configuration this client was built from."""
        return self._config

    @property
    def strategy(self) -> BackendStrategy:
        """Backend strategy selected at construction."""
        return self._strategy

    @property
    def http_client(self) -> httpx.Client:
        """Underlying ``httpx.Client``."""
        return self._http

    # ------------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------------

    def request(
        self,
        path: str,
        payload: JsonObject | None = None,
        method: str = "POST",
        http_options: HTTPOptions | None = None,
    ) -> JsonObject:
        """Execute a unary call.

        Args:
            path: Logical API path (e.g. ``models/x:generateContent``).
            payload: Wire-level request object; empty for ``GET`` / ``DELETE``.
            method: HTTP method.
            http_options: Per-call overrides layered over the client's.

        Returns:
            The decoded response object with ``httpHeaders`` attached.

        Raises:
            APIError: On a non-2xx response.
            TransportError: On I/O failure.
            RequestCancelledError: When the timeout expires.
            URLCompositionError: If the request URL is invalid.

        """
        options = self._config.resolve_http_options(http_options)
        request = build_request(self._http, self._strategy, path, payload, method, options)
        response = self.send(request, operation="request")
        try:
            return deserialize_unary_response(response)
        finally:
            response.close()

    def stream[R](
        self,
        path: str,
        payload: JsonObject | None,
        method: str,
        converter: Callable[[JsonObject], R],
        http_options: HTTPOptions | None = None,
    ) -> ResponseStream[R]:
        """Execute a streaming call.

        The status is checked before the stream is handed out; a non-2xx
        response raises here with its body read and released.

        Args:
            path: Logical API path.
            payload: Wire-level request object.
            method: HTTP method.
            converter: Normalizes each decoded event.
            http_options: Per-call overrides.

        Returns:
            A ``ResponseStream`` owning the response body.

        Raises:
            APIError: On a non-2xx response.
            TransportError: On I/O failure before the stream starts.

        """
        options = self._config.resolve_http_options(http_options)
        request = build_request(self._http, self._strategy, path, payload, method, options)
        response = self.send(request, operation="stream", stream=True)
        if not is_success(response.status_code):
            try:
                body = response.read()
            except httpx.RequestError:
                body = b""
            finally:
                response.close()
            raise APIError.from_error_body(body, response.status_code, response.reason_phrase)
        return ResponseStream(response, converter)

    def upload_file(
        self,
        source: BinaryIO,
        upload_url: str,
        upload_size: int,
        http_options: HTTPOptions | None = None,
    ) -> File:
        """Upload *upload_size* bytes from *source* to a resumable upload URL.

        Args:
            source: Readable binary stream positioned at the first byte.
            upload_url: Absolute upload URL returned by the upload-start call.
            upload_size: Total number of bytes to send.
            http_options: Per-call overrides (headers and timeout apply).

        Returns:
            The ``File`` described by the final response.

        Raises:
            UploadError: On a short read or a non-final terminal status.
            APIError: If a chunk is rejected.

        """
        options = self._config.resolve_http_options(http_options)
        return upload_chunks(self, source, upload_url, upload_size, options)

    def upload_file_from_path(
        self,
        path: str | os.PathLike[str],
        upload_url: str,
        http_options: HTTPOptions | None = None,
    ) -> File:
        """Upload a local file; the size is taken from the file itself."""
        options = self._config.resolve_http_options(http_options)
        return upload_path(self, path, upload_url, options)

    # ------------------------------------------------------------------
    # Send
    # ------------------------------------------------------------------

    def send(self, request: httpx.Request, *, operation: str, stream: bool = False) -> httpx.Response:
        """Send a built request, mapping httpx failures to transport errors.

        Args:
            request: Request from ``build_request`` (or an upload request).
            operation: Label for hooks and logs (``request``, ``stream``,
                ``upload``).
            stream: Leave the body unread for the caller.

        Returns:
            The response; the caller closes it.

        Raises:
            RequestCancelledError: When the timeout expires.
            TransportError: On any other I/O failure.

        """
        method = request.method
        url = redact_url(str(request.url))
        hook = self._request_hook
        token = hook.on_request_start(request, operation) if hook is not None else None
        response: httpx.Response | None = None
        error: BaseException | None = None
        try:
            response = self._http.send(
                request,
                stream=stream,
                auth=self._auth if self._auth is not None else httpx.USE_CLIENT_DEFAULT,
            )
        except httpx.TimeoutException as exc:
            error = RequestCancelledError(f"timed out: {exc}", method=method, url=url)
            raise error from exc
        except httpx.RequestError as exc:
            error = TransportError(f"request failed: {exc}", method=method, url=url)
            raise error from exc
        except BaseException as exc:
            error = exc
            raise
        finally:
            if hook is not None:
                hook.on_request_end(token, response, error)

        if wire_http_logger.isEnabledFor(logging.DEBUG):
            wire_http_logger.debug(
                "Response: %s %s status=%d headers=%s",
                method,
                url,
                response.status_code,
                fmt_headers(response.headers.items()),
            )
        if not is_success(response.status_code):
            _logger.debug("%s %s returned %d", method, url, response.status_code)
        return response

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the owned ``httpx.Client``."""
        if self._own_http:
            self._http.close()

    def __enter__(self) -> ApiClient:
        """Enter the context."""
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context, closing the owned client."""
        self.close()
