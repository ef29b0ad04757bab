# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Realtime bidirectional sessions over a WebSocket.

``Live.connect`` opens the socket, sends the setup message and hands back
a ``Session``::

    live = Live(config)
    with live.connect("gemini-2.0-flash-exp") as session:
        session.receive()  # setupComplete
        session.send(LiveClientMessage(client_content={"turns": [...], "turnComplete": True}))
        while True:
            message = session.receive()
            ...

Realtime Wire Protocol
----------------------
Every frame is one compact JSON text message.

- **Direct API**: ``wss://<host><base path>/ws/google.ai.generativelanguage.<version>.GenerativeService.BidiGenerateContent?key=<api key>``
- **Hosted**: ``wss://<host><base path>/ws/google.cloud.aiplatform.<version>.LlmBidiService/BidiGenerateContent``
  with ``Authorization: Bearer <token>``.

The first client frame is ``{"setup": {"model": ..., ...}}``; after that
``send`` and ``receive`` may run concurrently from two threads.  There is
no reconnection: once the socket fails the session is closed.
"""

from __future__ import annotations

import enum
import logging
import threading
from types import TracebackType

import httpx
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import ClientConnection, connect

from genai_transport._debug import fmt_headers, fmt_payload, redact_url, wire_live_logger
from genai_transport.backend import BackendStrategy, WebSocketTarget, strategy_for
from genai_transport.config import ClientConfig, HTTPOptions
from genai_transport.errors import (
    FrameFormatError,
    InvalidArgumentError,
    RequestCancelledError,
    SessionClosedError,
    TransportError,
    URLCompositionError,
)
from genai_transport.http._request import merge_headers
from genai_transport.naming import model_full_name
from genai_transport.types import JsonObject, LiveClientMessage, LiveConnectConfig, LiveServerMessage
from genai_transport.utils import decode_json_object, encode_json

__all__ = ["Live", "Session", "SessionState"]

_logger = logging.getLogger("genai_transport.live")

_DEFAULT_OPEN_TIMEOUT = 10.0
_WEBSOCKET_SCHEMES = ("ws", "wss")


class SessionState(enum.Enum):
    """Lifecycle of a realtime session.

    ``UNCONNECTED`` and ``CONNECTING`` cover ``Live.connect`` before it
    returns; a ``Session`` starts ``ESTABLISHED`` and ends ``CLOSED``.
    """

    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    ESTABLISHED = "established"
    CLOSED = "closed"


def websocket_url(target: WebSocketTarget, base_url: str) -> str:
    """Compose the realtime endpoint URL for *target* under *base_url*.

    The base URL's host and path are kept; its scheme is kept only when it
    is already ``ws`` or ``wss``.

    Raises:
        URLCompositionError: If the base URL has no host.

    """
    try:
        base = httpx.URL(base_url)
    except httpx.InvalidURL as exc:
        raise URLCompositionError(redact_url(base_url), str(exc)) from exc
    if not base.host:
        raise URLCompositionError(redact_url(base_url), "base URL has no host")
    scheme = base.scheme if base.scheme in _WEBSOCKET_SCHEMES else "wss"
    netloc = base.netloc.decode("ascii")
    url = f"{scheme}://{netloc}{base.path.rstrip('/')}{target.path}"
    if target.query:
        url = f"{url}?{target.query}"
    return url


class Session:
    """An established realtime session.

    Created by ``Live.connect``.  ``send`` and ``receive`` may be called
    from different threads; two concurrent ``send`` calls must be
    serialized by the caller.
    """

    __slots__ = ("_close_lock", "_conn", "_state", "_url")

    def __init__(self, conn: ClientConnection, url: str) -> None:
        """Wrap an open connection whose setup frame has been sent."""
        self._conn = conn
        self._url = url
        self._state = SessionState.ESTABLISHED
        self._close_lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        """Current lifecycle state."""
        return self._state

    @property
    def closed(self) -> bool:
        """True once the session has been closed."""
        return self._state is SessionState.CLOSED

    def send(self, message: LiveClientMessage) -> None:
        """Send one client message as a JSON text frame.

        Raises:
            InvalidArgumentError: If *message* carries ``setup``.
            SessionClosedError: If the session or socket is closed.

        """
        if message.setup is not None:
            raise InvalidArgumentError("setup is sent by Live.connect and is not allowed in Session.send")
        self._send_frame(message.to_json_dict())

    def receive(self, timeout: float | None = None) -> LiveServerMessage:
        """Block until one server message arrives.

        Args:
            timeout: Seconds to wait; ``None`` waits indefinitely.

        Returns:
            The decoded server message.  Server-reported ``error`` payloads
            are returned as ordinary content.

        Raises:
            RequestCancelledError: If *timeout* expires (the session stays open).
            SessionClosedError: If the socket closed or failed.
            FrameFormatError: If the frame is not a server message; the
                session stays open.

        """
        self._require_open()
        try:
            frame = self._conn.recv(timeout=timeout)
        except TimeoutError as exc:
            raise RequestCancelledError(
                f"no realtime message within {timeout}s", method="WEBSOCKET", url=self._url
            ) from exc
        except ConnectionClosed as exc:
            self.close()
            raise SessionClosedError(f"realtime session closed: {exc}", method="WEBSOCKET", url=self._url) from exc

        frame_type = "binary" if isinstance(frame, bytes) else "text"
        if wire_live_logger.isEnabledFor(logging.DEBUG):
            wire_live_logger.debug("Receive frame: type=%s len=%d %s", frame_type, len(frame), fmt_payload(frame))
        try:
            return LiveServerMessage.from_json_dict(decode_json_object(frame, "server message"))
        except ValueError as exc:
            raise FrameFormatError(
                f"invalid message format: frame type {frame_type}, {len(frame)} bytes: {fmt_payload(frame)}"
            ) from exc

    def close(self) -> None:
        """Close the socket.  Calling again is a no-op."""
        with self._close_lock:
            if self._state is SessionState.CLOSED:
                return
            self._state = SessionState.CLOSED
        self._conn.close()
        _logger.debug("Realtime session closed: %s", self._url)

    def __enter__(self) -> Session:
        """Enter the context."""
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context, closing the socket."""
        self.close()

    def _require_open(self) -> None:
        if self._state is SessionState.CLOSED:
            raise SessionClosedError("realtime session is closed", method="WEBSOCKET", url=self._url)

    def _send_frame(self, payload: JsonObject) -> None:
        self._require_open()
        text = encode_json(payload).decode()
        if wire_live_logger.isEnabledFor(logging.DEBUG):
            wire_live_logger.debug("Send frame: %s", fmt_payload(text))
        try:
            self._conn.send(text)
        except ConnectionClosed as exc:
            self.close()
            raise SessionClosedError(f"realtime session closed: {exc}", method="WEBSOCKET", url=self._url) from exc


class Live:
    """Factory for realtime sessions bound to one client configuration."""

    __slots__ = ("_config", "_strategy")

    def __init__(self, config: ClientConfig) -> None:
        """Initialize from a validated configuration.

        Raises:
            ConfigurationError: If *config* cannot produce a backend strategy.

        """
        self._config = config
        self._strategy = strategy_for(config)

    @property
    def strategy(self) -> BackendStrategy:
        """Backend strategy selected at construction."""
        return self._strategy

    def connect(
        self,
        model: str,
        config: LiveConnectConfig | None = None,
        *,
        http_options: HTTPOptions | None = None,
        open_timeout: float = _DEFAULT_OPEN_TIMEOUT,
    ) -> Session:
        """Open a session for *model* and send the setup message.

        The ``setupComplete`` reply is not consumed; read it with
        ``Session.receive``.

        Args:
            model: Model identifier in any accepted short or qualified form.
            config: Optional generation config, system instruction and tools.
            http_options: Per-call overrides (base URL, version, headers).
            open_timeout: Seconds allowed for the opening handshake.

        Returns:
            An established ``Session``.

        Raises:
            InvalidArgumentError: If *model* is empty.
            URLCompositionError: If the base URL cannot yield a socket URL.
            RequestCancelledError: If the handshake does not finish within
                *open_timeout*.
            TransportError: If the connection cannot be opened.

        """
        model_path = model_full_name(self._strategy, model)
        options = self._config.resolve_http_options(http_options)
        target = self._strategy.websocket_target(options.api_version)
        url = websocket_url(target, options.base_url)
        headers = merge_headers(options.headers, target.headers)
        shown_url = redact_url(url)

        if wire_live_logger.isEnabledFor(logging.DEBUG):
            wire_live_logger.debug("Connect: url=%s headers=%s", shown_url, fmt_headers(headers.items()))
        try:
            conn = connect(url, additional_headers=list(headers.items()), open_timeout=open_timeout)
        except TimeoutError as exc:
            raise RequestCancelledError(
                f"Connect to {shown_url} timed out after {open_timeout}s", method="WEBSOCKET", url=shown_url
            ) from exc
        except (OSError, WebSocketException) as exc:
            raise TransportError(f"Connect to {shown_url} failed: {exc}", method="WEBSOCKET", url=shown_url) from exc

        session = Session(conn, shown_url)
        setup: JsonObject = {"model": model_path}
        if config is not None:
            setup.update(config.to_json_dict())
        try:
            session._send_frame({"setup": setup})
        except BaseException:
            session.close()
            raise
        _logger.debug("Realtime session established: %s model=%s", shown_url, model_path)
        return session
