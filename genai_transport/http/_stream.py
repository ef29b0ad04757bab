# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Server-sent event decoding for streaming calls.

The service streams events separated by blank lines::

    data: {"candidates": [...]}\\r\\n\\r\\n
    data: {"candidates": [...]}\\r\\n\\r\\n

``EventScanner`` splits the raw body into tokens; ``ResponseStream`` decodes
each ``data:`` token into a value with a caller-supplied converter and
yields ``StreamResult`` items.  Bad tokens become per-item errors and the
stream carries on; the caller decides whether to stop pulling.

The response body is released exactly once, whichever way consumption
ends: exhaustion, ``close()``, leaving a ``with`` block, or dropping the
iterator.
"""

from __future__ import annotations

import logging
import weakref
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from types import TracebackType
from typing import cast

import httpx

from genai_transport._debug import fmt_payload, redact_url, wire_stream_logger
from genai_transport.errors import RequestCancelledError, StreamFormatError, TokenTooLargeError, TransportError
from genai_transport.types import JsonObject
from genai_transport.utils import decode_json_object

from ._common import MAX_STREAM_TOKEN_SIZE

__all__ = ["EventScanner", "ResponseStream", "StreamResult"]

_logger = logging.getLogger("genai_transport.http")

_LF_DELIMITER = b"\n\n"
_CRLF_DELIMITER = b"\r\n\r\n"
_DATA_PREFIX = b"data"


def _drop_cr(token: bytes) -> bytes:
    """Drop a single trailing ``\\r``."""
    return token[:-1] if token.endswith(b"\r") else token


class EventScanner:
    """Resumable scanner splitting a byte stream on blank lines.

    Each token is everything before the earliest ``\\n\\n`` or
    ``\\r\\n\\r\\n`` in the buffer, with one trailing ``\\r`` removed.  When no
    delimiter is buffered the scanner pulls another chunk; at end of input
    the remainder is emitted as a final token.

    Raises:
        TokenTooLargeError: From ``__next__`` when more than
            *max_token_size* bytes are buffered without a delimiter.

    """

    __slots__ = ("_buf", "_chunks", "_eof", "_max_token_size", "_search_from")

    def __init__(self, chunks: Iterable[bytes], max_token_size: int = MAX_STREAM_TOKEN_SIZE) -> None:
        """Initialize over an iterable of body chunks."""
        self._chunks = iter(chunks)
        self._buf = bytearray()
        self._eof = False
        self._max_token_size = max_token_size
        self._search_from = 0

    def __iter__(self) -> Iterator[bytes]:
        """Return self."""
        return self

    def __next__(self) -> bytes:
        """Return the next token, reading more input as needed."""
        while True:
            token = self._split()
            if token is not None:
                return token
            if self._eof:
                raise StopIteration
            self._fill()

    def _find_delimiter(self) -> tuple[int, int]:
        lf = self._buf.find(_LF_DELIMITER, self._search_from)
        crlf = self._buf.find(_CRLF_DELIMITER, self._search_from)
        if lf >= 0 and (crlf < 0 or lf < crlf):
            return lf, len(_LF_DELIMITER)
        if crlf >= 0:
            return crlf, len(_CRLF_DELIMITER)
        return -1, 0

    def _split(self) -> bytes | None:
        if not self._buf:
            return None
        index, width = self._find_delimiter()
        if index >= 0:
            token = bytes(self._buf[:index])
            del self._buf[: index + width]
            self._search_from = 0
            return _drop_cr(token)
        if self._eof:
            token = bytes(self._buf)
            self._buf.clear()
            return _drop_cr(token)
        if len(self._buf) > self._max_token_size:
            raise TokenTooLargeError(self._max_token_size)
        # A delimiter may straddle the next chunk boundary.
        self._search_from = max(0, len(self._buf) - len(_CRLF_DELIMITER) + 1)
        return None

    def _fill(self) -> None:
        try:
            chunk = next(self._chunks)
        except StopIteration:
            self._eof = True
            return
        self._buf.extend(chunk)


@dataclass(frozen=True)
class StreamResult[R]:
    """One item of a response stream: a decoded value or a per-item error."""

    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        """True when this item carries a value."""
        return self.error is None

    def unwrap(self) -> R:
        """Return the value, or raise the item's error."""
        if self.error is not None:
            raise self.error
        return cast(R, self.value)


class ResponseStream[R]:
    """Lazy, forward-only sequence of decoded stream events.

    Iterating yields ``StreamResult[R]``; ``values()`` yields the values and
    raises on the first error.  The stream is not restartable: once
    exhausted or closed, iteration stops immediately.

    Use as a context manager to guarantee the body is released when the
    caller stops early::

        with client.stream(path, payload, "POST", converter) as stream:
            for item in stream:
                ...
    """

    __slots__ = (
        "__weakref__",
        "_converter",
        "_finalizer",
        "_gen",
        "_max_token_size",
        "_method",
        "_released",
        "_response",
        "_url",
    )

    def __init__(
        self,
        response: httpx.Response,
        converter: Callable[[JsonObject], R],
        *,
        max_token_size: int = MAX_STREAM_TOKEN_SIZE,
    ) -> None:
        """Wrap an open streaming response.

        Args:
            response: Response opened with ``stream=True``; ownership of its
                body passes to this object.
            converter: Normalizes a decoded event object into ``R``.
            max_token_size: Buffer ceiling for a single event.

        """
        self._response = response
        self._converter = converter
        self._max_token_size = max_token_size
        self._released = False
        # Fires on garbage collection even if iteration never started.
        self._finalizer = weakref.finalize(self, response.close)
        try:
            self._method = response.request.method
            self._url = redact_url(str(response.request.url))
        except RuntimeError:
            self._method = self._url = ""
        self._gen: Iterator[StreamResult[R]] | None = self._generate()

    @property
    def closed(self) -> bool:
        """True once the response body has been released."""
        return self._released

    @property
    def headers(self) -> httpx.Headers:
        """Response headers of the streaming call."""
        return self._response.headers

    def __iter__(self) -> Iterator[StreamResult[R]]:
        """Return self."""
        return self

    def __next__(self) -> StreamResult[R]:
        """Pull the next decoded event."""
        if self._gen is None:
            raise StopIteration
        try:
            return next(self._gen)
        except StopIteration:
            self._gen = None
            raise

    def values(self) -> Iterator[R]:
        """Yield decoded values, raising the first per-item error."""
        for item in self:
            yield item.unwrap()

    def close(self) -> None:
        """Stop the stream and release the response body."""
        gen, self._gen = self._gen, None
        if gen is not None:
            gen.close()  # type: ignore[attr-defined]  # runs the generator's release
        self._release()

    def __enter__(self) -> ResponseStream[R]:
        """Enter the context."""
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        """Exit the context, releasing the body."""
        self.close()

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        self._finalizer()
        if wire_stream_logger.isEnabledFor(logging.DEBUG):
            wire_stream_logger.debug("Stream body released")

    def _generate(self) -> Iterator[StreamResult[R]]:
        try:
            scanner = EventScanner(self._response.iter_bytes(), self._max_token_size)
            while True:
                try:
                    token = next(scanner)
                except StopIteration:
                    return
                except TokenTooLargeError as exc:
                    _logger.error("%s", exc)
                    return
                except httpx.TimeoutException as exc:
                    cancelled = RequestCancelledError(
                        f"timed out reading stream: {exc}", method=self._method, url=self._url
                    )
                    cancelled.__cause__ = exc
                    yield StreamResult(error=cancelled)
                    return
                except httpx.RequestError as exc:
                    error = TransportError(f"error reading stream: {exc}", method=self._method, url=self._url)
                    error.__cause__ = exc
                    yield StreamResult(error=error)
                    return
                if not token.strip():
                    continue
                yield self._decode(token)
        finally:
            self._release()

    def _decode(self, token: bytes) -> StreamResult[R]:
        if wire_stream_logger.isEnabledFor(logging.DEBUG):
            wire_stream_logger.debug("Stream token: %s", fmt_payload(token))
        prefix, _, data = token.partition(b":")
        if prefix != _DATA_PREFIX:
            return StreamResult(error=StreamFormatError(f"invalid stream chunk: {fmt_payload(token)}"))
        try:
            raw = decode_json_object(data, "stream chunk")
        except ValueError as exc:
            return StreamResult(error=StreamFormatError(f"error decoding stream chunk {fmt_payload(data)}: {exc}"))
        try:
            return StreamResult(value=self._converter(raw))
        except Exception as exc:  # noqa: BLE001 - converter failures are per-item errors
            return StreamResult(error=exc)
