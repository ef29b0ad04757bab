# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for server-sent event scanning and response streams."""

from __future__ import annotations

import gc
import logging
from collections.abc import Iterator

import httpx
import pytest

from genai_transport.errors import RequestCancelledError, StreamFormatError, TokenTooLargeError, TransportError
from genai_transport.http import EventScanner, ResponseStream, StreamResult
from genai_transport.types import JsonObject

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class CountingStream(httpx.SyncByteStream):
    """Byte stream yielding fixed chunks and counting close() calls."""

    def __init__(self, chunks: list[bytes], fail_with: Exception | None = None) -> None:
        self.chunks = chunks
        self.fail_with = fail_with
        self.closes = 0

    def __iter__(self) -> Iterator[bytes]:
        yield from self.chunks
        if self.fail_with is not None:
            raise self.fail_with

    def close(self) -> None:
        self.closes += 1


def _response(
    *chunks: bytes,
    fail_with: Exception | None = None,
    headers: dict[str, str] | None = None,
) -> tuple[httpx.Response, CountingStream]:
    body = CountingStream(list(chunks), fail_with=fail_with)
    request = httpx.Request("POST", "https://genai.test/v1beta/models/m:streamGenerateContent?key=secret")
    return httpx.Response(200, headers=headers, stream=body, request=request), body


def _scan(*chunks: bytes, max_token_size: int = 1024) -> list[bytes]:
    return list(EventScanner(iter(chunks), max_token_size))


def _value(event: JsonObject) -> object:
    return event["v"]


# ---------------------------------------------------------------------------
# EventScanner
# ---------------------------------------------------------------------------


class TestEventScanner:
    """Tests for the blank-line token scanner."""

    def test_crlf_delimited(self) -> None:
        """CRLF blank lines separate tokens."""
        assert _scan(b"data: 1\r\n\r\ndata: 2\r\n\r\n") == [b"data: 1", b"data: 2"]

    def test_lf_delimited(self) -> None:
        """LF blank lines separate tokens."""
        assert _scan(b"data: 1\n\ndata: 2\n\n") == [b"data: 1", b"data: 2"]

    def test_earliest_delimiter_wins(self) -> None:
        """Mixed delimiters split at whichever comes first."""
        assert _scan(b"a\n\nb\r\n\r\nc") == [b"a", b"b", b"c"]

    def test_trailing_cr_stripped_once(self) -> None:
        """Exactly one trailing carriage return is dropped from a token."""
        assert _scan(b"data: x\r\n\n") == [b"data: x"]
        assert _scan(b"data: x\r\r\n\n") == [b"data: x\r"]

    def test_final_token_without_delimiter(self) -> None:
        """Bytes left at end of input form a final token."""
        assert _scan(b"data: 1\n\ndata: 2") == [b"data: 1", b"data: 2"]

    def test_delimiter_split_across_chunks(self) -> None:
        """A delimiter straddling a chunk boundary is still found."""
        assert _scan(b"data: 1\r\n", b"\r\ndata: 2") == [b"data: 1", b"data: 2"]
        assert _scan(b"data: 1\n", b"\ndata: 2") == [b"data: 1", b"data: 2"]

    def test_token_spanning_many_chunks(self) -> None:
        """A token assembled from many small chunks is emitted whole."""
        chunks = [bytes([c]) for c in b'data: {"v": 12345}\r\n\r\n']
        assert _scan(*chunks) == [b'data: {"v": 12345}']

    def test_empty_tokens_emitted(self) -> None:
        """Consecutive delimiters yield empty tokens."""
        assert _scan(b"\n\n\n\ndata: 1\n\n") == [b"", b"", b"data: 1"]

    def test_empty_input(self) -> None:
        """No input yields no tokens."""
        assert _scan() == []

    def test_too_large(self) -> None:
        """Buffering past the ceiling without a delimiter raises."""
        with pytest.raises(TokenTooLargeError) as exc_info:
            _scan(b"x" * 40, max_token_size=16)
        assert exc_info.value.limit == 16

    def test_large_token_within_ceiling(self) -> None:
        """A token at the ceiling is accepted once its delimiter arrives."""
        assert _scan(b"x" * 16, b"\n\n", max_token_size=16) == [b"x" * 16]


# ---------------------------------------------------------------------------
# StreamResult
# ---------------------------------------------------------------------------


class TestStreamResult:
    """Tests for StreamResult."""

    def test_unwrap_value(self) -> None:
        """A value item unwraps to its value."""
        assert StreamResult(value=3).unwrap() == 3

    def test_unwrap_error(self) -> None:
        """An error item raises its error."""
        err = StreamFormatError("bad")
        item: StreamResult[int] = StreamResult(error=err)
        assert not item.ok
        with pytest.raises(StreamFormatError):
            item.unwrap()


# ---------------------------------------------------------------------------
# ResponseStream
# ---------------------------------------------------------------------------


class TestResponseStream:
    """Tests for ResponseStream decoding and body release."""

    def test_two_events_then_closed(self) -> None:
        """Two events decode in order and the body is released once."""
        response, body = _response(b'data: {"v": 1}\r\n\r\n', b'data: {"v": 2}\r\n\r\n')
        stream = ResponseStream(response, _value)
        assert list(stream.values()) == [1, 2]
        assert stream.closed
        assert body.closes == 1

    def test_not_restartable(self) -> None:
        """An exhausted stream yields nothing more."""
        response, _ = _response(b'data: {"v": 1}\n\n')
        stream = ResponseStream(response, _value)
        assert len(list(stream)) == 1
        assert list(stream) == []

    def test_skips_empty_tokens(self) -> None:
        """Blank tokens produce no items."""
        response, _ = _response(b'\r\n\r\ndata: {"v": 1}\r\n\r\n\r\n\r\n')
        assert list(ResponseStream(response, _value).values()) == [1]

    def test_bad_prefix_continues(self) -> None:
        """A non-data token is a per-item error and decoding continues."""
        response, _ = _response(b'data: {"v": 1}\n\nping: {"v": 0}\n\ndata: {"v": 2}\n\n')
        items = list(ResponseStream(response, _value))
        assert [i.ok for i in items] == [True, False, True]
        assert isinstance(items[1].error, StreamFormatError)
        assert items[2].value == 2

    def test_bad_json_continues(self) -> None:
        """Malformed JSON is a per-item error."""
        response, _ = _response(b"data: {not json\n\ndata: []\n\n" + b'data: {"v": 3}\n\n')
        items = list(ResponseStream(response, _value))
        assert [type(i.error) for i in items[:2]] == [StreamFormatError, StreamFormatError]
        assert items[2].unwrap() == 3

    def test_converter_error_is_item_error(self) -> None:
        """Exceptions raised by the converter surface as item errors."""
        response, _ = _response(b'data: {"w": 1}\n\ndata: {"v": 2}\n\n')
        items = list(ResponseStream(response, _value))
        assert isinstance(items[0].error, KeyError)
        assert items[1].unwrap() == 2

    def test_values_raises_first_error(self) -> None:
        """values() stops at the first bad item."""
        response, _ = _response(b'data: {"v": 1}\n\nnope\n\ndata: {"v": 2}\n\n')
        values = ResponseStream(response, _value).values()
        assert next(values) == 1
        with pytest.raises(StreamFormatError):
            next(values)

    def test_close_mid_stream(self) -> None:
        """close() during iteration releases the body once and ends the stream."""
        response, body = _response(b'data: {"v": 1}\n\n', b'data: {"v": 2}\n\n')
        stream = ResponseStream(response, _value)
        assert next(stream).unwrap() == 1
        stream.close()
        stream.close()
        assert stream.closed
        assert body.closes == 1
        assert list(stream) == []

    def test_close_before_iteration(self) -> None:
        """Closing an untouched stream still releases the body."""
        response, body = _response(b'data: {"v": 1}\n\n')
        stream = ResponseStream(response, _value)
        stream.close()
        assert stream.closed
        assert body.closes == 1

    def test_context_manager_releases_on_break(self) -> None:
        """Leaving a with block early releases the body."""
        response, body = _response(b'data: {"v": 1}\n\n', b'data: {"v": 2}\n\n')
        with ResponseStream(response, _value) as stream:
            for _ in stream:
                break
        assert stream.closed
        assert body.closes == 1

    def test_too_large_ends_stream(self, caplog: pytest.LogCaptureFixture) -> None:
        """An oversized token is logged and ends the stream without raising."""
        response, body = _response(b'data: {"v": 1}\n\n', b"x" * 64)
        with caplog.at_level(logging.ERROR, logger="genai_transport.http"):
            items = list(ResponseStream(response, _value, max_token_size=32))
        assert [i.unwrap() for i in items] == [1]
        assert body.closes == 1
        assert any("exceeds 32 bytes" in r.getMessage() for r in caplog.records)

    def test_read_error_is_final_item(self) -> None:
        """A transport failure mid-stream becomes the last item."""
        response, body = _response(b'data: {"v": 1}\n\n', fail_with=httpx.ReadError("connection reset"))
        items = list(ResponseStream(response, _value))
        assert items[0].unwrap() == 1
        assert isinstance(items[1].error, TransportError)
        assert "key=<redacted>" in items[1].error.url
        assert len(items) == 2
        assert body.closes == 1
        assert not isinstance(items[1].error, RequestCancelledError)

    def test_read_timeout_is_cancelled(self) -> None:
        """A read timeout mid-stream becomes a RequestCancelledError item."""
        response, body = _response(b'data: {"v": 1}\n\n', fail_with=httpx.ReadTimeout("read timed out"))
        items = list(ResponseStream(response, _value))
        assert items[0].unwrap() == 1
        assert isinstance(items[1].error, RequestCancelledError)
        assert items[1].error.method == "POST"
        assert "key=<redacted>" in items[1].error.url
        assert body.closes == 1

    def test_undecodable_body_is_transport_error(self) -> None:
        """A body that fails content decoding becomes a TransportError item."""
        response, body = _response(b"definitely not gzip", headers={"Content-Encoding": "gzip"})
        items = list(ResponseStream(response, _value))
        assert len(items) == 1
        assert isinstance(items[0].error, TransportError)
        assert isinstance(items[0].error.__cause__, httpx.DecodingError)
        assert body.closes == 1

    def test_dropped_before_iteration_releases(self) -> None:
        """Garbage-collecting an untouched stream releases the body."""
        response, body = _response(b'data: {"v": 1}\n\n')
        stream = ResponseStream(response, _value)
        del stream
        gc.collect()
        assert body.closes == 1

    def test_dropped_mid_iteration_releases_once(self) -> None:
        """Garbage-collecting a partly consumed stream releases the body once."""
        response, body = _response(b'data: {"v": 1}\n\n', b'data: {"v": 2}\n\n')
        stream = ResponseStream(response, _value)
        assert next(stream).unwrap() == 1
        del stream
        gc.collect()
        assert body.closes == 1
