# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Tests for resumable chunked uploads."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from genai_transport.config import HTTPOptions
from genai_transport.errors import APIError, InvalidArgumentError, UploadError, URLCompositionError
from genai_transport.http import ApiClient
from genai_transport.http._upload import upload_chunks

from .conftest import API_KEY, FakeService

UPLOAD_URL = "https://genai.test/upload/v1beta/files?upload_id=abc"
FILE_BODY = {"file": {"name": "files/abc", "mimeType": "text/plain", "sizeBytes": "16", "state": "ACTIVE"}}


def _active(fake: FakeService) -> None:
    fake.enqueue_json({}, headers={"X-Goog-Upload-Status": "active"})


def _final(fake: FakeService, body: object = FILE_BODY) -> None:
    fake.enqueue_json(body, headers={"X-Goog-Upload-Status": "final"})


def _upload(client: ApiClient, data: bytes, size: int | None = None, chunk: int = 8) -> object:
    options = client.config.resolve_http_options(None)
    return upload_chunks(
        client, io.BytesIO(data), UPLOAD_URL, len(data) if size is None else size, options, _chunk_size=chunk
    )


class TestChunking:
    """Tests for chunk boundaries and headers."""

    def test_two_chunks_second_finalizes(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """Exactly twice the ceiling goes out as two chunks; only the last finalizes."""
        _active(fake_service)
        _final(fake_service)
        data = bytes(range(16))
        uploaded = _upload(direct_client, data)

        first, second = fake_service.requests
        assert first.headers["x-goog-upload-command"] == "upload"
        assert first.headers["x-goog-upload-offset"] == "0"
        assert first.headers["content-length"] == "8"
        assert first.body == data[:8]
        assert second.headers["x-goog-upload-command"] == "upload, finalize"
        assert second.headers["x-goog-upload-offset"] == "8"
        assert second.body == data[8:]
        assert first.method == second.method == "POST"
        assert first.path == "/upload/v1beta/files"
        assert first.query == "upload_id=abc"
        assert uploaded.name == "files/abc"  # type: ignore[attr-defined]
        assert uploaded.size_bytes == 16  # type: ignore[attr-defined]

    def test_partial_last_chunk(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """A remainder smaller than the ceiling is sent as the final chunk."""
        _active(fake_service)
        _final(fake_service)
        _upload(direct_client, b"x" * 11)
        assert fake_service.requests[1].headers["content-length"] == "3"
        assert fake_service.requests[1].headers["x-goog-upload-offset"] == "8"

    def test_single_chunk_via_client(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """The public entry point finalizes a small upload in one request."""
        _final(fake_service)
        uploaded = direct_client.upload_file(
            io.BytesIO(b"hello"), UPLOAD_URL, 5, HTTPOptions(headers={"test-header": "test-value"})
        )
        assert uploaded.mime_type == "text/plain"
        sent = fake_service.last
        assert sent.headers["x-goog-upload-command"] == "upload, finalize"
        assert sent.headers["test-header"] == "test-value"
        assert sent.headers["x-goog-api-key"] == API_KEY

    def test_empty_upload_finalizes(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """A zero-byte upload sends one empty finalizing chunk."""
        _final(fake_service)
        _upload(direct_client, b"")
        assert len(fake_service.requests) == 1
        assert fake_service.last.headers["x-goog-upload-command"] == "upload, finalize"
        assert fake_service.last.body == b""


class TestUploadErrors:
    """Tests for inconsistent and failed uploads."""

    def test_short_read(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """A source shorter than the declared size fails before sending."""
        with pytest.raises(UploadError) as exc_info:
            _upload(direct_client, b"abc", size=5)
        assert exc_info.value.offset == 0
        assert fake_service.requests == []

    def test_short_read_after_first_chunk(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """A source that runs dry mid-upload reports the offset reached."""
        _active(fake_service)
        with pytest.raises(UploadError) as exc_info:
            _upload(direct_client, b"x" * 10, size=20)
        assert exc_info.value.offset == 8

    def test_active_after_all_bytes(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """Still 'active' once everything is sent is an inconsistent state."""
        _active(fake_service)
        with pytest.raises(UploadError, match="not finalized"):
            _upload(direct_client, b"x" * 4)

    def test_non_final_terminal_status(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """A terminal status other than 'final' is an error."""
        fake_service.enqueue_json({}, headers={"X-Goog-Upload-Status": "cancelled"})
        with pytest.raises(UploadError, match="cancelled"):
            _upload(direct_client, b"x" * 4)

    def test_missing_status(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """No status header at all is an error."""
        fake_service.enqueue_json({})
        with pytest.raises(UploadError):
            _upload(direct_client, b"x" * 4)

    def test_missing_file_object(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """A final response without a file object is an error."""
        _final(fake_service, {"notAFile": {}})
        with pytest.raises(UploadError, match="file object"):
            _upload(direct_client, b"x" * 4)

    def test_api_error_propagates(self, fake_service: FakeService, direct_client: ApiClient) -> None:
        """A rejected chunk raises the server's APIError."""
        fake_service.enqueue_json({"error": {"code": 400, "message": "bad offset", "status": "FAILED_PRECONDITION"}}, 400)
        with pytest.raises(APIError) as exc_info:
            _upload(direct_client, b"x" * 4)
        assert exc_info.value.message == "bad offset"

    def test_negative_size(self, direct_client: ApiClient) -> None:
        """A negative size is an input error."""
        with pytest.raises(InvalidArgumentError):
            _upload(direct_client, b"", size=-1)

    def test_relative_upload_url(self, direct_client: ApiClient) -> None:
        """The upload URL must be absolute."""
        with pytest.raises(URLCompositionError):
            direct_client.upload_file(io.BytesIO(b"x"), "/upload/v1beta/files", 1)


class TestUploadFromPath:
    """Tests for upload_file_from_path."""

    def test_uploads_file(self, fake_service: FakeService, direct_client: ApiClient, tmp_path: Path) -> None:
        """The file's size and bytes are taken from disk."""
        path = tmp_path / "doc.txt"
        path.write_bytes(b"file contents")
        _final(fake_service)
        uploaded = direct_client.upload_file_from_path(path, UPLOAD_URL)
        assert uploaded.name == "files/abc"
        assert fake_service.last.body == b"file contents"
        assert fake_service.last.headers["content-length"] == "13"

    def test_missing_path(self, direct_client: ApiClient, tmp_path: Path) -> None:
        """A missing file is an UploadError caused by the OSError."""
        with pytest.raises(UploadError) as exc_info:
            direct_client.upload_file_from_path(tmp_path / "missing.bin", UPLOAD_URL)
        assert isinstance(exc_info.value.__cause__, OSError)
