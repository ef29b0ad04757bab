# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Resumable chunked file upload.

The upload-start call (made by the caller) returns an absolute upload URL.
Content is then sent in chunks of at most ``MAX_UPLOAD_CHUNK_SIZE`` bytes,
each a ``POST`` carrying::

    X-Goog-Upload-Command: upload            (or "upload, finalize" for the last chunk)
    X-Goog-Upload-Offset:  <bytes already sent>
    Content-Length:        <chunk size>

The server answers each chunk with ``X-Goog-Upload-Status``: ``active``
while more bytes are expected and ``final`` once the file is assembled,
in which case the body holds ``{"file": {...}}``.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, BinaryIO

import httpx

from genai_transport._debug import redact_url, wire_upload_logger
from genai_transport.config import HTTPOptions
from genai_transport.errors import InvalidArgumentError, UploadError
from genai_transport.types import File, JsonObject

from ._common import (
    MAX_UPLOAD_CHUNK_SIZE,
    UPLOAD_COMMAND_HEADER,
    UPLOAD_OFFSET_HEADER,
    UPLOAD_STATUS_ACTIVE,
    UPLOAD_STATUS_FINAL,
    UPLOAD_STATUS_HEADER,
    deserialize_unary_response,
    sdk_headers,
)
from ._request import merge_headers, validated_url

if TYPE_CHECKING:
    from ._client import ApiClient

__all__ = ["upload_chunks", "upload_path"]

_logger = logging.getLogger("genai_transport.http.upload")


def _read_exactly(source: BinaryIO, size: int, offset: int) -> bytes:
    try:
        data = source.read(size) or b""
    except OSError as exc:
        raise UploadError(f"failed to read {size} bytes at offset {offset}: {exc}", offset=offset) from exc
    if len(data) != size:
        raise UploadError(
            f"failed to read {size} bytes at offset {offset}: source ended after {len(data)} bytes",
            offset=offset,
        )
    return data


def upload_chunks(
    client: ApiClient,
    source: BinaryIO,
    upload_url: str,
    upload_size: int,
    options: HTTPOptions,
    *,
    _chunk_size: int = MAX_UPLOAD_CHUNK_SIZE,
) -> File:
    """Send *upload_size* bytes from *source* in chunks and finalize.

    Args:
        client: Executor used to send each chunk.
        source: Readable binary stream.
        upload_url: Absolute upload URL.
        upload_size: Total byte count.
        options: Effective HTTP options (extra headers and timeout).
        _chunk_size: Chunk ceiling (tests only).

    Returns:
        The uploaded ``File``.

    Raises:
        InvalidArgumentError: If *upload_size* is negative.
        URLCompositionError: If *upload_url* is not an absolute http(s) URL.
        UploadError: On a short read, or if the final status is not ``final``.
        APIError: If the server rejects a chunk.

    """
    if upload_size < 0:
        raise InvalidArgumentError(f"upload size must be non-negative, got {upload_size}")
    url = validated_url(upload_url)
    base_headers = merge_headers(options.headers, sdk_headers(client.strategy))
    timeout = options.timeout if options.timeout is not None else httpx.USE_CLIENT_DEFAULT

    offset = 0
    status: str | None = None
    body: JsonObject = {}
    while True:
        chunk_size = min(_chunk_size, upload_size - offset)
        command = "upload, finalize" if offset + chunk_size >= upload_size else "upload"
        data = _read_exactly(source, chunk_size, offset)
        headers = merge_headers(
            base_headers,
            {
                UPLOAD_COMMAND_HEADER: command,
                UPLOAD_OFFSET_HEADER: str(offset),
                "Content-Length": str(chunk_size),
            },
        )
        request = client.http_client.build_request("POST", url, content=data, headers=headers, timeout=timeout)
        if wire_upload_logger.isEnabledFor(logging.DEBUG):
            wire_upload_logger.debug(
                "Upload chunk: url=%s offset=%d size=%d command=%r",
                redact_url(str(url)),
                offset,
                chunk_size,
                command,
            )
        response = client.send(request, operation="upload")
        try:
            body = deserialize_unary_response(response)
        finally:
            response.close()
        offset += chunk_size
        status = response.headers.get(UPLOAD_STATUS_HEADER)
        if wire_upload_logger.isEnabledFor(logging.DEBUG):
            wire_upload_logger.debug("Upload chunk accepted: offset=%d status=%r", offset, status)
        if status != UPLOAD_STATUS_ACTIVE:
            break
        if offset >= upload_size:
            raise UploadError("all content has been uploaded, but the upload status is not finalized", offset=offset)

    if status != UPLOAD_STATUS_FINAL:
        raise UploadError(f"upload status is {status!r}, expected {UPLOAD_STATUS_FINAL!r}", offset=offset)
    file_obj = body.get("file")
    if not isinstance(file_obj, dict):
        raise UploadError("final upload response has no file object", offset=offset)
    _logger.info("Upload finalized: %d bytes", offset)
    return File.from_json_dict(file_obj)


def upload_path(
    client: ApiClient,
    path: str | os.PathLike[str],
    upload_url: str,
    options: HTTPOptions,
) -> File:
    """Upload the file at *path*, sized by ``os.stat``.

    Raises:
        UploadError: If the file cannot be opened or read.

    """
    try:
        with open(path, "rb") as source:
            size = os.fstat(source.fileno()).st_size
            return upload_chunks(client, source, upload_url, size, options)
    except OSError as exc:
        raise UploadError(f"failed to open {os.fspath(path)!s}: {exc}") from exc
