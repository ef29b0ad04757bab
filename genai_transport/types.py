# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Wire-level document types and the few typed records the transport produces.

The per-endpoint catalog (``Content``, ``Tool``, ``GenerationConfig`` ...)
lives outside this package; here those values travel as ``JsonObject``.
"""

from __future__ import annotations

from dataclasses import dataclass

from genai_transport.utils import JsonSerializableDataclass

__all__ = [
    "File",
    "JsonObject",
    "JsonValue",
    "LiveClientMessage",
    "LiveConnectConfig",
    "LiveServerMessage",
]

type JsonValue = None | bool | int | float | str | list[JsonValue] | dict[str, JsonValue]
"""Any value representable in JSON."""

type JsonObject = dict[str, JsonValue]
"""A JSON object keyed by wire field names."""


@dataclass(frozen=True)
class File(JsonSerializableDataclass):
    """A file stored by the service, as returned by a finalized upload.

    Attributes:
        name: Resource name, e.g. ``files/abc-123``.
        display_name: Human-readable name.
        mime_type: MIME type of the content.
        size_bytes: Size of the content in bytes.
        create_time: RFC 3339 creation timestamp.
        expiration_time: RFC 3339 expiry timestamp.
        update_time: RFC 3339 last-update timestamp.
        sha256_hash: Base64 SHA-256 of the content.
        uri: URI used to reference the file in requests.
        download_uri: URI for downloading generated files.
        state: Processing state (``PROCESSING``, ``ACTIVE``, ``FAILED``).
        source: Origin of the file (``UPLOADED``, ``GENERATED``).
        error: Error status when processing failed.

    """

    name: str | None = None
    display_name: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    create_time: str | None = None
    expiration_time: str | None = None
    update_time: str | None = None
    sha256_hash: str | None = None
    uri: str | None = None
    download_uri: str | None = None
    state: str | None = None
    source: str | None = None
    error: JsonObject | None = None


@dataclass(frozen=True)
class LiveConnectConfig(JsonSerializableDataclass):
    """Optional setup parameters for a realtime session."""

    generation_config: JsonObject | None = None
    system_instruction: JsonObject | None = None
    tools: list[JsonObject] | None = None


@dataclass(frozen=True)
class LiveClientMessage(JsonSerializableDataclass):
    """A message sent from the client over a realtime session.

    Exactly one field is normally set.  ``setup`` is reserved for the
    handshake performed by ``Live.connect``.
    """

    setup: JsonObject | None = None
    client_content: JsonObject | None = None
    realtime_input: JsonObject | None = None
    tool_response: JsonObject | None = None


@dataclass(frozen=True)
class LiveServerMessage(JsonSerializableDataclass):
    """A message received from the server over a realtime session.

    ``error`` is populated when the server reports an application-level
    failure inside an otherwise well-formed message; interpreting it is
    left to the caller.
    """

    setup_complete: JsonObject | None = None
    server_content: JsonObject | None = None
    tool_call: JsonObject | None = None
    tool_call_cancellation: JsonObject | None = None
    usage_metadata: JsonObject | None = None
    go_away: JsonObject | None = None
    session_resumption_update: JsonObject | None = None
    error: JsonObject | None = None
