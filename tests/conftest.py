# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Shared test fixtures for genai-transport tests."""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field

import falcon
import pytest

from genai_transport.config import Backend, ClientConfig, HTTPOptions
from genai_transport.http import ApiClient
from genai_transport.http._testing import make_sync_client

FAKE_BASE_URL = "https://genai.test/"
"""Base URL configured on test clients; the WSGI transport ignores the host."""

API_KEY = "test-api-key"
PROJECT = "test-project"
LOCATION = "test-location"
ACCESS_TOKEN = "test-access-token"


# ---------------------------------------------------------------------------
# Fake service
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecordedRequest:
    """One request received by the fake service."""

    method: str
    path: str
    query: str
    headers: dict[str, str]
    body: bytes

    def json(self) -> object:
        """Decode the body as JSON."""
        return json.loads(self.body)


@dataclass(frozen=True)
class ScriptedResponse:
    """A canned reply served by the fake service."""

    status: int = 200
    body: bytes = b"{}"
    headers: dict[str, str] = field(default_factory=dict)


class FakeService:
    """Falcon application that records requests and replays scripted responses.

    Responses are served in the order they were queued; once the queue is
    empty every request gets ``200 {}``.
    """

    def __init__(self) -> None:
        self.requests: list[RecordedRequest] = []
        self._responses: list[ScriptedResponse] = []
        self.app = falcon.App()
        self.app.add_sink(self._handle, prefix="/")

    def enqueue(
        self,
        status: int = 200,
        body: bytes | str = b"{}",
        headers: dict[str, str] | None = None,
    ) -> None:
        """Queue a raw response."""
        raw = body.encode() if isinstance(body, str) else body
        self._responses.append(ScriptedResponse(status, raw, dict(headers or {})))

    def enqueue_json(self, obj: object, status: int = 200, headers: dict[str, str] | None = None) -> None:
        """Queue a JSON response."""
        self.enqueue(status, json.dumps(obj), {"Content-Type": "application/json", **(headers or {})})

    def enqueue_events(self, *events: object, delimiter: str = "\r\n\r\n") -> None:
        """Queue a server-sent event stream of ``data:`` events."""
        body = "".join(f"data: {json.dumps(e)}{delimiter}" for e in events)
        self.enqueue(200, body, {"Content-Type": "text/event-stream"})

    @property
    def last(self) -> RecordedRequest:
        """The most recent request."""
        return self.requests[-1]

    def _handle(self, req: falcon.Request, resp: falcon.Response, **_kwargs: object) -> None:
        body = req.bounded_stream.read()
        self.requests.append(
            RecordedRequest(
                method=req.method,
                path=req.path,
                query=req.query_string,
                headers={k.lower(): v for k, v in req.headers.items()},
                body=body,
            )
        )
        scripted = self._responses.pop(0) if self._responses else ScriptedResponse()
        resp.status = scripted.status
        resp.data = scripted.body
        resp.content_type = "application/json"
        for name, value in scripted.headers.items():
            resp.set_header(name, value)


class StaticTokenSource:
    """Token source returning a fixed token and counting calls."""

    def __init__(self, value: str = ACCESS_TOKEN) -> None:
        self.value = value
        self.calls = 0

    def token(self) -> str:
        """Return the fixed token."""
        self.calls += 1
        return self.value


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_service() -> FakeService:
    """A fresh fake service."""
    return FakeService()


@pytest.fixture
def token_source() -> StaticTokenSource:
    """A counting static token source."""
    return StaticTokenSource()


@pytest.fixture
def direct_config() -> ClientConfig:
    """Direct API configuration pointing at the fake service."""
    return ClientConfig(Backend.DIRECT_API, api_key=API_KEY, http_options=HTTPOptions(base_url=FAKE_BASE_URL))


@pytest.fixture
def hosted_config(token_source: StaticTokenSource) -> ClientConfig:
    """Hosted backend configuration pointing at the fake service."""
    return ClientConfig(
        Backend.HOSTED,
        project=PROJECT,
        location=LOCATION,
        token_source=token_source,
        http_options=HTTPOptions(base_url=FAKE_BASE_URL),
    )


@pytest.fixture
def direct_client(fake_service: FakeService, direct_config: ClientConfig) -> Iterator[ApiClient]:
    """ApiClient for the direct API wired to the fake service."""
    http = make_sync_client(fake_service.app)
    with ApiClient(direct_config, http_client=http) as client:
        yield client
    http.close()


@pytest.fixture
def hosted_client(fake_service: FakeService, hosted_config: ClientConfig) -> Iterator[ApiClient]:
    """ApiClient for the hosted backend wired to the fake service."""
    http = make_sync_client(fake_service.app)
    with ApiClient(hosted_config, http_client=http) as client:
        yield client
    http.close()
