# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Backend strategies.

Everything that differs between the direct API and the hosted backend
(resource naming, URL composition, authentication, realtime endpoint)
lives behind the ``BackendStrategy`` protocol.  A strategy is chosen once
per client by ``strategy_for()``; callers never branch on the backend
themselves.
"""

from __future__ import annotations

from collections.abc import Generator, Mapping
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import httpx

from genai_transport.config import Backend, ClientConfig, TokenSource
from genai_transport.errors import ConfigurationError, InvalidArgumentError
from genai_transport.types import JsonValue

__all__ = [
    "BackendStrategy",
    "DirectApiStrategy",
    "HostedStrategy",
    "WebSocketTarget",
    "strategy_for",
]

_HOSTED_BIDI_PATH = "/ws/google.cloud.aiplatform.{version}.LlmBidiService/BidiGenerateContent"
_DIRECT_BIDI_PATH = "/ws/google.ai.generativelanguage.{version}.GenerativeService.BidiGenerateContent"


@dataclass(frozen=True)
class WebSocketTarget:
    """Path, query string and auth headers for a realtime connection."""

    path: str
    query: str
    headers: Mapping[str, str]


class BearerTokenAuth(httpx.Auth):
    """``httpx.Auth`` that stamps each request with a bearer token.

    The token is fetched from the token source at send time so refreshes
    performed by the source are picked up transparently.
    """

    def __init__(self, token_source: TokenSource) -> None:
        """Initialize with the shared token source."""
        self._token_source = token_source

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        """Set the ``Authorization`` header and send."""
        request.headers["Authorization"] = f"Bearer {self._token_source.token()}"
        yield request


def _should_prepend_collection(name: str, collection: str, depth: int) -> bool:
    return not name.startswith(collection + "/") and (collection + "/" + name).count("/") + 1 == depth


@runtime_checkable
class BackendStrategy(Protocol):
    """Backend-specific behaviour used by the request path and realtime sessions."""

    @property
    def backend(self) -> Backend:
        """The backend this strategy implements."""
        ...

    def resource_name(self, name: str, collection: str, depth: int) -> str:
        """Qualify a short resource identifier."""
        ...

    def model_name(self, model: str) -> str:
        """Qualify a model identifier."""
        ...

    def model_full_name(self, model: str) -> str:
        """Expand a model identifier to the form realtime and cache endpoints require."""
        ...

    def models_url(self, base_models: bool) -> str:
        """Collection path for listing base or tuned models."""
        ...

    def contents_for_embed(self, contents: JsonValue) -> JsonValue:
        """Reshape ``contents`` for the embedding endpoint."""
        ...

    def url_path(self, path: str, method: str, api_version: str) -> str:
        """Return the URL suffix to append to the base URL for *path*."""
        ...

    def auth_headers(self) -> dict[str, str]:
        """Static auth headers added to every HTTP request."""
        ...

    def http_auth(self) -> httpx.Auth | None:
        """Per-request ``httpx.Auth`` hook, if the backend needs one."""
        ...

    def websocket_target(self, api_version: str) -> WebSocketTarget:
        """Realtime endpoint path, query and auth headers."""
        ...


class DirectApiStrategy:
    """Direct API: API-key auth, ``models/`` resource names."""

    __slots__ = ("_api_key",)

    def __init__(self, api_key: str) -> None:
        """Initialize with the API key."""
        self._api_key = api_key

    @property
    def backend(self) -> Backend:
        """Always ``Backend.DIRECT_API``."""
        return Backend.DIRECT_API

    def resource_name(self, name: str, collection: str, depth: int) -> str:
        """Prepend ``<collection>/`` when that yields a name of the expected depth."""
        if _should_prepend_collection(name, collection, depth):
            return f"{collection}/{name}"
        return name

    def model_name(self, model: str) -> str:
        """``models/`` and ``tunedModels/`` names are already qualified."""
        if model.startswith(("models/", "tunedModels/")):
            return model
        return f"models/{model}"

    def model_full_name(self, model: str) -> str:
        """Same as ``model_name``; the direct API has no project scope."""
        return self.model_name(model)

    def models_url(self, base_models: bool) -> str:
        """``models`` for base models, ``tunedModels`` otherwise."""
        return "models" if base_models else "tunedModels"

    def contents_for_embed(self, contents: JsonValue) -> JsonValue:
        """The direct API embeds contents as-is."""
        return contents

    def url_path(self, path: str, method: str, api_version: str) -> str:
        """Insert the API version unless the path already carries it."""
        if f"/{api_version}/" not in path:
            return f"{api_version}/{path}"
        return path

    def auth_headers(self) -> dict[str, str]:
        """The API key header."""
        return {"x-goog-api-key": self._api_key}

    def http_auth(self) -> httpx.Auth | None:
        """No per-request auth; the API key header is static."""
        return None

    def websocket_target(self, api_version: str) -> WebSocketTarget:
        """API key travels as the ``key`` query parameter."""
        return WebSocketTarget(
            path=_DIRECT_BIDI_PATH.format(version=api_version),
            query=str(httpx.QueryParams({"key": self._api_key})),
            headers={},
        )


class HostedStrategy:
    """Hosted backend: bearer-token auth, project/location-scoped names."""

    __slots__ = ("_location", "_project", "_token_source")

    def __init__(self, project: str, location: str, token_source: TokenSource) -> None:
        """Initialize with the project scope and token source."""
        self._project = project
        self._location = location
        self._token_source = token_source

    @property
    def backend(self) -> Backend:
        """Always ``Backend.HOSTED``."""
        return Backend.HOSTED

    @property
    def _scope(self) -> str:
        return f"projects/{self._project}/locations/{self._location}"

    def resource_name(self, name: str, collection: str, depth: int) -> str:
        """Scope *name* under the configured project and location."""
        if name.startswith("projects/"):
            return name
        if name.startswith("locations/"):
            return f"projects/{self._project}/{name}"
        if name.startswith(collection + "/"):
            return f"{self._scope}/{name}"
        if _should_prepend_collection(name, collection, depth):
            return f"{self._scope}/{collection}/{name}"
        return name

    def model_name(self, model: str) -> str:
        """Map bare and ``vendor/name`` shorthands to publisher model names."""
        if model.startswith(("projects/", "models/", "publishers/")):
            return model
        if "/" in model:
            vendor, name = model.split("/", 1)
            return f"publishers/{vendor}/models/{name}"
        return f"publishers/google/models/{model}"

    def model_full_name(self, model: str) -> str:
        """Prefix publisher and ``models/`` names with the project scope."""
        name = self.model_name(model)
        if name.startswith("publishers/"):
            return f"{self._scope}/{name}"
        if name.startswith("models/"):
            return f"{self._scope}/publishers/google/{name}"
        return name

    def models_url(self, base_models: bool) -> str:
        """``publishers/google/models`` for base models, ``models`` otherwise."""
        return "publishers/google/models" if base_models else "models"

    def contents_for_embed(self, contents: JsonValue) -> JsonValue:
        """Flatten contents to the text of each content's first part.

        Raises:
            InvalidArgumentError: If *contents* is not a list, or a content
                has no parts or a non-text first part.

        """
        if not isinstance(contents, list):
            raise InvalidArgumentError("contents_for_embed: contents is not a list")
        texts: list[JsonValue] = []
        for content in contents:
            parts = content.get("parts") if isinstance(content, dict) else None
            if not isinstance(parts, list) or not parts:
                raise InvalidArgumentError("contents_for_embed: content parts is not a non-empty list")
            first = parts[0]
            text = first.get("text") if isinstance(first, dict) else None
            if not isinstance(text, str):
                raise InvalidArgumentError("contents_for_embed: content part text is not a string")
            texts.append(text)
        return texts

    def url_path(self, path: str, method: str, api_version: str) -> str:
        """Scope *path* under the project unless already scoped or a base-model listing."""
        base_model_query = method.upper() == "GET" and path.startswith("publishers/google/models")
        if not path.startswith("projects/") and not base_model_query:
            path = f"{self._scope}/{path}"
        return f"{api_version}/{path}"

    def auth_headers(self) -> dict[str, str]:
        """No static auth headers; the bearer token is added per request."""
        return {}

    def http_auth(self) -> httpx.Auth | None:
        """Bearer-token auth backed by the token source."""
        return BearerTokenAuth(self._token_source)

    def websocket_target(self, api_version: str) -> WebSocketTarget:
        """Bearer token in the ``Authorization`` header."""
        return WebSocketTarget(
            path=_HOSTED_BIDI_PATH.format(version=api_version),
            query="",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._token_source.token()}",
            },
        )


def strategy_for(config: ClientConfig) -> BackendStrategy:
    """Select the strategy for *config*'s backend."""
    if config.backend is Backend.HOSTED:
        if config.token_source is None:
            raise ConfigurationError("the hosted backend requires a token_source")
        return HostedStrategy(config.project, config.location, config.token_source)
    return DirectApiStrategy(config.api_key)
