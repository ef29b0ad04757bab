# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Client configuration.

``ClientConfig`` is built once, validated in ``__post_init__`` and shared
read-only by every request for the lifetime of the client.  Environment
variables are consulted exactly once, by ``BaseURLParameters.from_env``,
and the result is injected into the config rather than read at call time.

Usage::

    from genai_transport.config import Backend, ClientConfig

    cfg = ClientConfig.create(Backend.DIRECT_API, api_key="...")
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from genai_transport.errors import ConfigurationError

__all__ = [
    "Backend",
    "BaseURLParameters",
    "ClientConfig",
    "HTTPOptions",
    "TokenSource",
]

GEMINI_BASE_URL_ENV = "GOOGLE_GEMINI_BASE_URL"
VERTEX_BASE_URL_ENV = "GOOGLE_VERTEX_BASE_URL"

_DEFAULT_DIRECT_BASE_URL = "https://generativelanguage.googleapis.com/"
_DEFAULT_DIRECT_API_VERSION = "v1beta"
_DEFAULT_HOSTED_API_VERSION = "v1beta1"

_EMPTY_HEADERS: Mapping[str, str] = MappingProxyType({})


class Backend(Enum):
    """Deployment surface targeted by a client."""

    DIRECT_API = "direct_api"
    HOSTED = "hosted"


@runtime_checkable
class TokenSource(Protocol):
    """Opaque source of bearer access tokens for the hosted backend.

    Implementations must be safe for concurrent use: ``token()`` may be
    called from several threads at once.
    """

    def token(self) -> str:
        """Return a currently valid access token."""
        ...


@dataclass(frozen=True)
class HTTPOptions:
    """Transport options, set client-wide and optionally overridden per call.

    Attributes:
        base_url: Overrides the default service host.
        api_version: API version path segment, e.g. ``"v1beta"``.
        headers: Extra headers merged into every request.
        timeout: Request timeout in seconds; ``None`` means no timeout.

    """

    base_url: str = ""
    api_version: str = ""
    headers: Mapping[str, str] = field(default_factory=lambda: _EMPTY_HEADERS)
    timeout: float | None = None

    def __post_init__(self) -> None:
        """Validate the timeout and freeze the header mapping."""
        if self.timeout is not None and self.timeout <= 0:
            raise ConfigurationError(f"timeout must be > 0, got {self.timeout}")
        if not isinstance(self.headers, MappingProxyType):
            object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    def merged_over(self, defaults: HTTPOptions) -> HTTPOptions:
        """Return a new record with this record's non-empty fields layered over *defaults*.

        Headers merge key by key, this record winning on conflicts.
        Neither input is modified.
        """
        return HTTPOptions(
            base_url=self.base_url or defaults.base_url,
            api_version=self.api_version or defaults.api_version,
            headers={**defaults.headers, **self.headers},
            timeout=self.timeout if self.timeout is not None else defaults.timeout,
        )


@dataclass(frozen=True)
class BaseURLParameters:
    """Default base URL overrides for each backend.

    Attributes:
        direct_url: Base URL for the direct API, or ``None``.
        hosted_url: Base URL for the hosted backend, or ``None``.

    """

    direct_url: str | None = None
    hosted_url: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> BaseURLParameters:
        """Read ``GOOGLE_GEMINI_BASE_URL`` and ``GOOGLE_VERTEX_BASE_URL``.

        Args:
            environ: Mapping to read from; defaults to ``os.environ``.

        """
        env = os.environ if environ is None else environ
        return cls(direct_url=env.get(GEMINI_BASE_URL_ENV), hosted_url=env.get(VERTEX_BASE_URL_ENV))

    def for_backend(self, backend: Backend) -> str | None:
        """Return the override for *backend*, if any."""
        return self.hosted_url if backend is Backend.HOSTED else self.direct_url


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration shared by every component of a client.

    Attributes:
        backend: Which deployment surface to talk to.
        api_key: API key (direct backend).
        project: Cloud project identifier (hosted backend).
        location: Cloud location, e.g. ``us-central1`` (hosted backend).
        token_source: Bearer token source (hosted backend).
        http_options: Client-wide transport options.
        base_urls: Injected default base URLs (usually from the environment).

    Raises:
        ConfigurationError: If the fields required by *backend* are missing.

    """

    backend: Backend
    api_key: str = ""
    project: str = ""
    location: str = ""
    token_source: TokenSource | None = field(default=None, repr=False)
    http_options: HTTPOptions = field(default_factory=HTTPOptions)
    base_urls: BaseURLParameters = field(default_factory=BaseURLParameters)

    def __post_init__(self) -> None:
        """Validate backend-specific requirements."""
        if self.backend is Backend.DIRECT_API:
            if not self.api_key:
                raise ConfigurationError("the direct API backend requires an api_key")
        else:
            missing = [name for name in ("project", "location") if not getattr(self, name)]
            if missing:
                raise ConfigurationError(f"the hosted backend requires {' and '.join(missing)}")
            if self.token_source is None:
                raise ConfigurationError("the hosted backend requires a token_source")

    @classmethod
    def create(cls, backend: Backend, *, environ: Mapping[str, str] | None = None, **kwargs: object) -> ClientConfig:
        """Build a config with base URL overrides read from the environment once.

        Args:
            backend: Target backend.
            environ: Environment mapping; defaults to ``os.environ``.
            **kwargs: Remaining ``ClientConfig`` fields.

        """
        return cls(backend, base_urls=BaseURLParameters.from_env(environ), **kwargs)  # type: ignore[arg-type]

    @property
    def default_base_url(self) -> str:
        """Built-in base URL for this backend and location."""
        if self.backend is Backend.DIRECT_API:
            return _DEFAULT_DIRECT_BASE_URL
        if self.location == "global":
            return "https://aiplatform.googleapis.com/"
        return f"https://{self.location}-aiplatform.googleapis.com/"

    @property
    def effective_http_options(self) -> HTTPOptions:
        """Client-wide options with base URL and API version defaults filled in.

        Base URL priority: explicit ``http_options.base_url``, then the
        injected ``base_urls`` override for the backend, then the built-in
        default.
        """
        opts = self.http_options
        base_url = opts.base_url or self.base_urls.for_backend(self.backend) or self.default_base_url
        api_version = opts.api_version or (
            _DEFAULT_HOSTED_API_VERSION if self.backend is Backend.HOSTED else _DEFAULT_DIRECT_API_VERSION
        )
        return replace(opts, base_url=base_url, api_version=api_version)

    def resolve_http_options(self, per_call: HTTPOptions | None) -> HTTPOptions:
        """Layer *per_call* over the client-wide options."""
        defaults = self.effective_http_options
        if per_call is None:
            return defaults
        return per_call.merged_over(defaults)
