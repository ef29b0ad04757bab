# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Transport and protocol layer for a generative-AI service client."""

import contextlib
import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("genai-transport")
except PackageNotFoundError:
    __version__ = "0.0.0"

from genai_transport.backend import BackendStrategy, DirectApiStrategy, HostedStrategy, strategy_for
from genai_transport.config import Backend, BaseURLParameters, ClientConfig, HTTPOptions, TokenSource
from genai_transport.errors import (
    APIError,
    ConfigurationError,
    FrameFormatError,
    GenaiError,
    InvalidArgumentError,
    ProtocolError,
    RequestCancelledError,
    SessionClosedError,
    StreamFormatError,
    TokenTooLargeError,
    TransportError,
    UploadError,
    URLCompositionError,
)
from genai_transport.http import ApiClient, EventScanner, ResponseStream, StreamResult
from genai_transport.live import Live, Session, SessionState
from genai_transport.naming import (
    cached_content_name,
    caches_model,
    contents_for_embed,
    extract_models,
    model_full_name,
    model_name,
    models_url,
    resource_name,
)
from genai_transport.types import (
    File,
    JsonObject,
    JsonValue,
    LiveClientMessage,
    LiveConnectConfig,
    LiveServerMessage,
)
from genai_transport.utils import JsonSerializableDataclass

# OpenTelemetry instrumentation (optional, requires `pip install genai-transport[otel]`)
with contextlib.suppress(ImportError):
    from genai_transport.otel import OtelConfig, instrument_client

__all__ = [
    "__version__",
    # Configuration
    "Backend",
    "BaseURLParameters",
    "ClientConfig",
    "HTTPOptions",
    "TokenSource",
    # Backends
    "BackendStrategy",
    "DirectApiStrategy",
    "HostedStrategy",
    "strategy_for",
    # Naming
    "cached_content_name",
    "caches_model",
    "contents_for_embed",
    "extract_models",
    "model_full_name",
    "model_name",
    "models_url",
    "resource_name",
    # HTTP
    "ApiClient",
    "EventScanner",
    "ResponseStream",
    "StreamResult",
    # Realtime
    "Live",
    "Session",
    "SessionState",
    # Types
    "File",
    "JsonObject",
    "JsonSerializableDataclass",
    "JsonValue",
    "LiveClientMessage",
    "LiveConnectConfig",
    "LiveServerMessage",
    # Errors
    "APIError",
    "ConfigurationError",
    "FrameFormatError",
    "GenaiError",
    "InvalidArgumentError",
    "ProtocolError",
    "RequestCancelledError",
    "SessionClosedError",
    "StreamFormatError",
    "TokenTooLargeError",
    "TransportError",
    "URLCompositionError",
    "UploadError",
]

if "OtelConfig" in dir():
    __all__ += ["OtelConfig", "instrument_client"]

# Attach NullHandler so library users don't get "No handler found" warnings.
logging.getLogger("genai_transport").addHandler(logging.NullHandler())
