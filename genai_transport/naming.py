# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""Resource-name transforms.

Turn short, user-supplied identifiers into the fully qualified resource
paths the active backend expects::

    strategy = strategy_for(config)
    model_name(strategy, "gemini-2.0-flash")
    # direct: "models/gemini-2.0-flash"
    # hosted: "publishers/google/models/gemini-2.0-flash"
    cached_content_name(strategy, "abc")
    # direct: "cachedContents/abc"
    # hosted: "projects/<p>/locations/<l>/cachedContents/abc"

All transforms reject identifiers that are empty or not strings with
``InvalidArgumentError``.
"""

from __future__ import annotations

import logging

from genai_transport.backend import BackendStrategy
from genai_transport.errors import InvalidArgumentError
from genai_transport.types import JsonValue

__all__ = [
    "cached_content_name",
    "caches_model",
    "contents_for_embed",
    "extract_models",
    "model_full_name",
    "model_name",
    "models_url",
    "resource_name",
]

_logger = logging.getLogger("genai_transport.naming")

_CACHED_CONTENTS = "cachedContents"


def _require_identifier(value: object, what: str) -> str:
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{what} is not a string (got {type(value).__name__})")
    if not value:
        raise InvalidArgumentError(f"{what} is empty")
    return value


def resource_name(strategy: BackendStrategy, name: object, collection: str, depth: int) -> str:
    """Qualify *name* within *collection* for the active backend.

    Args:
        strategy: Backend strategy of the client.
        name: Short or qualified identifier.
        collection: Collection identifier, e.g. ``"cachedContents"``.
        depth: Segment count of a collection-qualified name
            (``cachedContents/abc`` has depth 2).

    Returns:
        The qualified resource name.

    Raises:
        InvalidArgumentError: If *name* is empty or not a string.

    """
    return strategy.resource_name(_require_identifier(name, "resource name"), collection, depth)


def cached_content_name(strategy: BackendStrategy, name: object) -> str:
    """Qualify a cached-content identifier."""
    return strategy.resource_name(_require_identifier(name, "cached content name"), _CACHED_CONTENTS, 2)


def model_name(strategy: BackendStrategy, model: object) -> str:
    """Qualify a model identifier (``models/...`` or ``publishers/.../models/...``)."""
    return strategy.model_name(_require_identifier(model, "model"))


def model_full_name(strategy: BackendStrategy, model: object) -> str:
    """Expand a model identifier to its fully qualified form.

    On the hosted backend publisher models gain the
    ``projects/<p>/locations/<l>/`` scope; the direct API form is the
    same as ``model_name``.
    """
    return strategy.model_full_name(_require_identifier(model, "model"))


def caches_model(strategy: BackendStrategy, model: object) -> str:
    """Model name in the form the cached-contents endpoint requires."""
    return model_full_name(strategy, model)


def models_url(strategy: BackendStrategy, base_models: bool) -> str:
    """Collection path for listing base models or tuned models."""
    return strategy.models_url(base_models)


def contents_for_embed(strategy: BackendStrategy, contents: JsonValue) -> JsonValue:
    """Reshape ``contents`` for the embedding endpoint of the active backend."""
    return strategy.contents_for_embed(contents)


def extract_models(response: object) -> JsonValue:
    """Pull the model list out of a list-models response.

    The list lives under ``models``, ``tunedModels`` or ``publisherModels``
    depending on backend and query.

    Raises:
        InvalidArgumentError: If *response* is not a JSON object.

    """
    if not isinstance(response, dict):
        raise InvalidArgumentError(f"list-models response is not an object (got {type(response).__name__})")
    for key in ("models", "tunedModels", "publisherModels"):
        if key in response:
            return response[key]
    _logger.warning("No models, tunedModels or publisherModels key in list-models response: %s", sorted(response))
    return []
