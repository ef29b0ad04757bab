# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""JSON document helpers shared by the HTTP and realtime layers.

KEY FUNCTIONS
-------------
camel_case(name) : Convert a snake_case field name to its wire spelling
encode_json(obj) : Compact JSON encoding used for request bodies and frames
decode_json_object(data, context) : Decode bytes that must hold a JSON object

KEY CLASSES
-----------
JsonSerializableDataclass : Mixin giving frozen dataclasses an explicit
    conversion boundary to and from wire-level JSON objects.
"""

from __future__ import annotations

import json
from dataclasses import MISSING
from dataclasses import fields as dataclass_fields
from enum import Enum
from types import NoneType, UnionType
from typing import TYPE_CHECKING, Any, ClassVar, Self, Union, get_args, get_origin, get_type_hints

from genai_transport.errors import InvalidArgumentError

if TYPE_CHECKING:
    from genai_transport.types import JsonObject

__all__ = [
    "JsonSerializableDataclass",
    "camel_case",
    "decode_json_object",
    "encode_json",
]

_JSON_NAME_KEY = "json_name"


def camel_case(name: str) -> str:
    """Convert ``snake_case`` to ``camelCase`` (``system_instruction`` -> ``systemInstruction``)."""
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def encode_json(obj: object) -> bytes:
    """Encode *obj* as compact UTF-8 JSON.

    Raises:
        InvalidArgumentError: If *obj* contains values JSON cannot represent.

    """
    try:
        return json.dumps(obj, separators=(",", ":"), ensure_ascii=False, allow_nan=False).encode()
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"payload is not JSON-encodable: {exc}") from exc


def decode_json_object(data: bytes | str, context: str) -> JsonObject:
    """Decode *data* and require the top-level value to be a JSON object.

    Args:
        data: Raw JSON text.
        context: Short description used in the error message.

    Returns:
        The decoded object.

    Raises:
        ValueError: If *data* is not valid JSON or not an object.

    """
    value = json.loads(data)
    if not isinstance(value, dict):
        raise ValueError(f"{context}: expected a JSON object, got {type(value).__name__}")
    return value


def _unwrap_optional(tp: Any) -> Any:
    """Return ``T`` for ``T | None`` annotations, else *tp* unchanged."""
    origin = get_origin(tp)
    if origin is UnionType or origin is Union:
        args = [a for a in get_args(tp) if a is not NoneType]
        if len(args) == 1:
            return args[0]
    return tp


class JsonSerializableDataclass:
    """Mixin for dataclasses exchanged with the service as JSON objects.

    Field names are mapped to camelCase wire names automatically; pass
    ``field(metadata={"json_name": "..."})`` to override.  ``None`` values
    are omitted on output, matching the ``omitempty`` behaviour the service
    expects.

    Supported field types:
    - JSON scalars (``str``, ``int``, ``float``, ``bool``)
    - ``JsonObject`` / ``list[JsonObject]`` (passed through untouched)
    - Enum (serialized via ``.value``)
    - Nested ``JsonSerializableDataclass`` and lists of them

    ``int`` fields accept decimal strings on input because the service
    encodes 64-bit integers as JSON strings.
    """

    _FIELD_NAMES: ClassVar[dict[str, str] | None] = None

    @classmethod
    def _wire_names(cls) -> dict[str, str]:
        cached = cls.__dict__.get("_FIELD_NAMES")
        if cached is None:
            cached = {
                f.name: f.metadata.get(_JSON_NAME_KEY, camel_case(f.name))
                for f in dataclass_fields(cls)  # type: ignore[arg-type]
            }
            cls._FIELD_NAMES = cached
        return cached

    def to_json_dict(self) -> JsonObject:
        """Convert this instance to a wire-level JSON object."""
        names = self._wire_names()
        out: JsonObject = {}
        for f in dataclass_fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            out[names[f.name]] = _to_json_value(value)
        return out

    @classmethod
    def from_json_dict(cls, data: JsonObject) -> Self:
        """Build an instance from a wire-level JSON object.

        Unknown keys are ignored.  Missing keys take the field default.

        Raises:
            InvalidArgumentError: If a required field is missing or a value
                has the wrong shape.

        """
        if not isinstance(data, dict):
            raise InvalidArgumentError(f"{cls.__name__}: expected a JSON object, got {type(data).__name__}")
        hints = get_type_hints(cls)
        names = cls._wire_names()
        kwargs: dict[str, Any] = {}
        for f in dataclass_fields(cls):  # type: ignore[arg-type]
            wire = names[f.name]
            if wire not in data:
                if f.default is MISSING and f.default_factory is MISSING:
                    raise InvalidArgumentError(f"{cls.__name__}: missing required field {wire!r}")
                continue
            kwargs[f.name] = _from_json_value(data[wire], hints.get(f.name, Any), f"{cls.__name__}.{wire}")
        return cls(**kwargs)


def _to_json_value(value: object) -> Any:
    if isinstance(value, JsonSerializableDataclass):
        return value.to_json_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, list | tuple):
        return [_to_json_value(v) for v in value]
    return value


def _from_json_value(value: Any, tp: Any, where: str) -> Any:
    if value is None:
        return None
    tp = _unwrap_optional(tp)
    origin = get_origin(tp)

    if isinstance(tp, type):
        if issubclass(tp, JsonSerializableDataclass):
            return tp.from_json_dict(value)
        if issubclass(tp, Enum):
            return tp(value)
        if tp is int and isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                raise InvalidArgumentError(f"{where}: expected an integer, got {value!r}") from None
        if tp in (str, int, float, bool) and not isinstance(value, tp):
            if not (tp is float and isinstance(value, int) and not isinstance(value, bool)):
                raise InvalidArgumentError(f"{where}: expected {tp.__name__}, got {type(value).__name__}")
        return value

    if origin is list:
        if not isinstance(value, list):
            raise InvalidArgumentError(f"{where}: expected a list, got {type(value).__name__}")
        (item_tp,) = get_args(tp) or (Any,)
        return [_from_json_value(v, item_tp, where) for v in value]

    return value
