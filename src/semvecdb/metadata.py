"""Tagged, schema-less metadata values.

Record metadata is a string-keyed map whose values are restricted to the
JSON kinds below. Values are checked when they enter the table (add, update,
load) so merges and serialization never meet an unsupported type.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

import numpy as np
from pydantic import JsonValue, TypeAdapter, ValidationError

from .exceptions import MetadataError

_METADATA_ADAPTER: TypeAdapter[dict[str, JsonValue]] = TypeAdapter(dict[str, JsonValue])


class MetadataKind(Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"
    MAP = "map"
    SEQUENCE = "sequence"


def value_kind(value: Any) -> MetadataKind:
    """Return the kind tag of a validated metadata value."""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return MetadataKind.BOOLEAN
    if isinstance(value, (int, float)):
        return MetadataKind.NUMBER
    if isinstance(value, str):
        return MetadataKind.STRING
    if value is None:
        return MetadataKind.NULL
    if isinstance(value, Mapping):
        return MetadataKind.MAP
    if isinstance(value, list):
        return MetadataKind.SEQUENCE
    raise MetadataError(f"Unsupported metadata value of type {type(value).__name__}")


def _to_builtin(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, tuple):
        return [_to_builtin(v) for v in value]
    if isinstance(value, list):
        return [_to_builtin(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _to_builtin(v) for k, v in value.items()}
    return value


def validate_metadata(metadata: Mapping[str, Any] | None) -> dict[str, Any]:
    """Return a validated copy of ``metadata``.

    Raises:
        MetadataError: if ``metadata`` is not a string-keyed mapping of
            supported values.
    """
    if metadata is None:
        return {}
    if not isinstance(metadata, Mapping):
        raise MetadataError(f"Metadata must be a mapping, got {type(metadata).__name__}")
    try:
        return _METADATA_ADAPTER.validate_python(_to_builtin(metadata))
    except ValidationError as exc:
        raise MetadataError(f"Invalid metadata: {exc.errors()[0].get('msg')}") from exc


def merge_metadata(base: Mapping[str, Any], updates: Mapping[str, Any] | None) -> dict[str, Any]:
    """Merge ``updates`` into a copy of ``base``; keys in ``updates`` win."""
    merged = dict(base)
    merged.update(validate_metadata(updates))
    return merged


__all__ = ["MetadataKind", "merge_metadata", "validate_metadata", "value_kind"]
