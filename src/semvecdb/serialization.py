"""Encoding of a whole table to bytes and back.

The structured format is a single UTF-8 JSON document::

    {"vectors": [[...], ...], "metadata": [{"id", "chunk_text", "metadata", "connections"}, ...]}

The binary format is a numpy ``.npz`` archive holding the float64 matrix and
the same record list as JSON bytes. Neither format uses pickle.
"""

from __future__ import annotations

import io
import json
import zipfile
from enum import Enum
from typing import Any

import numpy as np

from .exceptions import FormatError
from .metadata import validate_metadata
from .types import Connection, Record


class SerializationFormat(Enum):
    JSON = "json"
    BINARY = "binary"

    @classmethod
    def parse(cls, value: "SerializationFormat | str") -> "SerializationFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise FormatError(f"unsupported serialization format: {value!r}") from None


def _record_from_dict(raw: Any, position: int) -> Record:
    if not isinstance(raw, dict):
        raise FormatError(f"metadata[{position}] is not an object")
    try:
        rid = raw["id"]
        conns_raw = raw.get("connections") or []
        connections = [Connection(id=str(c["id"]), score=float(c["score"])) for c in conns_raw]
        return Record(
            id=str(rid),
            chunk_text=str(raw.get("chunk_text", "")),
            metadata=validate_metadata(raw.get("metadata") or {}),
            connections=connections,
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise FormatError(f"metadata[{position}] is malformed: {exc}") from exc


def _build(vectors: Any, metadata: Any) -> tuple[np.ndarray, list[Record]]:
    if not isinstance(metadata, list):
        raise FormatError("'metadata' must be a list")
    try:
        matrix = np.asarray(vectors, dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise FormatError(f"'vectors' is not a numeric matrix: {exc}") from exc
    if matrix.size == 0 and len(metadata) == 0:
        return np.zeros((0, 0), dtype=np.float64), []
    if matrix.ndim != 2 or matrix.shape[1] == 0:
        raise FormatError("'vectors' must be a list of equal-length number lists")
    if matrix.shape[0] != len(metadata):
        raise FormatError(
            f"vector count {matrix.shape[0]} does not match metadata count {len(metadata)}"
        )
    records = [_record_from_dict(raw, i) for i, raw in enumerate(metadata)]
    if len({r.id for r in records}) != len(records):
        raise FormatError("duplicate record ids")
    return matrix, records


def encode(vectors: np.ndarray, records: list[Record], fmt: SerializationFormat) -> bytes:
    record_dicts = [r.to_dict() for r in records]
    if fmt is SerializationFormat.JSON:
        doc = {"vectors": vectors.tolist(), "metadata": record_dicts}
        return json.dumps(doc).encode("utf-8")
    buf = io.BytesIO()
    meta_bytes = np.frombuffer(json.dumps(record_dicts).encode("utf-8"), dtype=np.uint8)
    np.savez(buf, vectors=np.asarray(vectors, dtype=np.float64), metadata=meta_bytes)
    return buf.getvalue()


def decode(data: bytes, fmt: SerializationFormat) -> tuple[np.ndarray, list[Record]]:
    """Decode ``data``; raises :class:`FormatError` on any malformed input."""
    if fmt is SerializationFormat.JSON:
        try:
            doc = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise FormatError(f"collection is not valid JSON: {exc}") from exc
        if not isinstance(doc, dict) or "vectors" not in doc or "metadata" not in doc:
            raise FormatError("collection must contain 'vectors' and 'metadata'")
        return _build(doc["vectors"], doc["metadata"])
    try:
        loaded = np.load(io.BytesIO(data), allow_pickle=False)
    except (OSError, EOFError, ValueError, zipfile.BadZipFile) as exc:
        raise FormatError(f"collection is not a valid binary archive: {exc}") from exc
    if not isinstance(loaded, np.lib.npyio.NpzFile):
        raise FormatError("collection is a bare array, not an .npz archive")
    try:
        with loaded as archive:
            vectors = archive["vectors"]
            meta_raw = archive["metadata"].tobytes().decode("utf-8")
        metadata = json.loads(meta_raw)
    except (OSError, EOFError, KeyError, ValueError, zipfile.BadZipFile) as exc:
        raise FormatError(f"collection is not a valid binary archive: {exc}") from exc
    return _build(vectors, metadata)


__all__ = ["SerializationFormat", "decode", "encode"]
