"""Top-level package for semvecdb.

An embedded vector store with exact cosine search and an incrementally
maintained semantic connection graph.
"""

from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _version

from .exceptions import (
    ConnectionsDisabledError,
    DimensionMismatchError,
    FormatError,
    MetadataError,
    RecordNotFoundError,
    StorageIOError,
    VectorDatabaseError,
    ZeroVectorError,
    ZeroVectorWarning,
)
from .serialization import SerializationFormat
from .table import VectorDatabase
from .types import Connection, Record, SimilarityResult

# Public package version for introspection/tools
try:  # pragma: no cover - trivial metadata access
    __version__ = _version("semvecdb")
except PackageNotFoundError:  # Local, editable, or missing dist metadata
    __version__ = "0.0.0.dev0"

__all__ = [
    "Connection",
    "ConnectionsDisabledError",
    "DimensionMismatchError",
    "FormatError",
    "MetadataError",
    "Record",
    "RecordNotFoundError",
    "SerializationFormat",
    "SimilarityResult",
    "StorageIOError",
    "VectorDatabase",
    "VectorDatabaseError",
    "ZeroVectorError",
    "ZeroVectorWarning",
    "__version__",
]
