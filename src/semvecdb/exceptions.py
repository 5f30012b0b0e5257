"""Error taxonomy for the vector store.

Every error derives from :class:`VectorDatabaseError` and from the builtin
exception that best matches its meaning, so callers can catch either.
"""


class VectorDatabaseError(Exception):
    """Base exception for semvecdb errors."""


class DimensionMismatchError(VectorDatabaseError, ValueError):
    """A vector's length disagrees with the table's established dimension."""

    def __init__(self, expected: int, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(f"Vector dimension {actual} does not match expected dimension {expected}")


class RecordNotFoundError(VectorDatabaseError, LookupError):
    """The referenced record id does not exist."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"vector with id {record_id} not found")


class ConnectionsDisabledError(VectorDatabaseError, RuntimeError):
    """A graph operation was requested on a table without semantic connections."""

    def __init__(self) -> None:
        super().__init__("semantic connections are not enabled")


class ZeroVectorError(VectorDatabaseError, ValueError):
    """Cosine similarity is undefined for a zero-norm vector."""


class ZeroVectorWarning(UserWarning):
    """A zero-norm vector was left unnormalized or skipped during ranking."""


class MetadataError(VectorDatabaseError, TypeError):
    """Metadata contains a value that is not a supported kind."""


class StorageIOError(VectorDatabaseError, OSError):
    """Reading or writing a persisted collection failed."""


class FormatError(VectorDatabaseError, ValueError):
    """A persisted collection could not be decoded."""
