from abc import ABC, abstractmethod


class IBlobStore(ABC):
    """Named byte blobs under a storage root."""

    @abstractmethod
    def read(self, name: str) -> bytes:
        pass

    @abstractmethod
    def write(self, name: str, data: bytes) -> None:
        """Replace ``name`` with ``data``; a failed write must leave the old blob intact."""
        pass

    @abstractmethod
    def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    def health_check(self) -> bool:
        pass
