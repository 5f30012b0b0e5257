from abc import ABC, abstractmethod
from collections.abc import Sequence


class IEmbeddingProvider(ABC):
    @abstractmethod
    def embed_text(self, text: str) -> Sequence[float]:
        """
        Returns a fixed-dimension embedding for ``text``; raises on failure.
        """
        pass

    @property
    @abstractmethod
    def dimension(self) -> int:
        pass
