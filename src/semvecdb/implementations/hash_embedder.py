import hashlib

import numpy as np

from semvecdb.interfaces.embedding import IEmbeddingProvider


class HashEmbedder(IEmbeddingProvider):
    """Deterministic bag-of-tokens embedding built from blake2b digests.

    Each lower-cased token is hashed into ``dim`` buckets with a sign, so
    texts sharing words get positive cosine similarity. Intended for the CLI
    and tests where no model is available.
    """

    def __init__(self, dim: int = 64) -> None:
        if dim <= 0:
            raise ValueError("dim must be positive")
        self._dim = int(dim)

    @property
    def dimension(self) -> int:
        return self._dim

    def embed_text(self, text: str) -> list[float]:
        vec = np.zeros(self._dim, dtype=np.float64)
        for token in text.lower().split():
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "little") % self._dim
            sign = 1.0 if digest[4] & 1 else -1.0
            vec[bucket] += sign
        return vec.tolist()
