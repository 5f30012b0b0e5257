# implementations package (src layout)

from . import hash_embedder as hash_embedder
from . import storage as storage

__all__ = ["hash_embedder", "storage"]
