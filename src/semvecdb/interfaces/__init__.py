# interfaces package (src layout)

from . import embedding as embedding
from . import storage as storage

__all__ = ["embedding", "storage"]
