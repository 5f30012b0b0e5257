import os
import tempfile
from pathlib import Path

import structlog

from semvecdb.exceptions import StorageIOError
from semvecdb.interfaces.storage import IBlobStore

logger = structlog.get_logger(__name__)


class FileBlobStore(IBlobStore):
    """Stores each blob as a file under ``root``.

    Writes go to a temporary file in the same directory which is then
    atomically renamed over the target.
    """

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, name: str) -> Path:
        return self.root / name

    def read(self, name: str) -> bytes:
        path = self.path_for(name)
        try:
            return path.read_bytes()
        except OSError as exc:
            logger.error("blob.read_failed", path=str(path), error=str(exc))
            raise StorageIOError(f"error reading {path}: {exc}") from exc

    def write(self, name: str, data: bytes) -> None:
        path = self.path_for(name)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=self.root, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(data)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            logger.error("blob.write_failed", path=str(path), error=str(exc))
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageIOError(f"error writing {path}: {exc}") from exc

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def health_check(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.W_OK)
