# table.py - The vector table: embedding matrix, parallel records, search and graph queries

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping, Sequence
from typing import Any

import numpy as np
import structlog

from .config import Settings, get_settings
from .connections import ConnectionMaintainer
from .exceptions import (
    ConnectionsDisabledError,
    DimensionMismatchError,
    RecordNotFoundError,
)
from .graph import ConnectionGraph
from .implementations.storage import FileBlobStore
from .interfaces.embedding import IEmbeddingProvider
from .interfaces.storage import IBlobStore
from .locking import ReadWriteLock
from .matrix import GrowableMatrix
from .metadata import merge_metadata, validate_metadata
from .metrics import observe_operation
from .serialization import SerializationFormat, decode, encode
from .similarity import as_vector, normalize_vector, rank_rows
from .types import Record, SimilarityResult, StoredVector

logger = structlog.get_logger(__name__)

COLLECTION_SUFFIX = ".svdb"
BATCH_ITEM_KEYS = frozenset({"embedding", "chunk_text", "text", "metadata"})


class VectorDatabase:
    """Embedded vector store with exact cosine search and semantic connections.

    Row ``i`` of the embedding matrix always belongs to record ``i``; both
    move together on insert and delete, and deletion compacts storage.

    When ``use_semantic_connections`` is on, each record keeps its ``k`` most
    similar other records in ``Record.connections``. Adds and embedding
    updates recompute only the touched records; a delete rebuilds the whole
    graph. Batch adds and deletes therefore cost ``O(rows^2 x D)`` and are not
    suited to very large tables.

    All methods are thread-safe. Searches and traversals share a read lock;
    mutations take the write lock. Connection recompute ranks under the read
    lock and commits under the write lock, so neighbour lists may briefly
    reflect a record set that has since changed.
    """

    def __init__(
        self,
        db_folder: str | None = None,
        use_semantic_connections: bool | None = None,
        connection_k: int | None = None,
        *,
        settings: Settings | None = None,
        blob_store: IBlobStore | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.db_folder = db_folder if db_folder is not None else settings.db_folder
        self.use_semantic_connections = (
            settings.use_semantic_connections
            if use_semantic_connections is None
            else bool(use_semantic_connections)
        )
        self.default_format = SerializationFormat.parse(settings.default_format)
        self._blob_store = blob_store if blob_store is not None else FileBlobStore(self.db_folder)
        self._lock = ReadWriteLock()
        self._matrix = GrowableMatrix()
        self._records: list[Record] = []
        self._id_to_idx: dict[str, int] = {}
        self._connections = ConnectionMaintainer(
            self, connection_k if connection_k is not None else settings.connection_k
        )

    # ---- Introspection ----
    @property
    def connection_k(self) -> int:
        return self._connections.k

    @property
    def blob_store(self) -> IBlobStore:
        return self._blob_store

    @property
    def dimension(self) -> int | None:
        """Established embedding dimension, or ``None`` while the table is empty."""
        with self._lock.read_locked():
            return self._matrix.dim if self._records else None

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._records)

    def count(self) -> int:
        return len(self)

    def __contains__(self, record_id: object) -> bool:
        with self._lock.read_locked():
            return record_id in self._id_to_idx

    def ids(self) -> list[str]:
        with self._lock.read_locked():
            return [r.id for r in self._records]

    def get(self, record_id: str) -> Record:
        with self._lock.read_locked():
            return self._record_unlocked(record_id).snapshot()

    def get_embedding(self, record_id: str) -> np.ndarray:
        with self._lock.read_locked():
            idx = self._index_unlocked(record_id)
            return self._matrix.row(idx).copy()

    def scroll(self) -> Iterator[StoredVector]:
        """Yield a snapshot of every record with its embedding, in row order."""
        with self._lock.read_locked():
            items = [
                StoredVector(record=r.snapshot(), embedding=self._matrix.row(i).tolist())
                for i, r in enumerate(self._records)
            ]
        yield from items

    def health_check(self) -> bool:
        with self._lock.read_locked():
            return self._matrix.rows == len(self._records) == len(self._id_to_idx) and all(
                self._id_to_idx[r.id] == i for i, r in enumerate(self._records)
            )

    # ---- Internals (caller holds the lock) ----
    def _index_unlocked(self, record_id: str) -> int:
        idx = self._id_to_idx.get(record_id)
        if idx is None:
            raise RecordNotFoundError(record_id)
        return idx

    def _record_unlocked(self, record_id: str) -> Record:
        return self._records[self._index_unlocked(record_id)]

    def _prepare(self, embedding: Sequence[float] | np.ndarray, normalize: bool, dim: int | None) -> np.ndarray:
        vec = as_vector(embedding)
        if vec.size == 0:
            raise DimensionMismatchError(dim or 0, 0)
        if dim is not None and vec.size != dim:
            raise DimensionMismatchError(dim, vec.size)
        if normalize:
            if not np.any(vec):
                logger.warning("vector.zero_norm", context="normalize", dimension=int(vec.size))
            vec = normalize_vector(vec)
        return vec

    def _established_dim(self) -> int | None:
        return self._matrix.dim if self._records else None

    def _reindex_from(self, start: int) -> None:
        for i in range(start, len(self._records)):
            self._id_to_idx[self._records[i].id] = i

    # ---- Mutations ----
    def add_vector(
        self,
        chunk_text: str,
        embedding: Sequence[float] | np.ndarray,
        metadata: Mapping[str, Any] | None = None,
        normalize: bool = False,
    ) -> str:
        """Append one record and return its new id.

        Raises:
            DimensionMismatchError: if ``embedding`` does not match the table.
            MetadataError: if ``metadata`` holds unsupported values.
        """
        with observe_operation("add"):
            meta = validate_metadata(metadata)
            with self._lock.write_locked():
                vec = self._prepare(embedding, normalize, self._established_dim())
                record_id = str(uuid.uuid4())
                self._matrix.append_rows(vec.reshape(1, -1))
                self._records.append(Record(id=record_id, chunk_text=str(chunk_text), metadata=meta))
                self._id_to_idx[record_id] = len(self._records) - 1
                total = len(self._records)
            logger.info("vector.add", record_id=record_id, records=total)

            if self.use_semantic_connections and total > 1:
                self._connections.update(record_id)
            return record_id

    def add_text(
        self,
        text: str,
        embedder: IEmbeddingProvider,
        metadata: Mapping[str, Any] | None = None,
        normalize: bool = True,
    ) -> str:
        """Embed ``text`` with ``embedder`` and add it."""
        return self.add_vector(text, embedder.embed_text(text), metadata, normalize=normalize)

    def add_vectors_batch(
        self, records: Sequence[Mapping[str, Any]], normalize: bool = False
    ) -> list[str]:
        """Append many records at once.

        Each item needs an ``embedding`` and may carry ``chunk_text`` (or
        ``text``) and ``metadata``. Any other keys are folded into the record's
        metadata, with explicit ``metadata`` entries taking precedence. The
        batch is validated before anything is stored, so one bad item leaves
        the table unchanged. Connections are recomputed once at the end for
        the new records only.
        """
        with observe_operation("add_batch"):
            if not records:
                return []
            prepared: list[tuple[str, dict[str, Any]]] = []
            for item in records:
                if not isinstance(item, Mapping):
                    raise ValueError(f"batch item must be a mapping, got {type(item).__name__}")
                if "embedding" not in item:
                    raise ValueError("batch item is missing 'embedding'")
                text = item.get("chunk_text", item.get("text", ""))
                extras = {k: v for k, v in item.items() if k not in BATCH_ITEM_KEYS}
                meta = merge_metadata(validate_metadata(extras), item.get("metadata"))
                prepared.append((str(text), meta))

            with self._lock.write_locked():
                dim = self._established_dim()
                vectors = []
                for item in records:
                    vec = self._prepare(item["embedding"], normalize, dim)
                    dim = vec.size
                    vectors.append(vec)
                new_ids = [str(uuid.uuid4()) for _ in vectors]
                self._matrix.append_rows(np.vstack(vectors))
                for record_id, (text, meta) in zip(new_ids, prepared):
                    self._records.append(Record(id=record_id, chunk_text=text, metadata=meta))
                    self._id_to_idx[record_id] = len(self._records) - 1
                total = len(self._records)
            logger.info("vector.add_batch", added=len(new_ids), records=total)

            if self.use_semantic_connections and total > 1:
                self._connections.update_many(new_ids)
            return new_ids

    def update_vector(
        self,
        record_id: str,
        new_embedding: Sequence[float] | np.ndarray | None = None,
        new_metadata: Mapping[str, Any] | None = None,
        normalize: bool = False,
    ) -> None:
        """Replace a record's embedding in place and/or merge its metadata.

        Metadata keys in ``new_metadata`` overwrite existing ones; other keys
        are kept.

        Raises:
            RecordNotFoundError: if ``record_id`` does not exist.
            DimensionMismatchError: if ``new_embedding`` has the wrong length.
        """
        with observe_operation("update"):
            updates = validate_metadata(new_metadata) if new_metadata is not None else None
            with self._lock.write_locked():
                idx = self._index_unlocked(record_id)
                if new_embedding is not None:
                    vec = self._prepare(new_embedding, normalize, self._matrix.dim)
                    self._matrix.set_row(idx, vec)
                if updates is not None:
                    record = self._records[idx]
                    record.metadata = merge_metadata(record.metadata, updates)
            logger.info(
                "vector.update",
                record_id=record_id,
                embedding=new_embedding is not None,
                metadata_keys=sorted(updates) if updates else [],
            )

            if self.use_semantic_connections and new_embedding is not None:
                self._connections.update(record_id)

    def delete_vector(self, record_id: str) -> None:
        """Remove a record, shifting later rows down by one.

        With connections enabled every remaining record is recomputed, since
        any of their top-k lists may have included the removed record.

        Raises:
            RecordNotFoundError: if ``record_id`` does not exist.
        """
        with observe_operation("delete"):
            with self._lock.write_locked():
                idx = self._index_unlocked(record_id)
                self._matrix.delete_row(idx)
                del self._records[idx]
                del self._id_to_idx[record_id]
                self._reindex_from(idx)
                total = len(self._records)
            logger.info("vector.delete", record_id=record_id, records=total)

            if self.use_semantic_connections:
                self._connections.rebuild()

    def clear(self) -> None:
        with self._lock.write_locked():
            self._matrix.clear()
            self._records.clear()
            self._id_to_idx.clear()
        logger.info("vector.clear")

    def rebuild_connections(self) -> None:
        """Recompute every record's connections from scratch."""
        if not self.use_semantic_connections:
            raise ConnectionsDisabledError()
        self._connections.rebuild()

    # ---- Queries ----
    def _top_unlocked(self, target: np.ndarray, top_n: int) -> list[SimilarityResult]:
        if not self._records:
            return []
        if target.size != self._matrix.dim:
            raise DimensionMismatchError(self._matrix.dim, target.size)
        if top_n <= 0:
            return []
        order, scores = rank_rows(self._matrix.view(), target)
        if order.size == 0 and not np.any(target):
            logger.warning("vector.zero_norm", context="query")
        top_n = min(top_n, len(self._records))
        return [
            SimilarityResult(record=self._records[int(i)].snapshot(), similarity=float(s))
            for i, s in zip(order[:top_n], scores[:top_n])
        ]

    def top_cosine_similarity(
        self, target_vector: Sequence[float] | np.ndarray, top_n: int
    ) -> list[SimilarityResult]:
        """Return the ``top_n`` records most cosine-similar to ``target_vector``.

        Results are in descending similarity, ties in row order. Zero-norm
        records are skipped; an empty table returns ``[]``.

        Raises:
            DimensionMismatchError: if ``target_vector`` does not match the table.
        """
        with observe_operation("search"):
            target = as_vector(target_vector)
            with self._lock.read_locked():
                results = self._top_unlocked(target, int(top_n))
            logger.debug("vector.search", top_n=top_n, hits=len(results))
            return results

    def _connected_unlocked(self, graph: ConnectionGraph, record_id: str, depth: int) -> list[Record]:
        self._index_unlocked(record_id)
        return [self._record_unlocked(rid).snapshot() for rid in graph.reachable(record_id, depth)]

    def get_connected_chunks(self, record_id: str, depth: int) -> list[Record]:
        """Records within ``depth`` connection hops of ``record_id``, seed first.

        Raises:
            ConnectionsDisabledError: if semantic connections are off.
            RecordNotFoundError: if ``record_id`` does not exist.
        """
        if not self.use_semantic_connections:
            raise ConnectionsDisabledError()
        with self._lock.read_locked():
            graph = ConnectionGraph.from_records(self._records)
            return self._connected_unlocked(graph, record_id, depth)

    def semantic_search(
        self, query_embedding: Sequence[float] | np.ndarray, top_k: int, depth: int
    ) -> list[Record]:
        """Top-``top_k`` matches expanded by their connection neighbourhoods.

        Seeds come first in rank order, followed by records reached through
        the graph, each record at most once.

        Raises:
            ConnectionsDisabledError: if semantic connections are off.
        """
        if not self.use_semantic_connections:
            raise ConnectionsDisabledError()
        with observe_operation("semantic_search"):
            query = as_vector(query_embedding)
            with self._lock.read_locked():
                seeds = self._top_unlocked(query, int(top_k))
                graph = ConnectionGraph.from_records(self._records)
                expanded: dict[str, Record] = {hit.id: hit.record for hit in seeds}
                for hit in seeds:
                    for rec in self._connected_unlocked(graph, hit.id, depth):
                        expanded.setdefault(rec.id, rec)
            logger.debug("vector.semantic_search", seeds=len(seeds), results=len(expanded))
            return list(expanded.values())

    def connection_graph(self) -> ConnectionGraph:
        with self._lock.read_locked():
            return ConnectionGraph.from_records(self._records)

    def export_graph(self, path: str) -> None:
        """Write the connection graph as GraphML."""
        self.connection_graph().export_graph(path)

    # ---- Persistence ----
    def to_bytes(self, fmt: SerializationFormat | str | None = None) -> bytes:
        fmt = SerializationFormat.parse(fmt or self.default_format)
        with self._lock.read_locked():
            vectors = self._matrix.copy() if self._records else np.zeros((0, 0))
            records = [r.snapshot() for r in self._records]
        return encode(vectors, records, fmt)

    def from_bytes(self, data: bytes, fmt: SerializationFormat | str | None = None) -> None:
        """Replace the table's contents; on error the table is left unchanged."""
        fmt = SerializationFormat.parse(fmt or self.default_format)
        vectors, records = decode(data, fmt)
        matrix = GrowableMatrix.from_array(vectors) if records else GrowableMatrix()
        with self._lock.write_locked():
            self._matrix = matrix
            self._records = records
            self._id_to_idx = {r.id: i for i, r in enumerate(records)}

    def save_to_disk(
        self, collection_name: str, fmt: SerializationFormat | str | None = None
    ) -> None:
        """Persist the table as ``<db_folder>/<collection_name>.svdb``.

        The data is snapshotted under the read lock and written outside it.
        """
        with observe_operation("save"):
            data = self.to_bytes(fmt)
            self.blob_store.write(collection_name + COLLECTION_SUFFIX, data)
            logger.info("collection.save", collection=collection_name, bytes=len(data))

    def load_from_disk(
        self, collection_name: str, fmt: SerializationFormat | str | None = None
    ) -> None:
        """Replace the table with a saved collection.

        Raises:
            StorageIOError: if the collection cannot be read.
            FormatError: if its contents cannot be decoded.
        """
        with observe_operation("load"):
            data = self.blob_store.read(collection_name + COLLECTION_SUFFIX)
            try:
                self.from_bytes(data, fmt)
            except Exception as exc:
                logger.error("collection.load_failed", collection=collection_name, error=str(exc))
                raise
            logger.info("collection.load", collection=collection_name, records=len(self))


__all__ = ["COLLECTION_SUFFIX", "VectorDatabase"]
