"""Maintenance of each record's top-k semantic connections.

Recomputing a record ranks it against the whole table under the shared lock,
then commits under the exclusive lock:

1. rank every row by cosine similarity to the record;
2. drop the record itself;
3. keep the first ``k`` as its connection list;
4. for every other ranked record, replace its entry for this record with the
   fresh score, re-sort descending and truncate to ``k``.

The two phases are not one critical section. A concurrent mutation between
them can leave a list computed against a slightly older record set; the
commit re-resolves ids, so the matrix and records stay consistent even when
graph freshness lags. Step 4 only updates the other side from this record's
ranking, so links are not guaranteed to be mutual.

Cost is ``O(rows x D)`` per record, so a full rebuild is ``O(rows^2 x D)``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from .metrics import observe_operation
from .similarity import rank_rows
from .types import Connection

if TYPE_CHECKING:
    from .table import VectorDatabase

logger = structlog.get_logger(__name__)


class ConnectionMaintainer:
    def __init__(self, table: VectorDatabase, k: int = 5) -> None:
        if k < 1:
            raise ValueError("connection k must be at least 1")
        self.table = table
        self.k = int(k)

    def _rank(self, record_id: str) -> list[tuple[str, float]] | None:
        table = self.table
        with table._lock.read_locked():
            idx = table._id_to_idx.get(record_id)
            if idx is None:
                return None
            rows = table._matrix.view()
            order, scores = rank_rows(rows, table._matrix.row(idx))
            return [(table._records[int(j)].id, float(s)) for j, s in zip(order, scores)]

    def update(self, record_id: str) -> None:
        """Recompute connections for ``record_id`` and propagate to its neighbours."""
        with observe_operation("recompute"):
            ranked = self._rank(record_id)
            if ranked is None:
                logger.debug("connections.skip_missing", record_id=record_id)
                return
            own = [Connection(rid, score) for rid, score in ranked if rid != record_id][: self.k]
            scores = dict(ranked)

            table = self.table
            with table._lock.write_locked():
                idx = table._id_to_idx.get(record_id)
                if idx is None:
                    return
                table._records[idx].connections = [c for c in own if c.id in table._id_to_idx]
                for other in table._records:
                    if other.id == record_id:
                        continue
                    kept = [c for c in other.connections if c.id != record_id]
                    if other.id in scores:
                        kept.append(Connection(record_id, scores[other.id]))
                        kept.sort(key=lambda c: c.score, reverse=True)
                    elif len(kept) == len(other.connections):
                        continue
                    other.connections = kept[: self.k]
            logger.debug("connections.recompute", record_id=record_id, connections=len(own))

    def update_many(self, record_ids: list[str]) -> None:
        for record_id in record_ids:
            self.update(record_id)

    def rebuild(self) -> None:
        """Recompute every record; equivalent to building the graph from scratch."""
        with self.table._lock.read_locked():
            ids = [r.id for r in self.table._records]
        logger.info("connections.rebuild", records=len(ids))
        self.update_many(ids)
