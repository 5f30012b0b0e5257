import math

import numpy as np

from semvecdb.table import VectorDatabase


def unit(degrees: float) -> list[float]:
    rad = math.radians(degrees)
    return [math.cos(rad), math.sin(rad)]


def brute_force_top_k(db: VectorDatabase, record_id: str, k: int) -> list[str]:
    """Reference neighbour list computed independently of the table."""
    ids = db.ids()
    me = db.get_embedding(record_id)
    scored = []
    for other in ids:
        if other == record_id:
            continue
        v = db.get_embedding(other)
        denom = np.linalg.norm(me) * np.linalg.norm(v)
        if denom == 0:
            continue
        scored.append((float(me @ v / denom), other))
    scored.sort(key=lambda p: p[0], reverse=True)
    return [rid for _, rid in scored[:k]]


def assert_connection_bounds(db: VectorDatabase) -> None:
    ids = set(db.ids())
    for item in db.scroll():
        conns = item.record.connections
        assert len(conns) <= db.connection_k
        scores = [c.score for c in conns]
        assert scores == sorted(scores, reverse=True)
        neighbour_ids = [c.id for c in conns]
        assert item.record.id not in neighbour_ids
        assert len(neighbour_ids) == len(set(neighbour_ids))
        assert set(neighbour_ids) <= ids
