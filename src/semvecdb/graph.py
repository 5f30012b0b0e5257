from collections.abc import Iterable
from typing import Any

import networkx as nx

from .types import Record


class ConnectionGraph:
    """Read-only NetworkX view of the records' connection lists.

    Nodes are record ids; a directed edge ``a -> b`` means ``b`` is in
    ``a``'s connection list, weighted by its score. Links are not
    necessarily mutual.
    """

    def __init__(self) -> None:
        self.graph = nx.DiGraph()

    @classmethod
    def from_records(cls, records: Iterable[Record]) -> "ConnectionGraph":
        records = list(records)
        g = cls()
        for rec in records:
            g.graph.add_node(rec.id, chunk_text=rec.chunk_text)
        for rec in records:
            for conn in rec.connections:
                # stale links to removed records are not part of the graph
                if conn.id in g.graph:
                    g.graph.add_edge(rec.id, conn.id, score=conn.score)
        return g

    def get_neighbors(self, record_id: str) -> list[tuple[str, dict[str, Any]]]:
        neighbors: list[tuple[str, dict[str, Any]]] = []
        for neighbor in self.graph.neighbors(record_id):
            neighbors.append((neighbor, dict(self.graph.get_edge_data(record_id, neighbor) or {})))
        neighbors.sort(key=lambda pair: pair[1].get("score", 0.0), reverse=True)
        return neighbors

    def reachable(self, record_id: str, depth: int) -> list[str]:
        """Ids within ``depth`` hops of ``record_id`` in breadth-first order, seed first."""
        if record_id not in self.graph:
            return []
        lengths = nx.single_source_shortest_path_length(self.graph, record_id, cutoff=max(0, depth))
        return list(lengths)

    def export_graph(self, path: str) -> None:
        nx.write_graphml(self.graph, path)

    def is_symmetric(self) -> bool:
        return all(self.graph.has_edge(v, u) for u, v in self.graph.edges)
