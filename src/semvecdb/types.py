import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Connection:
    """A link to a neighbouring record and its cosine similarity."""

    id: str
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "score": float(self.score)}


@dataclass
class Record:
    """One stored item: identifier, source text, metadata and neighbour list.

    The embedding itself lives in the table's matrix at the same row index.
    """

    id: str
    chunk_text: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    connections: list[Connection] = field(default_factory=list)

    def snapshot(self) -> "Record":
        """Return a deep copy safe to hand out of the table."""
        return Record(
            id=self.id,
            chunk_text=self.chunk_text,
            metadata=copy.deepcopy(self.metadata),
            connections=[Connection(c.id, c.score) for c in self.connections],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "chunk_text": self.chunk_text,
            "metadata": copy.deepcopy(self.metadata),
            "connections": [c.to_dict() for c in self.connections],
        }


@dataclass
class SimilarityResult:
    """A ranked search hit."""

    record: Record
    similarity: float

    @property
    def id(self) -> str:
        return self.record.id


@dataclass
class StoredVector:
    """A record snapshot together with its embedding, as yielded by ``scroll``."""

    record: Record
    embedding: list[float]
