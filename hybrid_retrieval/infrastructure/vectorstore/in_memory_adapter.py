"""In-memory vector index for tests and local development.

Why: Same contract as the Qdrant adapter (cosine score, metadata filters,
     delete counts only existing IDs) without a running service.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from hybrid_retrieval.application.ports.vector_index_port import (
    StoredVector,
    VectorIndexPort,
    VectorMatch,
)


def matches_filter(payload: Mapping[str, Any], filter: Mapping[str, Any] | None) -> bool:
    """Equality filter: ``{"key": v}``, ``{"key": {"$eq": v}}`` or ``{"key": {"$ne": v}}``."""
    if not filter:
        return True
    for key, cond in filter.items():
        if isinstance(cond, Mapping):
            if "$eq" in cond and payload.get(key) != cond["$eq"]:
                return False
            if "$ne" in cond and payload.get(key) == cond["$ne"]:
                return False
        elif payload.get(key) != cond:
            return False
    return True


def _cos_sim(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=False))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if na == 0.0 or nb == 0.0:
        return 0.0
    return dot / (na * nb)


class InMemoryVectorIndex(VectorIndexPort):
    def __init__(self) -> None:
        self._records: dict[str, StoredVector] = {}

    def __len__(self) -> int:
        return len(self._records)

    async def upsert(self, vectors: Sequence[StoredVector]) -> None:
        for v in vectors:
            self._records[v.id] = StoredVector(
                id=v.id, values=tuple(v.values), metadata=dict(v.metadata)
            )

    async def query(
        self,
        vector: Sequence[float],
        *,
        top_k: int = 10,
        filter: Mapping[str, Any] | None = None,
    ) -> list[VectorMatch]:
        if top_k <= 0:
            return []
        scored = [
            VectorMatch(id=r.id, score=_cos_sim(vector, r.values), metadata=dict(r.metadata))
            for r in self._records.values()
            if matches_filter(r.metadata, filter)
        ]
        scored.sort(key=lambda m: m.score, reverse=True)
        return scored[:top_k]

    async def get_by_ids(self, ids: Sequence[str]) -> list[StoredVector]:
        return [self._records[i] for i in ids if i in self._records]

    async def delete_by_ids(self, ids: Sequence[str]) -> int:
        deleted = 0
        for item_id in dict.fromkeys(ids):
            if self._records.pop(item_id, None) is not None:
                deleted += 1
        return deleted
