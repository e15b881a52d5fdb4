from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

# Import domain models and re-export for convenience
from hybrid_retrieval.domain.models import StoredVector, VectorMatch

__all__ = ["StoredVector", "VectorIndexPort", "VectorMatch"]


@runtime_checkable
class VectorIndexPort(Protocol):
    """Nearest-neighbour index keyed by opaque string IDs (<= 64 bytes).

    Implementations perform exactly one backend request per call; batching
    and validation live in the application's VectorStore service.
    """

    async def upsert(self, vectors: Sequence[StoredVector]) -> None: ...

    async def query(
        self,
        vector: Sequence[float],
        *,
        top_k: int = 10,
        filter: Mapping[str, Any] | None = None,
    ) -> list[VectorMatch]: ...

    async def get_by_ids(self, ids: Sequence[str]) -> list[StoredVector]: ...

    async def delete_by_ids(self, ids: Sequence[str]) -> int: ...
