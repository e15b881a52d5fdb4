"""Vector store service: validation and batching around a VectorIndexPort.

Why: The index accepts a bounded number of vectors per request and a fixed
     dimension. Dimension mismatches are programming errors and are rejected
     before anything is sent; backend failures are tagged with the failing
     operation and sub-batch so callers can judge partial success.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from hybrid_retrieval.application.ports.vector_index_port import VectorIndexPort
from hybrid_retrieval.domain.errors import DomainError, InvalidDimension, VectorStoreError
from hybrid_retrieval.domain.identity import (
    DEFAULT_MAX_CHUNKS,
    derive_all_ids,
    derive_base_id,
    derive_chunk_index,
    ensure_id_within_limit,
)
from hybrid_retrieval.domain.models import (
    EmbeddingMetadata,
    IndexEntry,
    StoredVector,
    VectorMatch,
)

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 1024
DEFAULT_BATCH_SIZE = 100
DEFAULT_TOP_K = 10
DEFAULT_TITLE_MAX_LENGTH = 100

R = TypeVar("R")


def _batches(items: Sequence[R], size: int) -> list[Sequence[R]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


def _is_chunk_head(vector: StoredVector) -> bool:
    meta = vector.metadata
    return bool(meta.get("isChunk")) or int(meta.get("totalChunks") or 0) > 1


class VectorStore:
    def __init__(
        self,
        index: VectorIndexPort,
        *,
        dimension: int = DEFAULT_DIMENSION,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_chunks: int = DEFAULT_MAX_CHUNKS,
        title_max_length: int = DEFAULT_TITLE_MAX_LENGTH,
    ) -> None:
        self.index = index
        self.dimension = dimension
        self.batch_size = batch_size
        self.max_chunks = max_chunks
        self.title_max_length = title_max_length

    # ---------- writes ----------

    async def upsert_one(
        self, vector_id: str, vector: Sequence[float], metadata: EmbeddingMetadata
    ) -> None:
        await self.upsert_many([IndexEntry(id=vector_id, vector=tuple(vector), metadata=metadata)])

    async def upsert_many(self, entries: Sequence[IndexEntry]) -> None:
        """Validate every entry first (all-or-nothing), then write in sub-batches."""
        if not entries:
            return

        stored = [self._to_stored(e) for e in entries]
        for batch_index, batch in enumerate(_batches(stored, self.batch_size)):
            logger.debug(
                f"Upserting sub-batch {batch_index} ({len(batch)} vectors)",
                extra={"operation": "upsert", "batch_index": batch_index},
            )
            await self._call("upsert", batch_index, lambda b=batch: self.index.upsert(b))

    # ---------- deletes ----------

    async def delete_by_ids(self, ids: Sequence[str]) -> int:
        """Bulk delete; returns the number of vectors actually removed."""
        if not ids:
            return 0

        removed = 0
        for batch_index, batch in enumerate(_batches(list(ids), self.batch_size)):
            logger.debug(
                f"Deleting sub-batch {batch_index} ({len(batch)} ids)",
                extra={"operation": "delete", "batch_index": batch_index},
            )
            removed += await self._call(
                "delete", batch_index, lambda b=batch: self.index.delete_by_ids(b)
            )
        return removed

    async def delete_post_vectors(self, uri: str) -> int:
        """Remove the base vector and every potential chunk vector of ``uri``."""
        return await self.delete_by_ids(derive_all_ids(uri, self.max_chunks))

    # ---------- reads ----------

    async def query(
        self,
        vector: Sequence[float],
        *,
        top_k: int = DEFAULT_TOP_K,
        filter: Mapping[str, Any] | None = None,
    ) -> list[VectorMatch]:
        self._check_dimension(vector)
        if top_k <= 0:
            return []
        return await self._call(
            "query",
            None,
            lambda: self.index.query(list(vector), top_k=top_k, filter=filter),
        )

    async def get_post_vectors(self, uri: str) -> list[StoredVector]:
        """All stored vectors of ``uri`` in chunk order.

        A chunked document keeps chunk 0 under the base ID (flagged ``isChunk``
        in its payload), so a flagged base entry is followed by the chunk range.
        Without a base entry, whichever chunk vectors exist are returned.
        """
        base_id = derive_base_id(uri)
        single = [
            v
            for v in await self._call("get", None, lambda: self.index.get_by_ids([base_id]))
            if v.values
        ]
        if single and not _is_chunk_head(single[0]):
            return single

        if not single:
            logger.debug(
                f"No base vector for {uri}, falling back to chunk IDs", extra={"uri": uri}
            )
        chunk_ids = derive_all_ids(uri, self.max_chunks)[1:]
        chunks = await self._call("get", None, lambda: self.index.get_by_ids(chunk_ids))
        found = sorted((c for c in chunks if c.values), key=lambda c: derive_chunk_index(c.id))
        return single + found

    # ---------- helpers ----------

    def _check_dimension(self, vector: Sequence[float], vector_id: str = "") -> None:
        if len(vector) != self.dimension:
            raise InvalidDimension(self.dimension, len(vector), vector_id)

    def _to_stored(self, entry: IndexEntry) -> StoredVector:
        ensure_id_within_limit(entry.id)
        self._check_dimension(entry.vector, entry.id)
        return StoredVector(
            id=entry.id,
            values=tuple(float(x) for x in entry.vector),
            metadata=entry.metadata.to_payload(self.title_max_length),
        )

    async def _call(
        self, operation: str, batch_index: int | None, fn: Callable[[], Awaitable[R]]
    ) -> R:
        try:
            return await fn()
        except VectorStoreError as ex:
            if ex.operation == operation and ex.batch_index == batch_index:
                raise
            raise VectorStoreError(str(ex), operation=operation, batch_index=batch_index) from ex
        except DomainError:
            raise
        except Exception as ex:
            where = f" (sub-batch {batch_index})" if batch_index is not None else ""
            raise VectorStoreError(
                f"{operation}{where} failed: {ex}", operation=operation, batch_index=batch_index
            ) from ex
