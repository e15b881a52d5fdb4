"""Qdrant vector index adapter (async).

Why: Encapsulates qdrant-client behind the VectorIndexPort and raises only
     domain errors. Qdrant point IDs must be UUIDs or integers, so every vector
     ID is mapped to a deterministic UUIDv5; the original ID travels in the
     payload and is restored on read.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from importlib import import_module
from typing import Any

from hybrid_retrieval.application.ports.vector_index_port import (
    StoredVector,
    VectorIndexPort,
    VectorMatch,
)
from hybrid_retrieval.domain.errors import VectorStoreError

VECTOR_ID_KEY = "vectorId"
_INDEXED_FIELDS = ("uri", "authorDid")


@dataclass
class QdrantConfig:
    """Configuration for Qdrant client connection."""

    url: str
    collection: str
    dimension: int = 1024
    api_key: str | None = None
    prefer_grpc: bool = False
    timeout_s: int = 30


def point_id(vector_id: str) -> str:
    """Deterministic Qdrant point ID for a vector ID."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, vector_id))


class QdrantVectorIndexAdapter(VectorIndexPort):
    """Qdrant-backed index; the collection (cosine) is created on first use."""

    def __init__(self, cfg: QdrantConfig) -> None:
        """Initialize Qdrant adapter with configuration.

        Raises:
            VectorStoreError: If qdrant-client is not available or init fails
        """
        self._cfg = cfg
        self._client = self._init_client(cfg)
        self._collection_ready = False

    def _init_client(self, cfg: QdrantConfig) -> Any:
        try:
            qdrant_client = import_module("qdrant_client")
            return qdrant_client.AsyncQdrantClient(
                url=cfg.url,
                api_key=cfg.api_key or None,
                timeout=cfg.timeout_s,
                prefer_grpc=cfg.prefer_grpc,
            )
        except Exception as ex:
            raise VectorStoreError(f"Qdrant init failed: {ex}", operation="init") from ex

    async def ensure_collection(self) -> None:
        """Create the collection (and keyword payload indexes) if missing; verify its dimension."""
        if self._collection_ready:
            return
        name = self._cfg.collection
        try:
            models = import_module("qdrant_client.models")
            if await self._client.collection_exists(collection_name=name):
                info = await self._client.get_collection(collection_name=name)
                size = getattr(info.config.params.vectors, "size", None)
                if size is not None and size != self._cfg.dimension:
                    raise VectorStoreError(
                        f"Collection '{name}' exists with wrong dimension: "
                        f"{size} != {self._cfg.dimension}",
                        operation="ensure_collection",
                    )
            else:
                await self._client.create_collection(
                    collection_name=name,
                    vectors_config=models.VectorParams(
                        size=self._cfg.dimension,
                        distance=models.Distance.COSINE,
                    ),
                )
                for field_name in _INDEXED_FIELDS:
                    await self._client.create_payload_index(
                        collection_name=name,
                        field_name=field_name,
                        field_schema=models.PayloadSchemaType.KEYWORD,
                    )
        except VectorStoreError:
            raise
        except Exception as ex:
            raise VectorStoreError(
                f"ensure_collection: {ex}", operation="ensure_collection"
            ) from ex
        self._collection_ready = True

    async def upsert(self, vectors: Sequence[StoredVector]) -> None:
        if not vectors:
            return
        await self.ensure_collection()
        try:
            models = import_module("qdrant_client.models")
            points = [
                models.PointStruct(
                    id=point_id(v.id),
                    vector=[float(x) for x in v.values],  # Qdrant expects lists, not tuples
                    payload={**v.metadata, VECTOR_ID_KEY: v.id},
                )
                for v in vectors
            ]
            await self._client.upsert(
                collection_name=self._cfg.collection,
                points=points,
                wait=True,
            )
        except Exception as ex:
            raise VectorStoreError(f"upsert: {ex}", operation="upsert") from ex

    async def query(
        self,
        vector: Sequence[float],
        *,
        top_k: int = 10,
        filter: Mapping[str, Any] | None = None,
    ) -> list[VectorMatch]:
        await self.ensure_collection()
        try:
            response = await self._client.query_points(
                collection_name=self._cfg.collection,
                query=[float(x) for x in vector],
                query_filter=self._build_filter(filter),
                limit=top_k,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as ex:
            raise VectorStoreError(f"query: {ex}", operation="query") from ex

        return [
            VectorMatch(
                id=self._vector_id(hit),
                score=float(hit.score),
                metadata=self._metadata(hit.payload),
            )
            for hit in response.points
        ]

    async def get_by_ids(self, ids: Sequence[str]) -> list[StoredVector]:
        if not ids:
            return []
        await self.ensure_collection()
        try:
            records = await self._client.retrieve(
                collection_name=self._cfg.collection,
                ids=[point_id(i) for i in ids],
                with_payload=True,
                with_vectors=True,
            )
        except Exception as ex:
            raise VectorStoreError(f"get: {ex}", operation="get") from ex

        by_id = {}
        for rec in records:
            vector_id = self._vector_id(rec)
            by_id[vector_id] = StoredVector(
                id=vector_id,
                values=self._values(rec.vector),
                metadata=self._metadata(rec.payload),
            )
        return [by_id[i] for i in ids if i in by_id]

    async def delete_by_ids(self, ids: Sequence[str]) -> int:
        """Delete and return how many of ``ids`` actually existed."""
        if not ids:
            return 0
        await self.ensure_collection()
        try:
            models = import_module("qdrant_client.models")
            existing = await self._client.retrieve(
                collection_name=self._cfg.collection,
                ids=[point_id(i) for i in ids],
                with_payload=False,
                with_vectors=False,
            )
            if not existing:
                return 0
            await self._client.delete(
                collection_name=self._cfg.collection,
                points_selector=models.PointIdsList(points=[rec.id for rec in existing]),
                wait=True,
            )
        except Exception as ex:
            raise VectorStoreError(f"delete: {ex}", operation="delete") from ex
        return len(existing)

    async def close(self) -> None:
        await self._client.close()

    # ---------- translation helpers ----------

    @staticmethod
    def _build_filter(filter: Mapping[str, Any] | None) -> Any:
        """{"k": v} / {"k": {"$eq": v}} -> must, {"k": {"$ne": v}} -> must_not."""
        if not filter:
            return None
        models = import_module("qdrant_client.models")
        must = []
        must_not = []
        for key, cond in filter.items():
            if isinstance(cond, Mapping):
                if "$eq" in cond:
                    must.append(
                        models.FieldCondition(key=key, match=models.MatchValue(value=cond["$eq"]))
                    )
                if "$ne" in cond:
                    must_not.append(
                        models.FieldCondition(key=key, match=models.MatchValue(value=cond["$ne"]))
                    )
            else:
                must.append(models.FieldCondition(key=key, match=models.MatchValue(value=cond)))
        return models.Filter(must=must or None, must_not=must_not or None)

    @staticmethod
    def _vector_id(point: Any) -> str:
        payload = point.payload or {}
        return str(payload.get(VECTOR_ID_KEY, point.id))

    @staticmethod
    def _metadata(payload: Mapping[str, Any] | None) -> dict[str, Any]:
        return {k: v for k, v in (payload or {}).items() if k != VECTOR_ID_KEY}

    @staticmethod
    def _values(vector: Any) -> tuple[float, ...]:
        if isinstance(vector, Mapping):  # named vectors: take the first one
            vector = next(iter(vector.values()), None)
        return tuple(float(x) for x in (vector or ()))
