# hybrid_retrieval/domain/models.py
# Domain models must be pure (no I/O, no external libs)
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from hybrid_retrieval.domain.types import MetadataValue

# Payload keys as stored next to each vector in the index.
_PAYLOAD_KEYS = {
    "uri": "uri",
    "author_did": "authorDid",
    "title": "title",
    "created_at": "createdAt",
    "chunk_index": "chunkIndex",
    "total_chunks": "totalChunks",
    "is_chunk": "isChunk",
}


@dataclass(frozen=True)
class EmbeddingMetadata:
    """
    Metadata attached to every stored vector.

    - uri:          logical document URI (for chunks: the parent document)
    - author_did:   stable author identifier, usable as a query filter
    - title:        display title, truncated on write (never rejected)
    - created_at:   document creation timestamp (ISO string)
    - chunk_index:  ordinal of the chunk (0 for the base vector)
    - total_chunks: number of chunks the document was split into
    - is_chunk:     True for vectors produced from a chunked document
    """

    uri: str
    author_did: str
    title: str | None = None
    created_at: str | None = None
    chunk_index: int | None = None
    total_chunks: int | None = None
    is_chunk: bool | None = None

    def to_payload(self, title_max_length: int = 100) -> dict[str, MetadataValue]:
        payload: dict[str, MetadataValue] = {"uri": self.uri, "authorDid": self.author_did}
        if self.title:
            payload["title"] = self.title[:title_max_length]
        if self.created_at:
            payload["createdAt"] = self.created_at
        if self.chunk_index is not None:
            payload["chunkIndex"] = self.chunk_index
        if self.total_chunks is not None:
            payload["totalChunks"] = self.total_chunks
        if self.is_chunk is not None:
            payload["isChunk"] = self.is_chunk
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> EmbeddingMetadata:
        kwargs = {
            attr: payload[key] for attr, key in _PAYLOAD_KEYS.items() if key in payload
        }
        kwargs.setdefault("uri", "")
        kwargs.setdefault("author_did", "")
        return cls(**kwargs)


@dataclass(frozen=True)
class IndexEntry:
    """One vector to be written: vector ID, embedding and typed metadata."""

    id: str
    vector: tuple[float, ...]
    metadata: EmbeddingMetadata


@dataclass(frozen=True)
class StoredVector:
    """Vector as exchanged with the index (payload already serialized)."""

    id: str
    values: tuple[float, ...]
    metadata: Mapping[str, Any]


@dataclass(frozen=True)
class VectorMatch:
    """Nearest-neighbour hit returned by a query."""

    id: str
    score: float
    metadata: Mapping[str, Any]


@dataclass(frozen=True)
class FusedResult:
    """Fused rank score for one ID (higher is better). Derived, never persisted."""

    id: str
    score: float
