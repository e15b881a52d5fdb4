from __future__ import annotations

import logging
from dataclasses import dataclass, field

from hybrid_retrieval.application.dto.index_dto import IndexDocumentRequest, IndexReport
from hybrid_retrieval.application.services.embedding_client import EmbeddingClient
from hybrid_retrieval.application.services.vector_store import VectorStore
from hybrid_retrieval.domain.errors import ValidationError
from hybrid_retrieval.domain.identity import derive_base_id, derive_id
from hybrid_retrieval.domain.models import EmbeddingMetadata, IndexEntry
from hybrid_retrieval.domain.services.chunking import ChunkingParams, chunk_document
from hybrid_retrieval.domain.services.fingerprint import content_hash

logger = logging.getLogger(__name__)


@dataclass
class IndexDocument:
    """Document -> chunks -> embeddings -> vector store.

    Embeddings are computed before stale vectors are deleted, so an embedding
    failure leaves the previous index state untouched. Callers serialize runs
    for the same URI; the last run wins.
    """

    embedder: EmbeddingClient
    store: VectorStore
    chunking: ChunkingParams = field(default_factory=ChunkingParams)

    def __post_init__(self) -> None:
        # chunk IDs past the store range would survive delete_post_vectors
        if self.chunking.max_chunks > self.store.max_chunks:
            raise ValidationError(
                f"chunking.max_chunks ({self.chunking.max_chunks}) exceeds the vector store "
                f"cleanup range ({self.store.max_chunks})"
            )

    async def execute(self, req: IndexDocumentRequest) -> IndexReport:
        # 1) Identity first: malformed URIs fail before any I/O
        derive_base_id(req.uri)
        fingerprint = content_hash(req.text)

        if req.previous_hash is not None and req.previous_hash == fingerprint:
            logger.debug(
                f"Content unchanged for {req.uri}, skipping re-index", extra={"uri": req.uri}
            )
            return IndexReport(uri=req.uri, status="unchanged", content_hash=fingerprint)

        # 2) Chunk (pure domain)
        chunks = chunk_document(
            req.text, title=req.title, subtitle=req.subtitle, params=self.chunking
        )
        if not chunks:
            removed = await self.store.delete_post_vectors(req.uri)
            logger.info(
                f"No indexable text for {req.uri}; removed {removed} stale vectors",
                extra={"uri": req.uri},
            )
            return IndexReport(
                uri=req.uri, status="skipped", content_hash=fingerprint, removed=removed
            )

        # 3) Embeddings
        vectors = await self.embedder.embed_many([c.text for c in chunks])

        # 4) Replace: clear every potential old vector, then write the new set
        removed = await self.store.delete_post_vectors(req.uri)
        entries = self._entries(req, vectors)
        await self.store.upsert_many(entries)

        logger.info(
            f"Indexed {req.uri}: {len(entries)} vector(s), replaced {removed} old vector(s)",
            extra={"uri": req.uri},
        )
        return IndexReport(
            uri=req.uri,
            status="indexed",
            content_hash=fingerprint,
            vector_ids=[e.id for e in entries],
            removed=removed,
        )

    @staticmethod
    def _entries(req: IndexDocumentRequest, vectors: list[list[float]]) -> list[IndexEntry]:
        if len(vectors) == 1:
            meta = EmbeddingMetadata(
                uri=req.uri, author_did=req.author_did, title=req.title, created_at=req.created_at
            )
            return [IndexEntry(id=derive_id(req.uri), vector=tuple(vectors[0]), metadata=meta)]

        total = len(vectors)
        return [
            IndexEntry(
                id=derive_id(req.uri, i),
                vector=tuple(vec),
                metadata=EmbeddingMetadata(
                    uri=req.uri,
                    author_did=req.author_did,
                    title=req.title,
                    created_at=req.created_at,
                    chunk_index=i,
                    total_chunks=total,
                    is_chunk=True,
                ),
            )
            for i, vec in enumerate(vectors)
        ]


@dataclass
class RemoveDocument:
    store: VectorStore

    async def execute(self, uri: str) -> int:
        removed = await self.store.delete_post_vectors(uri)
        logger.info(f"Removed {removed} vector(s) for {uri}", extra={"uri": uri})
        return removed
