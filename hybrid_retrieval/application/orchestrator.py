"""Retrieval orchestrator: the caller-facing API of the engine.

Why: One facade composing chunking, embedding, vector storage and rank fusion,
     so a publishing service only deals with URIs, text and rankings.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from hybrid_retrieval.application.dto.index_dto import IndexDocumentRequest, IndexReport
from hybrid_retrieval.application.dto.search_dto import SearchHit, SearchOptions
from hybrid_retrieval.application.ports.document_store_port import DocumentStorePort
from hybrid_retrieval.application.services.embedding_client import EmbeddingClient
from hybrid_retrieval.application.services.vector_store import VectorStore
from hybrid_retrieval.application.use_cases.index_document import IndexDocument, RemoveDocument
from hybrid_retrieval.application.use_cases.search_similar import (
    FindSimilarDocuments,
    HybridSearch,
    SearchSimilar,
)
from hybrid_retrieval.domain.errors import DomainError
from hybrid_retrieval.domain.models import EmbeddingMetadata, FusedResult
from hybrid_retrieval.domain.services.chunking import ChunkingParams
from hybrid_retrieval.domain.services.fusion import DEFAULT_RRF_K, fuse
from hybrid_retrieval.domain.types import Result

logger = logging.getLogger(__name__)


class RetrievalOrchestrator:
    """Caller-facing facade.

    ``documents`` is the upstream document store; when given, search hits
    for documents it no longer knows are dropped. The chunk bound follows
    ``store.max_chunks`` so every written chunk ID stays inside the range
    ``remove_document`` clears.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        *,
        chunking: ChunkingParams | None = None,
        documents: DocumentStorePort | None = None,
        rrf_k: int = DEFAULT_RRF_K,
        default_top_k: int = 10,
    ) -> None:
        if chunking is None:
            chunking = ChunkingParams(max_chunks=store.max_chunks)
        self.embedder = embedder
        self.store = store
        self.documents = documents
        self.rrf_k = rrf_k
        self.default_top_k = default_top_k
        self._index = IndexDocument(embedder, store, chunking)
        self._remove = RemoveDocument(store)
        self._search = SearchSimilar(embedder, store, documents)
        self._similar = FindSimilarDocuments(store, documents)
        self._hybrid = HybridSearch(self._search, rrf_k)

    async def index_document(
        self,
        uri: str,
        text: str,
        metadata: EmbeddingMetadata,
        *,
        subtitle: str | None = None,
        previous_hash: str | None = None,
    ) -> IndexReport:
        """Index (or re-index) one document; stale vectors are always cleared first."""
        return await self._index.execute(
            IndexDocumentRequest(
                uri=uri,
                text=text,
                author_did=metadata.author_did,
                title=metadata.title,
                subtitle=subtitle,
                created_at=metadata.created_at,
                previous_hash=previous_hash,
            )
        )

    async def try_index_document(
        self,
        uri: str,
        text: str,
        metadata: EmbeddingMetadata,
        *,
        subtitle: str | None = None,
        previous_hash: str | None = None,
    ) -> Result[IndexReport, DomainError]:
        """Publish-hook variant: an unindexed document degrades search, it does not fail publishing."""
        try:
            report = await self.index_document(
                uri, text, metadata, subtitle=subtitle, previous_hash=previous_hash
            )
        except DomainError as ex:
            logger.warning(
                f"Indexing {uri} failed ({type(ex).__name__}): {ex}", extra={"uri": uri}
            )
            return Result.failure(ex)
        return Result.success(report)

    async def remove_document(self, uri: str) -> int:
        return await self._remove.execute(uri)

    async def search_similar(
        self, query_text: str, options: SearchOptions | None = None
    ) -> list[SearchHit]:
        return await self._search.execute(query_text, options or self._default_options())

    async def find_similar_documents(
        self, uri: str, options: SearchOptions | None = None
    ) -> list[SearchHit]:
        return await self._similar.execute(uri, options or self._default_options())

    async def hybrid_search(
        self,
        query_text: str,
        keyword_uris: Sequence[str],
        options: SearchOptions | None = None,
        k: int | None = None,
    ) -> list[FusedResult]:
        return await self._hybrid.execute(
            query_text, keyword_uris, options or self._default_options(), k
        )

    def fuse_rankings(
        self, lists: Sequence[Sequence[str]], k: int | None = None
    ) -> list[FusedResult]:
        return fuse(lists, k=self.rrf_k if k is None else k)

    def _default_options(self) -> SearchOptions:
        return SearchOptions(top_k=self.default_top_k)
