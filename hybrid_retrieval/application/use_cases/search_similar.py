from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace

from hybrid_retrieval.application.dto.search_dto import SearchHit, SearchOptions
from hybrid_retrieval.application.ports.document_store_port import DocumentStorePort
from hybrid_retrieval.application.services.embedding_client import EmbeddingClient
from hybrid_retrieval.application.services.vector_store import VectorStore
from hybrid_retrieval.domain.errors import ValidationError
from hybrid_retrieval.domain.models import FusedResult, VectorMatch
from hybrid_retrieval.domain.services.fusion import DEFAULT_RRF_K, fuse

logger = logging.getLogger(__name__)

# Chunked documents can occupy several hits; over-fetch before collapsing.
CANDIDATE_MULTIPLIER = 3


def _to_hits(matches: Sequence[VectorMatch], options: SearchOptions) -> list[SearchHit]:
    hits: list[SearchHit] = []
    seen: set[str] = set()
    for m in matches:  # already sorted by score descending
        uri = str(m.metadata.get("uri") or m.id)
        if uri in options.exclude_uris:
            continue
        if options.collapse_chunks:
            if uri in seen:
                continue
            seen.add(uri)
        hits.append(SearchHit(uri=uri, score=m.score, vector_id=m.id, metadata=m.metadata))
    return hits


async def _drop_stale(hits: list[SearchHit], documents: DocumentStorePort) -> list[SearchHit]:
    if not hits:
        return hits
    alive = await documents.existing(list(dict.fromkeys(h.uri for h in hits)))
    fresh = [h for h in hits if h.uri in alive]
    if len(fresh) < len(hits):
        logger.debug(f"Dropped {len(hits) - len(fresh)} stale hit(s) missing upstream")
    return fresh


async def search_by_vector(
    store: VectorStore,
    vector: Sequence[float],
    options: SearchOptions,
    documents: DocumentStorePort | None = None,
) -> list[SearchHit]:
    if options.top_k <= 0:
        return []
    fetch_k = options.top_k * (CANDIDATE_MULTIPLIER if options.collapse_chunks else 1)
    matches = await store.query(
        vector,
        top_k=fetch_k + len(options.exclude_uris),
        filter=options.effective_filter(),
    )
    hits = _to_hits(matches, options)
    if documents is not None:
        hits = await _drop_stale(hits, documents)
    return hits[: options.top_k]


@dataclass
class SearchSimilar:
    """Embed the query once and rank documents by vector similarity."""

    embedder: EmbeddingClient
    store: VectorStore
    documents: DocumentStorePort | None = None

    async def execute(self, query_text: str, options: SearchOptions) -> list[SearchHit]:
        if not query_text.strip():
            raise ValidationError("Query text is empty.")
        vector = await self.embedder.embed_one(query_text)
        return await search_by_vector(self.store, vector, options, self.documents)


@dataclass
class FindSimilarDocuments:
    """'More like this': reuse a document's stored vector as the query."""

    store: VectorStore
    documents: DocumentStorePort | None = None

    async def execute(self, uri: str, options: SearchOptions) -> list[SearchHit]:
        stored = await self.store.get_post_vectors(uri)
        if not stored:
            return []
        opts = replace(options, exclude_uris=options.exclude_uris | {uri})
        return await search_by_vector(self.store, stored[0].values, opts, self.documents)


@dataclass
class HybridSearch:
    """Fuse a caller-supplied keyword ranking with the semantic ranking of document URIs."""

    search: SearchSimilar
    rrf_k: int = DEFAULT_RRF_K

    async def execute(
        self,
        query_text: str,
        keyword_uris: Sequence[str],
        options: SearchOptions,
        k: int | None = None,
    ) -> list[FusedResult]:
        hits = await self.search.execute(query_text, options)
        semantic_uris = [h.uri for h in hits]
        return fuse([list(keyword_uris), semantic_uris], k=self.rrf_k if k is None else k)
