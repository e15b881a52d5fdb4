# hybrid_retrieval/application/dto/search_dto.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SearchOptions:
    """
    Options for semantic search.

    - top_k:          number of documents to return
    - filter:         metadata filter passed verbatim to the index
                      (value, {"$eq": v} or {"$ne": v} per key)
    - author_did:     shortcut for an ``authorDid`` equality filter
    - exclude_uris:   documents to drop from the result (e.g. the source document)
    - collapse_chunks: one hit per document URI (best chunk wins)
    """

    top_k: int = 10
    filter: Mapping[str, Any] | None = None
    author_did: str | None = None
    exclude_uris: frozenset[str] = field(default_factory=frozenset)
    collapse_chunks: bool = True

    def effective_filter(self) -> dict[str, Any] | None:
        merged = dict(self.filter or {})
        if self.author_did:
            merged["authorDid"] = self.author_did
        return merged or None


@dataclass(frozen=True)
class SearchHit:
    """Ranked semantic hit for one document (or one chunk if not collapsed)."""

    uri: str
    score: float
    vector_id: str
    metadata: Mapping[str, Any]
