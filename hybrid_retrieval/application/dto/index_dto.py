# hybrid_retrieval/application/dto/index_dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

IndexStatus = Literal["indexed", "unchanged", "skipped"]


@dataclass(frozen=True)
class IndexDocumentRequest:
    """
    DTO for indexing one document.

    - uri:           stable logical document URI
    - text:          plain text produced by the upstream extraction pipeline
    - author_did:    author identifier stored with every vector
    - title:         optional display title (prepended to the text, truncated in metadata)
    - subtitle:      optional subtitle (prepended to the text)
    - created_at:    optional creation timestamp (ISO string)
    - previous_hash: fingerprint stored upstream from the last indexing run
    """

    uri: str
    text: str
    author_did: str
    title: str | None = None
    subtitle: str | None = None
    created_at: str | None = None
    previous_hash: str | None = None


@dataclass(frozen=True)
class IndexReport:
    """Outcome of an index run; ``content_hash`` is persisted upstream for change detection."""

    uri: str
    status: IndexStatus
    content_hash: str
    vector_ids: list[str] = field(default_factory=list)
    removed: int = 0

    @property
    def chunk_count(self) -> int:
        return len(self.vector_ids)
