"""Application ports package.

Re-exports the async ports the application layer depends on.
"""

from hybrid_retrieval.application.ports.document_store_port import DocumentStorePort
from hybrid_retrieval.application.ports.embedding_port import EmbeddingServicePort
from hybrid_retrieval.application.ports.vector_index_port import (
    StoredVector,
    VectorIndexPort,
    VectorMatch,
)

__all__ = [
    "DocumentStorePort",
    "EmbeddingServicePort",
    "StoredVector",
    "VectorIndexPort",
    "VectorMatch",
]
