from hybrid_retrieval.application.orchestrator import RetrievalOrchestrator
from hybrid_retrieval.application.ports.document_store_port import DocumentStorePort
from hybrid_retrieval.application.ports.embedding_port import EmbeddingServicePort
from hybrid_retrieval.application.ports.vector_index_port import VectorIndexPort
from hybrid_retrieval.application.services.embedding_client import EmbeddingClient
from hybrid_retrieval.application.services.vector_store import VectorStore
from hybrid_retrieval.config.settings import RetrievalSettings
from hybrid_retrieval.domain.errors import ValidationError
from hybrid_retrieval.domain.services.chunking import ChunkingParams
from hybrid_retrieval.infrastructure.embeddings.sentence_transformers_adapter import (
    SentenceTransformersEmbeddingAdapter,
)
from hybrid_retrieval.infrastructure.vectorstore.in_memory_adapter import InMemoryVectorIndex
from hybrid_retrieval.infrastructure.vectorstore.qdrant_adapter import (
    QdrantConfig,
    QdrantVectorIndexAdapter,
)


def build_embedding_service(settings: RetrievalSettings) -> EmbeddingServicePort:
    return SentenceTransformersEmbeddingAdapter(
        model_name=settings.embedding_model,
        device=settings.embedding_device,
    )


def build_embedding_client(
    settings: RetrievalSettings, service: EmbeddingServicePort | None = None
) -> EmbeddingClient:
    return EmbeddingClient(
        service if service is not None else build_embedding_service(settings),
        batch_size=settings.embedding_batch_size,
        max_text_length=settings.max_text_length,
    )


def build_vector_index(settings: RetrievalSettings) -> VectorIndexPort:
    backend = settings.vector_backend

    if backend == "qdrant":
        return QdrantVectorIndexAdapter(
            QdrantConfig(
                url=settings.qdrant_url,
                collection=settings.collection,
                dimension=settings.vector_dimension,
                api_key=settings.qdrant_api_key or None,
                prefer_grpc=settings.qdrant_prefer_grpc,
                timeout_s=settings.qdrant_timeout_s,
            )
        )

    if backend == "memory":
        return InMemoryVectorIndex()

    raise ValidationError(
        f"Unsupported VECTOR_BACKEND '{backend}' (expected 'qdrant' or 'memory')"
    )


def build_vector_store(
    settings: RetrievalSettings, index: VectorIndexPort | None = None
) -> VectorStore:
    return VectorStore(
        index if index is not None else build_vector_index(settings),
        dimension=settings.vector_dimension,
        batch_size=settings.upsert_batch_size,
        max_chunks=settings.max_chunks,
        title_max_length=settings.title_max_length,
    )


def build_chunking_params(settings: RetrievalSettings) -> ChunkingParams:
    return ChunkingParams(
        max_tokens=settings.chunk_max_tokens,
        min_tokens=settings.chunk_min_tokens,
        overlap_tokens=settings.chunk_overlap_tokens,
        max_chunks=settings.max_chunks,
    )


def build_orchestrator(
    settings: RetrievalSettings | None = None,
    *,
    embedding_service: EmbeddingServicePort | None = None,
    vector_index: VectorIndexPort | None = None,
    document_store: DocumentStorePort | None = None,
) -> RetrievalOrchestrator:
    """Wire the engine from settings.

    Tests and embedding hosts may inject their own embedding service or vector
    index, and the upstream document store used to drop stale hits; everything
    else (limits, chunking, RRF constant) still comes from settings. Logging is
    left to the host (see ``configure_logging``).
    """
    settings = settings or RetrievalSettings()
    return RetrievalOrchestrator(
        build_embedding_client(settings, embedding_service),
        build_vector_store(settings, vector_index),
        chunking=build_chunking_params(settings),
        documents=document_store,
        rrf_k=settings.rrf_k,
        default_top_k=settings.query_top_k,
    )
