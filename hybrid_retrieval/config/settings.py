"""Retrieval engine settings with environment-driven configuration.

Why: Single place that reads the environment; service limits (batch sizes,
     dimension, chunk bound) are injected configuration, not magic numbers.
"""

import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class RetrievalSettings:
    """Settings loaded from environment variables.

    This is the ONLY place where environment variables are read.
    All other layers receive settings via dependency injection.
    """

    # ===== Embedding Configuration =====
    embedding_model: str = field(
        default_factory=lambda: os.getenv("EMBEDDING_MODEL", "BAAI/bge-m3")
    )
    embedding_device: str = field(default_factory=lambda: os.getenv("EMBEDDING_DEVICE", "cpu"))
    # Supported: "cpu" | "cuda" | "mps"

    embedding_batch_size: int = field(
        default_factory=lambda: int(os.getenv("EMBEDDING_BATCH_SIZE", "50"))
    )
    # Texts per embedding request

    max_text_length: int = field(
        default_factory=lambda: int(os.getenv("EMBEDDING_MAX_TEXT_LENGTH", "8000"))
    )
    # Characters per text; longer texts are truncated

    # ===== Vector Store Configuration =====
    vector_backend: str = field(
        default_factory=lambda: os.getenv("VECTOR_BACKEND", "qdrant").lower()
    )
    # Supported: "qdrant" | "memory"

    vector_dimension: int = field(
        default_factory=lambda: int(os.getenv("VECTOR_DIMENSION", "1024"))
    )
    upsert_batch_size: int = field(
        default_factory=lambda: int(os.getenv("VECTOR_BATCH_SIZE", "100"))
    )
    # Vectors per upsert/delete request

    max_chunks: int = field(default_factory=lambda: int(os.getenv("VECTOR_MAX_CHUNKS", "20")))
    # Upper bound of chunk IDs per document (cleanup range)

    title_max_length: int = field(
        default_factory=lambda: int(os.getenv("VECTOR_TITLE_MAX_LENGTH", "100"))
    )
    collection: str = field(
        default_factory=lambda: os.getenv("VECTOR_COLLECTION", "documents_1024d")
    )

    # Qdrant-specific
    qdrant_url: str = field(
        default_factory=lambda: os.getenv("QDRANT_URL", "http://localhost:6333")
    )
    qdrant_api_key: str = field(default_factory=lambda: os.getenv("QDRANT_API_KEY", ""))
    qdrant_prefer_grpc: bool = field(default_factory=lambda: _env_bool("QDRANT_PREFER_GRPC", "false"))
    qdrant_timeout_s: int = field(default_factory=lambda: int(os.getenv("QDRANT_TIMEOUT_S", "30")))

    # ===== Chunking Configuration =====
    chunk_max_tokens: int = field(
        default_factory=lambda: int(os.getenv("CHUNK_MAX_TOKENS", "800"))
    )
    chunk_min_tokens: int = field(
        default_factory=lambda: int(os.getenv("CHUNK_MIN_TOKENS", "100"))
    )
    chunk_overlap_tokens: int = field(
        default_factory=lambda: int(os.getenv("CHUNK_OVERLAP_TOKENS", "50"))
    )

    # ===== Query Configuration =====
    query_top_k: int = field(default_factory=lambda: int(os.getenv("QUERY_TOP_K", "10")))
    rrf_k: int = field(default_factory=lambda: int(os.getenv("RRF_K", "60")))
    # Larger k flattens the reciprocal-rank curve

    # ===== Logging Configuration =====
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    log_structured: bool = field(default_factory=lambda: _env_bool("LOG_STRUCTURED", "false"))
