"""Tests for composition root (dependency injection/wiring).

The composition root is the ONLY place that:
1. Reads settings
2. Instantiates concrete infrastructure adapters
3. Wires dependencies into the orchestrator
"""

import asyncio
import logging
import sys
import types

import pytest

from hybrid_retrieval.application.orchestrator import RetrievalOrchestrator
from hybrid_retrieval.config.composition import (
    build_chunking_params,
    build_embedding_client,
    build_embedding_service,
    build_orchestrator,
    build_vector_index,
    build_vector_store,
)
from hybrid_retrieval.config.logging_config import PACKAGE_LOGGER
from hybrid_retrieval.config.settings import RetrievalSettings
from hybrid_retrieval.domain.errors import ValidationError
from hybrid_retrieval.domain.models import EmbeddingMetadata
from hybrid_retrieval.infrastructure.embeddings.sentence_transformers_adapter import (
    SentenceTransformersEmbeddingAdapter,
)
from hybrid_retrieval.infrastructure.vectorstore.in_memory_adapter import InMemoryVectorIndex
from hybrid_retrieval.infrastructure.vectorstore.qdrant_adapter import QdrantVectorIndexAdapter


class ConstantEmbeddingService:
    def __init__(self, dim):
        self.dim = dim

    async def embed(self, texts):
        return [[1.0] * self.dim for _ in texts]


@pytest.fixture(autouse=True)
def _reset_package_logger():
    yield
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(pkg_logger.handlers):
        pkg_logger.removeHandler(handler)
    pkg_logger.setLevel(logging.NOTSET)


def _settings(**overrides):
    return RetrievalSettings(**{"vector_backend": "memory", "vector_dimension": 3, **overrides})


def test_embedding_service_uses_configured_model():
    svc = build_embedding_service(_settings(embedding_model="m", embedding_device="cuda"))
    assert isinstance(svc, SentenceTransformersEmbeddingAdapter)
    assert (svc.model_name, svc.device) == ("m", "cuda")


def test_embedding_client_limits_come_from_settings():
    client = build_embedding_client(
        _settings(embedding_batch_size=7, max_text_length=99), ConstantEmbeddingService(3)
    )
    assert client.batch_size == 7
    assert client.max_text_length == 99


def test_memory_backend():
    assert isinstance(build_vector_index(_settings()), InMemoryVectorIndex)


def test_unsupported_backend_rejected():
    with pytest.raises(ValidationError, match="Unsupported VECTOR_BACKEND"):
        build_vector_index(_settings(vector_backend="faiss"))


def test_qdrant_backend(monkeypatch):
    created = {}

    class _Client:
        def __init__(self, **kwargs):
            created.update(kwargs)

    fake = types.ModuleType("qdrant_client")
    fake.AsyncQdrantClient = _Client
    monkeypatch.setitem(sys.modules, "qdrant_client", fake)

    index = build_vector_index(
        RetrievalSettings(vector_backend="qdrant", qdrant_url="http://q:6333", qdrant_api_key="")
    )
    assert isinstance(index, QdrantVectorIndexAdapter)
    assert created["url"] == "http://q:6333"
    assert created["api_key"] is None


def test_injected_empty_index_is_kept():
    """An empty in-memory index is falsy; it must still be used."""
    index = InMemoryVectorIndex()
    store = build_vector_store(_settings(upsert_batch_size=5, max_chunks=7), index)
    assert store.index is index
    assert (store.dimension, store.batch_size, store.max_chunks) == (3, 5, 7)


def test_chunking_params_from_settings():
    params = build_chunking_params(
        _settings(chunk_max_tokens=300, chunk_min_tokens=30, chunk_overlap_tokens=10, max_chunks=5)
    )
    assert (params.max_tokens, params.min_tokens, params.overlap_tokens, params.max_chunks) == (
        300,
        30,
        10,
        5,
    )


def test_invalid_chunking_settings_rejected():
    with pytest.raises(ValidationError):
        build_chunking_params(_settings(chunk_max_tokens=0))


def test_build_orchestrator_end_to_end():
    index = InMemoryVectorIndex()
    orchestrator = build_orchestrator(
        _settings(rrf_k=5, query_top_k=3),
        embedding_service=ConstantEmbeddingService(3),
        vector_index=index,
    )
    assert isinstance(orchestrator, RetrievalOrchestrator)
    assert orchestrator.rrf_k == 5
    assert orchestrator.default_top_k == 3

    uri = "at://did:plc:a/app.greengale.document/1"
    asyncio.run(orchestrator.index_document(uri, "hello", EmbeddingMetadata(uri=uri, author_did="did:plc:a")))
    assert len(index) == 1


def test_build_orchestrator_leaves_logging_to_host():
    build_orchestrator(_settings(), embedding_service=ConstantEmbeddingService(3))
    assert logging.getLogger(PACKAGE_LOGGER).handlers == []


def test_build_orchestrator_wires_document_store_and_chunk_bound():
    class _AllDocuments:
        async def existing(self, uris):
            return set(uris)

    documents = _AllDocuments()
    orchestrator = build_orchestrator(
        _settings(max_chunks=4),
        embedding_service=ConstantEmbeddingService(3),
        document_store=documents,
    )
    assert orchestrator.documents is documents
    assert orchestrator.store.max_chunks == 4
