"""Sentence-Transformers embedding service adapter.

Why: Serves the EmbeddingServicePort with a local multilingual model
     (BAAI/bge-m3, 1024-d by default). ``encode`` is blocking, so it runs in a
     worker thread to keep the event loop free.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from importlib import import_module
from typing import Any

from hybrid_retrieval.application.ports.embedding_port import EmbeddingServicePort
from hybrid_retrieval.domain.errors import EmbeddingServiceError


@dataclass
class SentenceTransformersEmbeddingAdapter(EmbeddingServicePort):
    """Loads the model lazily on first use; one ``encode`` call per request."""

    model_name: str = "BAAI/bge-m3"
    device: str = "cpu"  # switch to "cuda" when available
    local_files_only: bool = False  # support offline deployments
    _model: Any | None = None

    def _ensure_model(self) -> Any:
        if self._model is not None:
            return self._model
        try:
            st = import_module("sentence_transformers")
            self._model = st.SentenceTransformer(
                self.model_name,
                device=self.device,
                local_files_only=self.local_files_only,
            )
        except Exception as ex:
            raise EmbeddingServiceError(
                f"Failed to load embedding model '{self.model_name}': {ex}"
            ) from ex
        return self._model

    def _encode(self, texts: list[str]) -> list[list[float]]:
        model = self._ensure_model()
        try:
            raw_vectors = model.encode(
                texts,
                normalize_embeddings=True,
                convert_to_numpy=True,
                show_progress_bar=False,
            )
        except Exception as ex:
            raise EmbeddingServiceError(f"Embedding texts failed: {ex}") from ex
        return [[float(x) for x in vec] for vec in raw_vectors]

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, list(texts))
