"""Embedding client: truncation + sub-batching in front of the embedding service.

Why: The model has an input-length limit and the service a request-size limit.
     Truncating silently beats failing a whole batch; a missing vector is never
     acceptable because it would leave a document partially indexed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from hybrid_retrieval.application.ports.embedding_port import EmbeddingServicePort
from hybrid_retrieval.domain.errors import EmbeddingServiceError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_MAX_TEXT_LENGTH = 8000  # characters, roughly 2000 tokens


class EmbeddingClient:
    def __init__(
        self,
        service: EmbeddingServicePort,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
    ) -> None:
        if batch_size < 1:
            raise ValidationError(f"batch_size must be >= 1, got {batch_size}")
        if max_text_length < 1:
            raise ValidationError(f"max_text_length must be >= 1, got {max_text_length}")
        self.service = service
        self.batch_size = batch_size
        self.max_text_length = max_text_length

    async def embed_one(self, text: str) -> list[float]:
        return (await self.embed_many([text]))[0]

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed ``texts``; result[i] belongs to texts[i] regardless of batch boundaries.

        Raises:
            EmbeddingServiceError: tagged with the failing sub-batch index.
        """
        if not texts:
            return []

        prepared = [t[: self.max_text_length] for t in texts]
        vectors: list[list[float]] = []
        for batch_index, start in enumerate(range(0, len(prepared), self.batch_size)):
            batch = prepared[start : start + self.batch_size]
            logger.debug(
                f"Embedding sub-batch {batch_index} ({len(batch)} texts)",
                extra={"operation": "embed", "batch_index": batch_index},
            )
            try:
                result = await self.service.embed(batch)
            except Exception as ex:
                raise EmbeddingServiceError(
                    f"Embedding sub-batch {batch_index} failed: {ex}",
                    batch_index=batch_index,
                ) from ex

            if not result:
                raise EmbeddingServiceError(
                    f"Embedding service returned no vectors for sub-batch {batch_index}",
                    batch_index=batch_index,
                )
            if len(result) != len(batch):
                raise EmbeddingServiceError(
                    f"Embedding service returned {len(result)} vectors for "
                    f"{len(batch)} texts in sub-batch {batch_index}",
                    batch_index=batch_index,
                )
            vectors.extend([float(x) for x in vec] for vec in result)
        return vectors
