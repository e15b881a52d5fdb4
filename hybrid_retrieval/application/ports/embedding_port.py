from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingServicePort(Protocol):
    """Remote embedding model: one request per call, output parallel to input.

    Failure must surface as an exception or an empty result list.
    """

    async def embed(self, texts: Sequence[str]) -> list[list[float]]: ...
