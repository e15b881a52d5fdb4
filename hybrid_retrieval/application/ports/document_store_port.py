from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class DocumentStorePort(Protocol):
    """Upstream document store: the authority on which documents still exist.

    The vector index may lag behind deletions, so search hits are checked
    against this store before they are returned.
    """

    async def existing(self, uris: Sequence[str]) -> set[str]:
        """Subset of ``uris`` that currently exist upstream."""
        ...
