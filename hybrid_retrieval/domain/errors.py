"""Domain errors (typed) for indexing and retrieval.

Why: One error family for the Application layer; adapters map library
     exceptions onto it so nothing infrastructure-specific leaks upwards.
"""


class DomainError(Exception):
    """Base class for domain-specific errors."""


class ValidationError(DomainError):
    """Invalid input/domain state. Raised before any network call, never retried."""


class IdentityDerivationError(ValidationError):
    """Document URI cannot be mapped to a vector ID (empty or malformed)."""


class InvalidDimension(ValidationError):
    """Vector length does not match the configured dimension."""

    def __init__(self, expected: int, actual: int, vector_id: str = "") -> None:
        target = f" for '{vector_id}'" if vector_id else ""
        super().__init__(f"Invalid vector dimension{target}: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual
        self.vector_id = vector_id


class EmbeddingServiceError(DomainError):
    """Embedding backend failed or returned no vectors; safe to retry with backoff."""

    def __init__(self, message: str, *, batch_index: int | None = None) -> None:
        super().__init__(message)
        self.batch_index = batch_index


class VectorStoreError(DomainError):
    """Vector index backend failed; upsert/query/delete are idempotent, so retry is safe."""

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        batch_index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.batch_index = batch_index
