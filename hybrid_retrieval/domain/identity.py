"""Vector identity scheme: document URI (+ chunk ordinal) -> storage key.

Why: Vector index keys are limited to 64 bytes while document URIs are long
     and compound. The base ID is therefore a digest of the URI, not the URI.

The digest is SHA-256 truncated to 32 bytes and encoded URL-safe base64 without
padding (43 chars). Truncating is a size/collision trade-off: at 256 bits an
accidental collision is negligible for any realistic corpus, but it is not a
correctness guarantee.
"""

from __future__ import annotations

import base64
import hashlib

from hybrid_retrieval.domain.errors import IdentityDerivationError

MAX_VECTOR_ID_BYTES = 64
DEFAULT_MAX_CHUNKS = 20
CHUNK_SUFFIX = ":c"

_DIGEST_BYTES = 32


def _validate_uri(uri: str) -> str:
    if not isinstance(uri, str):
        raise IdentityDerivationError(f"Document URI must be a string, got {type(uri).__name__}")
    if not uri.strip():
        raise IdentityDerivationError("Document URI is empty.")
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in uri):
        raise IdentityDerivationError(f"Document URI contains control characters: {uri!r}")
    return uri


def derive_base_id(uri: str) -> str:
    """Deterministic, URL-safe (A-Z a-z 0-9 - _) base vector ID for a URI."""
    digest = hashlib.sha256(_validate_uri(uri).encode("utf-8")).digest()[:_DIGEST_BYTES]
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def derive_id(uri: str, chunk_index: int | None = None) -> str:
    """Base ID for chunk 0/None, else ``<base>:c<N>``."""
    base = derive_base_id(uri)
    if chunk_index is None or chunk_index == 0:
        return base
    if chunk_index < 0:
        raise IdentityDerivationError(f"Chunk index must be >= 0, got {chunk_index}")
    return ensure_id_within_limit(f"{base}{CHUNK_SUFFIX}{chunk_index}")


def derive_all_ids(uri: str, chunk_count: int = DEFAULT_MAX_CHUNKS) -> list[str]:
    """All potential IDs of a document: ``[base, base:c1, ..., base:c(n-1)]``.

    Used for bulk deletion, where the caller does not know how many chunks exist.
    """
    if chunk_count < 1:
        raise IdentityDerivationError(f"Chunk count must be >= 1, got {chunk_count}")
    base = derive_base_id(uri)
    return [base] + [
        ensure_id_within_limit(f"{base}{CHUNK_SUFFIX}{i}") for i in range(1, chunk_count)
    ]


def derive_chunk_index(vector_id: str) -> int:
    """Chunk ordinal encoded in a vector ID (0 for a base ID)."""
    _, sep, ordinal = vector_id.rpartition(CHUNK_SUFFIX)
    if not sep:
        return 0
    if not ordinal.isdigit():
        raise IdentityDerivationError(f"Malformed chunk vector ID: {vector_id!r}")
    return int(ordinal)


def ensure_id_within_limit(vector_id: str) -> str:
    size = len(vector_id.encode("utf-8"))
    if size > MAX_VECTOR_ID_BYTES:
        raise IdentityDerivationError(
            f"Vector ID exceeds {MAX_VECTOR_ID_BYTES} bytes ({size}): {vector_id!r}"
        )
    return vector_id
