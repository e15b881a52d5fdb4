"""Content fingerprint for change detection.

Why: Re-embedding unchanged documents wastes embedding calls. The version
     prefix is bumped whenever text extraction or chunking changes, which
     invalidates every stored fingerprint at once.
"""

from __future__ import annotations

import hashlib

CONTENT_HASH_VERSION = "v1"
_HASH_HEX_CHARS = 16  # 64 bits


def content_hash(text: str, version: str = CONTENT_HASH_VERSION) -> str:
    digest = hashlib.sha256(f"{version}:{text}".encode()).hexdigest()
    return digest[:_HASH_HEX_CHARS]


def has_changed(text: str, previous_hash: str | None) -> bool:
    return previous_hash is None or content_hash(text) != previous_hash
