# hybrid_retrieval/domain/services/fusion.py
# Pure domain services: no I/O, deterministic, no external libraries.
from __future__ import annotations

from collections.abc import Iterable, Sequence

from hybrid_retrieval.domain.errors import ValidationError
from hybrid_retrieval.domain.models import FusedResult

DEFAULT_RRF_K = 60


def rrf_contribution(position: int, k: int = DEFAULT_RRF_K) -> float:
    """Score one list contributes for an item at 0-based ``position``."""
    return 1.0 / (k + position + 1)


def fuse(ranked_lists: Iterable[Sequence[str]], k: int = DEFAULT_RRF_K) -> list[FusedResult]:
    """
    Reciprocal Rank Fusion over opaque ID lists (best match first in each list).

    - score(id) = sum over lists of 1 / (k + p + 1), p = 0-based position in that list
    - output is the union of all IDs, sorted by score descending
    - ties keep the order of first appearance across the inputs (stable sort)
    - an ID repeated inside one list only counts at its first position
    - larger k flattens the curve; relative order of a single list never changes
    """
    if k < 0:
        raise ValidationError(f"RRF constant k must be >= 0, got {k}")

    scores: dict[str, float] = {}  # insertion order == first appearance
    for ranking in ranked_lists:
        seen: set[str] = set()
        for position, item_id in enumerate(ranking):
            if item_id in seen:
                continue
            seen.add(item_id)
            scores[item_id] = scores.get(item_id, 0.0) + rrf_contribution(position, k)

    ordered = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
    return [FusedResult(id=item_id, score=score) for item_id, score in ordered]
