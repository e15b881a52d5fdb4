import asyncio

import pytest

from hybrid_retrieval.application.ports.vector_index_port import VectorIndexPort
from hybrid_retrieval.domain.models import StoredVector
from hybrid_retrieval.infrastructure.vectorstore.in_memory_adapter import (
    InMemoryVectorIndex,
    matches_filter,
)


def _v(vid, values, **meta):
    return StoredVector(id=vid, values=tuple(values), metadata=meta)


@pytest.fixture
def index():
    idx = InMemoryVectorIndex()
    asyncio.run(
        idx.upsert(
            [
                _v("a", [1.0, 0.0], authorDid="did:alice"),
                _v("b", [0.7, 0.7], authorDid="did:bob"),
                _v("c", [0.0, 1.0], authorDid="did:alice"),
            ]
        )
    )
    return idx


def test_implements_port():
    assert isinstance(InMemoryVectorIndex(), VectorIndexPort)


def test_query_ranks_by_cosine(index):
    hits = asyncio.run(index.query([1.0, 0.0], top_k=3))
    assert [h.id for h in hits] == ["a", "b", "c"]
    assert hits[0].score == pytest.approx(1.0)
    assert hits[2].score == pytest.approx(0.0)


def test_query_respects_top_k_and_filter(index):
    assert [h.id for h in asyncio.run(index.query([1.0, 0.0], top_k=1))] == ["a"]
    assert asyncio.run(index.query([1.0, 0.0], top_k=0)) == []
    hits = asyncio.run(index.query([1.0, 0.0], filter={"authorDid": {"$ne": "did:alice"}}))
    assert [h.id for h in hits] == ["b"]


def test_upsert_overwrites(index):
    asyncio.run(index.upsert([_v("a", [0.0, 1.0], authorDid="did:carol")]))
    assert len(index) == 3
    assert asyncio.run(index.get_by_ids(["a"]))[0].metadata == {"authorDid": "did:carol"}


def test_get_by_ids_skips_missing(index):
    assert [v.id for v in asyncio.run(index.get_by_ids(["c", "zz", "a"]))] == ["c", "a"]


def test_delete_counts_only_existing_ids(index):
    assert asyncio.run(index.delete_by_ids(["a", "a", "zz"])) == 1
    assert len(index) == 2


def test_zero_vector_scores_zero():
    idx = InMemoryVectorIndex()
    asyncio.run(idx.upsert([_v("z", [0.0, 0.0])]))
    assert asyncio.run(idx.query([1.0, 0.0]))[0].score == 0.0


@pytest.mark.parametrize(
    "flt,expected",
    [
        (None, True),
        ({"uri": "u1"}, True),
        ({"uri": {"$eq": "u2"}}, False),
        ({"uri": {"$ne": "u1"}}, False),
        ({"uri": {"$ne": "u2"}, "authorDid": "a"}, True),
        ({"missing": "x"}, False),
    ],
)
def test_matches_filter(flt, expected):
    assert matches_filter({"uri": "u1", "authorDid": "a"}, flt) is expected
