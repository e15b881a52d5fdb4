"""Qdrant adapter tests against a fake qdrant_client module.

Why: Checks the translation layer (UUID point IDs, payload round trip,
     filters, delete counts, error mapping) without a running Qdrant.
"""

import asyncio
import sys
import types

import pytest

from hybrid_retrieval.application.ports.vector_index_port import VectorIndexPort
from hybrid_retrieval.domain.errors import VectorStoreError
from hybrid_retrieval.domain.models import StoredVector
from hybrid_retrieval.infrastructure.vectorstore.qdrant_adapter import (
    VECTOR_ID_KEY,
    QdrantConfig,
    QdrantVectorIndexAdapter,
    point_id,
)


class _Obj:
    def __init__(self, **kwargs):
        self.__dict__.update(kwargs)


def _build_fake_models():
    models = types.ModuleType("qdrant_client.models")

    class Distance:
        COSINE = "Cosine"

    class PayloadSchemaType:
        KEYWORD = "keyword"

    models.Distance = Distance
    models.PayloadSchemaType = PayloadSchemaType
    for name in ("VectorParams", "PointStruct", "Filter", "FieldCondition", "MatchValue", "PointIdsList"):
        setattr(models, name, type(name, (_Obj,), {}))
    return models


class FakeAsyncQdrantClient:
    instances = []

    def __init__(self, url, api_key=None, timeout=None, prefer_grpc=False):
        self.url = url
        self.api_key = api_key
        self.collections = {}
        self.payload_indexes = []
        self.points = {}
        self.deleted_calls = []
        self.fail = False
        FakeAsyncQdrantClient.instances.append(self)

    async def collection_exists(self, collection_name):
        return collection_name in self.collections

    async def get_collection(self, collection_name):
        size = self.collections[collection_name].size
        return _Obj(config=_Obj(params=_Obj(vectors=_Obj(size=size))))

    async def create_collection(self, collection_name, vectors_config):
        self.collections[collection_name] = vectors_config

    async def create_payload_index(self, collection_name, field_name, field_schema):
        self.payload_indexes.append(field_name)

    async def upsert(self, collection_name, points, wait=True):
        if self.fail:
            raise ConnectionError("qdrant unreachable")
        for p in points:
            self.points[p.id] = p

    @staticmethod
    def _passes(payload, query_filter):
        if query_filter is None:
            return True
        for cond in query_filter.must or []:
            if payload.get(cond.key) != cond.match.value:
                return False
        for cond in query_filter.must_not or []:
            if payload.get(cond.key) == cond.match.value:
                return False
        return True

    async def query_points(
        self, collection_name, query, query_filter=None, limit=10, with_payload=True, with_vectors=False
    ):
        hits = [
            _Obj(id=p.id, score=sum(a * b for a, b in zip(query, p.vector)), payload=dict(p.payload))
            for p in self.points.values()
            if self._passes(p.payload, query_filter)
        ]
        hits.sort(key=lambda h: h.score, reverse=True)
        return _Obj(points=hits[:limit])

    async def retrieve(self, collection_name, ids, with_payload=True, with_vectors=True):
        return [
            _Obj(
                id=i,
                payload=dict(self.points[i].payload) if with_payload else None,
                vector=list(self.points[i].vector) if with_vectors else None,
            )
            for i in ids
            if i in self.points
        ]

    async def delete(self, collection_name, points_selector, wait=True):
        self.deleted_calls.append(list(points_selector.points))
        for i in points_selector.points:
            self.points.pop(i, None)

    async def close(self):
        return None


@pytest.fixture
def adapter(monkeypatch):
    FakeAsyncQdrantClient.instances = []
    fake_qdrant = types.ModuleType("qdrant_client")
    fake_qdrant.AsyncQdrantClient = FakeAsyncQdrantClient
    monkeypatch.setitem(sys.modules, "qdrant_client", fake_qdrant)
    monkeypatch.setitem(sys.modules, "qdrant_client.models", _build_fake_models())
    return QdrantVectorIndexAdapter(QdrantConfig(url="http://qdrant:6333", collection="docs", dimension=3))


def _vec(vid, values, **meta):
    return StoredVector(id=vid, values=tuple(values), metadata={"uri": "u", "authorDid": "a", **meta})


def _client():
    return FakeAsyncQdrantClient.instances[-1]


def test_adapter_implements_port(adapter):
    assert isinstance(adapter, VectorIndexPort)


def test_collection_created_lazily_with_keyword_indexes(adapter):
    assert _client().collections == {}
    asyncio.run(adapter.upsert([_vec("abc", [1.0, 0.0, 0.0])]))
    assert _client().collections["docs"].size == 3
    assert _client().collections["docs"].distance == "Cosine"
    assert _client().payload_indexes == ["uri", "authorDid"]


def test_existing_collection_with_wrong_dimension_fails(adapter):
    _client().collections["docs"] = _Obj(size=768)
    with pytest.raises(VectorStoreError, match="wrong dimension"):
        asyncio.run(adapter.query([1.0, 0.0, 0.0]))


def test_string_ids_mapped_to_uuid_and_restored(adapter):
    asyncio.run(adapter.upsert([_vec("base:c1", [1.0, 0.0, 0.0], title="T")]))

    stored_point = _client().points[point_id("base:c1")]
    assert stored_point.payload[VECTOR_ID_KEY] == "base:c1"

    found = asyncio.run(adapter.get_by_ids(["base:c1", "missing"]))
    assert len(found) == 1
    assert found[0].id == "base:c1"
    assert found[0].values == (1.0, 0.0, 0.0)
    assert found[0].metadata == {"uri": "u", "authorDid": "a", "title": "T"}


def test_point_id_is_deterministic_uuid():
    assert point_id("abc") == point_id("abc")
    assert point_id("abc") != point_id("abc:c1")
    assert len(point_id("abc")) == 36


def test_query_returns_matches_and_applies_filters(adapter):
    asyncio.run(
        adapter.upsert(
            [
                _vec("a", [1.0, 0.0, 0.0], authorDid="did:alice"),
                _vec("b", [0.9, 0.1, 0.0], authorDid="did:bob"),
                _vec("c", [0.0, 1.0, 0.0], authorDid="did:alice"),
            ]
        )
    )

    hits = asyncio.run(adapter.query([1.0, 0.0, 0.0], top_k=2))
    assert [h.id for h in hits] == ["a", "b"]
    assert VECTOR_ID_KEY not in hits[0].metadata

    only_alice = asyncio.run(adapter.query([1.0, 0.0, 0.0], filter={"authorDid": "did:alice"}))
    assert [h.id for h in only_alice] == ["a", "c"]

    not_alice = asyncio.run(
        adapter.query([1.0, 0.0, 0.0], filter={"authorDid": {"$ne": "did:alice"}})
    )
    assert [h.id for h in not_alice] == ["b"]

    eq_bob = asyncio.run(adapter.query([1.0, 0.0, 0.0], filter={"authorDid": {"$eq": "did:bob"}}))
    assert [h.id for h in eq_bob] == ["b"]


def test_delete_returns_count_of_existing_points(adapter):
    asyncio.run(adapter.upsert([_vec("a", [1.0, 0.0, 0.0]), _vec("b", [0.0, 1.0, 0.0])]))
    assert asyncio.run(adapter.delete_by_ids(["a", "zzz"])) == 1
    assert _client().deleted_calls == [[point_id("a")]]


def test_delete_of_missing_ids_makes_no_delete_call(adapter):
    assert asyncio.run(adapter.delete_by_ids(["x", "y"])) == 0
    assert _client().deleted_calls == []


def test_backend_errors_mapped_to_vector_store_error(adapter):
    _client().fail = True
    with pytest.raises(VectorStoreError) as exc:
        asyncio.run(adapter.upsert([_vec("a", [1.0, 0.0, 0.0])]))
    assert exc.value.operation == "upsert"
    assert isinstance(exc.value.__cause__, ConnectionError)


def test_init_failure_mapped(monkeypatch):
    broken = types.ModuleType("qdrant_client")

    def _raise(**kwargs):
        raise ValueError("bad url")

    broken.AsyncQdrantClient = _raise
    monkeypatch.setitem(sys.modules, "qdrant_client", broken)
    with pytest.raises(VectorStoreError, match="Qdrant init failed"):
        QdrantVectorIndexAdapter(QdrantConfig(url="::", collection="docs"))
