"""Tests for the in-memory document store and cache."""

from __future__ import annotations

from academy.core.protocols import ICacheBackend, IDocumentStore
from academy.core.types import UpsertOperation
from tests.fakes import MemoryCacheBackend, MemoryDocumentStore


def test_satisfy_protocols():
    assert isinstance(MemoryDocumentStore(), IDocumentStore)
    assert isinstance(MemoryCacheBackend(), ICacheBackend)


class TestMemoryDocumentStore:
    def test_insert_assigns_id(self):
        store = MemoryDocumentStore()
        doc_id = store.insert_one("students", {"name": "A"})
        assert store.find_one("students", {"_id": doc_id})["name"] == "A"

    def test_returned_documents_are_copies(self):
        store = MemoryDocumentStore()
        store.insert_one("students", {"_id": "x", "address": {"city": "Pune"}})
        store.find_one("students", {"_id": "x"})["address"]["city"] = "Delhi"
        assert store.find_one("students", {"_id": "x"})["address"]["city"] == "Pune"

    def test_find_sort_and_limit(self):
        store = MemoryDocumentStore()
        store.insert_many("marks", [{"n": 1}, {"n": 3}, {"n": 2}])
        assert [d["n"] for d in store.find("marks", {}, sort=[("n", -1)], limit=2)] == [3, 2]

    def test_update_counts(self):
        store = MemoryDocumentStore()
        store.insert_many("marks", [{"t": "a"}, {"t": "a"}, {"t": "b"}])
        assert store.update_one("marks", {"t": "a"}, {"x": 1}) == 1
        assert store.update_many("marks", {"t": "a"}, {"y": 2}) == 2
        assert store.update_one("marks", {"t": "z"}, {"x": 1}) == 0

    def test_upsert_many(self):
        store = MemoryDocumentStore()
        op = UpsertOperation(filter={"k": "a"}, set_fields={"v": 1}, set_on_insert={"c": 0})
        store.upsert_many("keys", [op])
        store.upsert_many("keys", [UpsertOperation(filter={"k": "a"}, set_fields={"v": 2}, set_on_insert={"c": 9})])
        [doc] = store.find("keys", {})
        assert (doc["v"], doc["c"]) == (2, 0)

    def test_delete(self):
        store = MemoryDocumentStore()
        ids = store.insert_many("keys", [{"t": 1}, {"t": 1}, {"t": 2}])
        assert store.delete_one("keys", {"_id": ids[2]}) == 1
        assert store.delete_many("keys", {"t": 1}) == 2
        assert store.find("keys", {}) == []
        assert store.delete_one("keys", {"t": 1}) == 0


class TestMemoryCacheBackend:
    def test_get_setex_delete(self):
        cache = MemoryCacheBackend()
        assert cache.get("k") is None
        cache.setex("k", 60, "v")
        assert cache.get("k") == "v"
        cache.delete("k")
        cache.delete("k")
        assert cache.get("k") is None
