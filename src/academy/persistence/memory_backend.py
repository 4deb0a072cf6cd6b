"""In-memory backends for unit tests and local runs — dict-backed fakes."""

from __future__ import annotations

import copy

from academy.core.types import Document, Filter, UpsertOperation
from academy.persistence.documents import (
    ID_FIELD,
    apply_upsert,
    matches,
    new_object_id,
    sort_documents,
)


class MemoryDocumentStore:
    """Dict-backed IDocumentStore for unit tests."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}

    def _docs(self, collection: str) -> dict[str, Document]:
        return self._collections.setdefault(collection, {})

    def _matching(self, collection: str, filter: Filter) -> list[Document]:
        return [doc for doc in self._docs(collection).values() if matches(doc, filter)]

    def find(
        self,
        collection: str,
        filter: Filter,
        *,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        found = sort_documents(self._matching(collection, filter), sort)
        if limit is not None:
            found = found[:limit]
        return copy.deepcopy(found)

    def find_one(self, collection: str, filter: Filter) -> Document | None:
        found = self.find(collection, filter, limit=1)
        return found[0] if found else None

    def insert_one(self, collection: str, document: Document) -> str:
        doc = copy.deepcopy(document)
        doc.setdefault(ID_FIELD, new_object_id())
        self._docs(collection)[doc[ID_FIELD]] = doc
        return doc[ID_FIELD]

    def insert_many(self, collection: str, documents: list[Document]) -> list[str]:
        return [self.insert_one(collection, doc) for doc in documents]

    def update_one(self, collection: str, filter: Filter, set_fields: Document) -> int:
        found = self._matching(collection, filter)
        if not found:
            return 0
        found[0].update(copy.deepcopy(set_fields))
        return 1

    def update_many(self, collection: str, filter: Filter, set_fields: Document) -> int:
        found = self._matching(collection, filter)
        for doc in found:
            doc.update(copy.deepcopy(set_fields))
        return len(found)

    def upsert_many(self, collection: str, operations: list[UpsertOperation]) -> None:
        docs = self._docs(collection)
        for op in operations:
            found = self._matching(collection, op.filter)
            doc = apply_upsert(found[0] if found else None, op)
            docs[doc[ID_FIELD]] = doc

    def delete_one(self, collection: str, filter: Filter) -> int:
        found = self._matching(collection, filter)
        if not found:
            return 0
        del self._docs(collection)[found[0][ID_FIELD]]
        return 1

    def delete_many(self, collection: str, filter: Filter) -> int:
        found = self._matching(collection, filter)
        for doc in found:
            del self._docs(collection)[doc[ID_FIELD]]
        return len(found)

    def ping(self) -> bool:
        return True


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)
