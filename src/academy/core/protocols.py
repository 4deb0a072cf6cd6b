"""Protocol interfaces for all Academy abstractions.

All inter-layer communication uses these Protocols — structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from academy.core.types import Document, Filter, UpsertOperation


# ---------------------------------------------------------------------------
# Persistence: Document Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IDocumentStore(Protocol):
    """Tenant-scoped document collections (students, marks, field keys, ...).

    Filters are plain dicts: equality per key, plus ``{"$exists": bool}`` and
    ``{"$in": [...]}`` operators. Sort is a list of ``(field, 1 | -1)``.
    """

    def find(
        self,
        collection: str,
        filter: Filter,
        *,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> list[Document]: ...

    def find_one(self, collection: str, filter: Filter) -> Document | None: ...

    def insert_one(self, collection: str, document: Document) -> str: ...

    def insert_many(self, collection: str, documents: list[Document]) -> list[str]: ...

    def update_one(self, collection: str, filter: Filter, set_fields: Document) -> int: ...

    def update_many(self, collection: str, filter: Filter, set_fields: Document) -> int: ...

    def upsert_many(self, collection: str, operations: list[UpsertOperation]) -> None: ...

    def delete_one(self, collection: str, filter: Filter) -> int: ...

    def delete_many(self, collection: str, filter: Filter) -> int: ...

    def ping(self) -> bool: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...
