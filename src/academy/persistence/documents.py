"""Filter evaluation, sorting and id generation shared by document backends."""

from __future__ import annotations

import copy
import secrets
from typing import Any

from academy.core.types import Document, Filter, UpsertOperation

ID_FIELD = "_id"


def new_object_id() -> str:
    """24 lowercase hex characters, the shape of a MongoDB ObjectId."""
    return secrets.token_hex(12)


def _match_value(actual: Any, present: bool, condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for op, arg in condition.items():
            if op == "$exists":
                if present != bool(arg):
                    return False
            elif op == "$in":
                if not present or actual not in arg:
                    return False
            elif op == "$ne":
                if present and actual == arg:
                    return False
            else:
                raise ValueError(f"Unsupported filter operator {op!r}")
        return True
    return present and actual == condition


def matches(document: Document, filter: Filter) -> bool:
    """True when every top-level condition of ``filter`` holds for ``document``."""
    for key, condition in filter.items():
        present = key in document
        if not _match_value(document.get(key), present, condition):
            return False
    return True


def sort_documents(documents: list[Document], sort: list[tuple[str, int]] | None) -> list[Document]:
    """Stable multi-key sort; missing and None values sort first."""
    ordered = list(documents)
    for key, direction in reversed(sort or []):
        ordered.sort(
            key=lambda doc: (doc.get(key) is not None, doc.get(key) if doc.get(key) is not None else 0),
            reverse=direction < 0,
        )
    return ordered


def equality_fields(filter: Filter) -> Document:
    """Plain equality conditions of a filter, used to seed upserted documents."""
    return {
        k: v for k, v in filter.items()
        if not (isinstance(v, dict) and any(op.startswith("$") for op in v))
    }


def apply_upsert(existing: Document | None, operation: UpsertOperation) -> Document:
    """Return the document an upsert leaves behind."""
    if existing is not None:
        updated = copy.deepcopy(existing)
        updated.update(copy.deepcopy(operation.set_fields))
        return updated

    created = equality_fields(operation.filter)
    created.update(copy.deepcopy(operation.set_fields))
    created.update(copy.deepcopy(operation.set_on_insert))
    created.setdefault(ID_FIELD, new_object_id())
    return created


def tenant_of(filter: Filter) -> str | None:
    """Tenant id when the filter pins ``managementId`` to a single value."""
    value = filter.get("managementId")
    return value if isinstance(value, str) else None
