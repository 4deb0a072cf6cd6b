"""Type aliases used across the Academy service."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

JsonDict = dict[str, Any]
Document = dict[str, Any]
Filter = dict[str, Any]
TenantId = str
HolderId = str
SubjectId = str


@dataclass(frozen=True)
class UpsertOperation:
    """Keyed upsert: ``filter`` equality fields seed a new document."""

    filter: Filter
    set_fields: Document
    set_on_insert: Document = field(default_factory=dict)
