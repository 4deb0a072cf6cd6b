"""FieldMappingStore — persisted field catalog and custom key sets per tenant.

Discovered fields are upserted keyed by (placeholderKey, tenant): ``createdAt``
is written on first insert only, ``updatedAt`` on every refresh. After every
write, discovered entries whose path carries a per-record identifier segment
(e.g. ``marks.students.<objectId>.marks``) are pruned, and reads filter them
out again.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from academy.core.config import CatalogConfig
from academy.core.exceptions import (
    DuplicatePlaceholderError,
    FieldNotFoundError,
    KeySetNotFoundError,
    NoDataError,
    ValidationRejectedError,
)
from academy.core.protocols import ICacheBackend, IDocumentStore
from academy.core.types import Document, UpsertOperation
from academy.discovery.discoverer import SchemaDiscoverer
from academy.discovery.labels import IdentifierPredicate
from academy.models.field_catalog import (
    CustomKeySet,
    CustomKeySetDefinition,
    DataType,
    FieldCatalogEntry,
    FieldListing,
    FieldPatch,
    IconTag,
    LegacyCustomKey,
)
from academy.persistence import DATA_FIELD_KEYS

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_ENTRY_METADATA = {"id", "created_at", "updated_at"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def key_set_slug(name: str) -> str:
    return _WHITESPACE.sub("_", name.lower())


class FieldMappingStore:
    """Idempotent persistence of discovered fields and user-authored keys."""

    def __init__(
        self,
        store: IDocumentStore,
        discoverer: SchemaDiscoverer | None = None,
        *,
        cache: ICacheBackend | None = None,
        identifiers: IdentifierPredicate | None = None,
        cache_ttl: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._discoverer = discoverer or SchemaDiscoverer(store)
        self._cache = cache
        self._identifiers = identifiers or IdentifierPredicate()
        self._cache_ttl = cache_ttl if cache_ttl is not None else CatalogConfig().cache_ttl
        self._clock = clock

    # ---- identifier hygiene ----

    def _has_identifier(self, document: Document) -> bool:
        return any(
            self._identifiers.path_has_identifier(document.get(k) or "")
            for k in ("placeholderKey", "dbFieldPath")
        )

    def prune(self, tenant_id: str) -> int:
        """Delete discovered entries whose path contains an identifier-shaped segment."""
        docs = self._store.find(
            DATA_FIELD_KEYS, {"managementId": tenant_id, "keyName": {"$exists": False}},
        )
        stale = [doc["_id"] for doc in docs if self._has_identifier(doc)]
        if not stale:
            return 0
        deleted = self._store.delete_many(
            DATA_FIELD_KEYS, {"_id": {"$in": stale}, "managementId": tenant_id},
        )
        logger.info("Cleaned up %d record-specific field keys for tenant %s", deleted, tenant_id)
        return deleted

    # ---- cache ----

    def _cache_key(self, tenant_id: str) -> str:
        return f"field_keys:{tenant_id}"

    def _cached_fields(self, tenant_id: str) -> list[FieldCatalogEntry] | None:
        if self._cache is None:
            return None
        cached = self._cache.get(self._cache_key(tenant_id))
        if cached is None:
            return None
        return [FieldCatalogEntry.model_validate(item) for item in json.loads(cached)]

    def _cache_fields(self, tenant_id: str, fields: list[FieldCatalogEntry]) -> None:
        if self._cache is None:
            return
        payload = json.dumps([f.model_dump(by_alias=True, mode="json") for f in fields])
        self._cache.setex(self._cache_key(tenant_id), self._cache_ttl, payload)

    def _after_write(self, tenant_id: str) -> None:
        self.prune(tenant_id)
        if self._cache is not None:
            self._cache.delete(self._cache_key(tenant_id))

    # ---- reads ----

    def _stored_fields(self, tenant_id: str) -> list[FieldCatalogEntry]:
        docs = self._store.find(
            DATA_FIELD_KEYS, {"managementId": tenant_id, "keyName": {"$exists": False}},
        )
        entries = [
            FieldCatalogEntry.from_document(doc) for doc in docs if not self._has_identifier(doc)
        ]
        entries.sort(key=lambda entry: entry.label.casefold())
        return entries

    def list_key_sets(self, tenant_id: str) -> list[CustomKeySet]:
        docs = self._store.find(
            DATA_FIELD_KEYS,
            {
                "managementId": tenant_id,
                "keyName": {"$exists": True},
                "customKeySet": {"$exists": True},
            },
            sort=[("updatedAt", -1)],
        )
        return [CustomKeySet.from_document(doc) for doc in docs]

    def list_fields(self, tenant_id: str, *, refresh: bool = False, custom: bool = False) -> FieldListing:
        """Return the tenant's catalog, discovering it first when empty or on ``refresh``."""
        if custom:
            return FieldListing(key_sets=self.list_key_sets(tenant_id))

        if not refresh:
            cached = self._cached_fields(tenant_id)
            if cached is not None:
                return FieldListing(fields=cached)

        fields = [] if refresh else self._stored_fields(tenant_id)
        if not fields:
            try:
                self._refresh(tenant_id)
            except NoDataError as exc:
                return FieldListing(no_data=True, message=str(exc))
            fields = self._stored_fields(tenant_id)

        self._cache_fields(tenant_id, fields)
        return FieldListing(fields=fields)

    # ---- discovery ----

    def _refresh(self, tenant_id: str) -> int:
        entries = self._discoverer.discover(tenant_id)
        if not entries:
            raise NoDataError(tenant_id)

        # Placeholders already owned by a user-authored key stay with that key.
        owned = {
            doc.get("placeholderKey")
            for doc in self._store.find(
                DATA_FIELD_KEYS, {"managementId": tenant_id, "keyName": {"$exists": True}},
            )
        }
        skipped = [entry.placeholder_key for entry in entries if entry.placeholder_key in owned]
        if skipped:
            logger.info("Skipped %d discovered fields already used by custom keys for tenant %s: %s",
                        len(skipped), tenant_id, ", ".join(skipped))
            entries = [entry for entry in entries if entry.placeholder_key not in owned]

        now = self._clock()
        operations = [
            UpsertOperation(
                filter={
                    "placeholderKey": entry.placeholder_key,
                    "managementId": tenant_id,
                    "keyName": {"$exists": False},
                },
                set_fields={
                    **entry.model_dump(by_alias=True, mode="json", exclude=_ENTRY_METADATA,
                                       exclude_none=True),
                    "managementId": tenant_id,
                    "updatedAt": now,
                },
                set_on_insert={"createdAt": now},
            )
            for entry in entries
        ]
        self._store.upsert_many(DATA_FIELD_KEYS, operations)
        self._after_write(tenant_id)
        return len(entries)

    def upsert_from_discovery(self, tenant_id: str, *, validate_from_db: bool = True) -> int:
        """Discover, upsert and prune; returns the number of processed entries."""
        if not validate_from_db:
            raise ValidationRejectedError(
                "Database validation is required. Set validateFromDb to true or omit it."
            )
        return self._refresh(tenant_id)

    # ---- user-authored keys ----

    def _ensure_not_identifier(self, *paths: str) -> None:
        for path in paths:
            if self._identifiers.path_has_identifier(path):
                raise ValidationRejectedError(
                    f"Path {path!r} contains a record identifier segment"
                )

    def save_custom_key_set(
        self,
        tenant_id: str,
        definition: CustomKeySetDefinition,
        *,
        is_edit: bool = False,
        key_set_id: str | None = None,
    ) -> str:
        """Create a key set, or update ``key_set_id`` when editing. Returns its id."""
        slug = key_set_slug(definition.name)
        placeholder_key = f"custom_keyset_{slug}"
        db_field_path = f"custom.keyset.{slug}"
        self._ensure_not_identifier(placeholder_key, db_field_path)

        now = self._clock()
        data: Document = {
            "placeholderKey": placeholder_key,
            "dbFieldPath": db_field_path,
            "label": definition.name,
            "icon": IconTag.KEY.value,
            "existsInDb": False,
            "defaultValue": "",
            "dataType": DataType.OBJECT.value,
            "description": f"Custom key set: {definition.name} (Batch: {definition.batch_name})",
            "managementId": tenant_id,
            "keyName": definition.name,
            "customKeySet": definition.model_dump(by_alias=True, mode="json"),
            "updatedAt": now,
        }
        clash = self._store.find_one(
            DATA_FIELD_KEYS, {"managementId": tenant_id, "placeholderKey": placeholder_key},
        )

        if is_edit and key_set_id:
            selector = {"_id": key_set_id, "managementId": tenant_id}
            if self._store.find_one(DATA_FIELD_KEYS, selector) is None:
                raise KeySetNotFoundError(f"Key set {key_set_id!r} not found")
            if clash is not None and clash["_id"] != key_set_id:
                raise DuplicatePlaceholderError(placeholder_key)
            self._store.update_one(DATA_FIELD_KEYS, selector, data)
            saved_id = key_set_id
            logger.info("Updated key set %r for tenant %s", definition.name, tenant_id)
        else:
            if clash is not None:
                raise DuplicatePlaceholderError(placeholder_key)
            saved_id = self._store.insert_one(DATA_FIELD_KEYS, {**data, "createdAt": now})
            logger.info("Saved key set %r for tenant %s", definition.name, tenant_id)

        self._after_write(tenant_id)
        return saved_id

    def save_legacy_custom_keys(self, tenant_id: str, key_name: str,
                                keys: list[LegacyCustomKey]) -> int:
        """Upsert one entry per manual or calculation key under ``key_name``."""
        if not keys:
            return 0

        rows: list[tuple[LegacyCustomKey, str, str]] = []
        seen: set[str] = set()
        for key in keys:
            placeholder_key = key.placeholder or f"custom.{key.key_id}"
            db_field_path = f"{'calculation' if key.is_calculation else 'custom'}.{key.key_id}"
            self._ensure_not_identifier(placeholder_key, db_field_path)
            clash = self._store.find_one(DATA_FIELD_KEYS, {
                "managementId": tenant_id,
                "placeholderKey": placeholder_key,
                "keyName": {"$ne": key_name},
            })
            if placeholder_key in seen or clash is not None:
                raise DuplicatePlaceholderError(placeholder_key)
            seen.add(placeholder_key)
            rows.append((key, placeholder_key, db_field_path))

        now = self._clock()
        operations = [
            UpsertOperation(
                filter={"placeholderKey": placeholder_key, "managementId": tenant_id, "keyName": key_name},
                set_fields={
                    "placeholderKey": placeholder_key,
                    "dbFieldPath": db_field_path,
                    "label": key.label or key.name or "Custom Key",
                    "icon": (IconTag.CALCULATOR if key.is_calculation else IconTag.KEY).value,
                    "existsInDb": False,
                    "defaultValue": "",
                    "dataType": (DataType.NUMBER if key.is_calculation else DataType.STRING).value,
                    "description": _legacy_description(key),
                    "managementId": tenant_id,
                    "keyName": key_name,
                    "keyType": key.type,
                    "subjectName": key.subject_name,
                    "calculationConfig": key.calculation_config,
                    "updatedAt": now,
                },
                set_on_insert={"createdAt": now},
            )
            for key, placeholder_key, db_field_path in rows
        ]
        self._store.upsert_many(DATA_FIELD_KEYS, operations)
        self._after_write(tenant_id)
        logger.info("Saved %d custom keys as %r for tenant %s", len(rows), key_name, tenant_id)
        return len(rows)

    # ---- single-entry edits ----

    def update_field(
        self,
        tenant_id: str,
        patch: FieldPatch,
        *,
        field_id: str | None = None,
        placeholder_key: str | None = None,
    ) -> bool:
        """Partially update one entry selected by id or placeholder key."""
        if not field_id and not placeholder_key:
            raise ValidationRejectedError("ID or placeholderKey is required")
        if patch.db_field_path is not None:
            self._ensure_not_identifier(patch.db_field_path)

        selector: dict[str, Any] = (
            {"_id": field_id, "managementId": tenant_id}
            if field_id
            else {"placeholderKey": placeholder_key, "managementId": tenant_id}
        )
        set_fields = {**patch.to_set_fields(), "updatedAt": self._clock()}
        if not self._store.update_one(DATA_FIELD_KEYS, selector, set_fields):
            raise FieldNotFoundError(f"Data field key {field_id or placeholder_key!r} not found")

        self._after_write(tenant_id)
        return True

    def delete_key_set(self, tenant_id: str, key_set_id: str) -> bool:
        deleted = self._store.delete_one(
            DATA_FIELD_KEYS, {"_id": key_set_id, "managementId": tenant_id},
        )
        if not deleted:
            raise KeySetNotFoundError(f"Key set {key_set_id!r} not found")

        self._after_write(tenant_id)
        return True


def _legacy_description(key: LegacyCustomKey) -> str:
    if key.is_calculation:
        formula = (key.calculation_config or {}).get("formula")
        return f"Calculation key: {key.subject_name or 'N/A'} - {formula or 'N/A'}"
    return f"Custom key: {key.label or 'N/A'}"
