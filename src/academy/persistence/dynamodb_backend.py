"""DynamoDB backend implementing IDocumentStore.

Each collection lives in its own table (``<prefix><collection><suffix>``)
keyed by ``PK = TENANT#<managementId>`` and ``SK = DOC#<_id>``, so every
tenant-scoped read is a single-partition query.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from academy.core.exceptions import StoreIOError
from academy.core.types import Document, Filter, UpsertOperation
from academy.persistence.connection import ConnectionState
from academy.persistence.documents import (
    ID_FIELD,
    apply_upsert,
    matches,
    new_object_id,
    sort_documents,
    tenant_of,
)

logger = logging.getLogger(__name__)

_DATE_TAG = "$date"
_KEY_ATTRS = ("PK", "SK")
_AWS_ERRORS = (ClientError, BotoCoreError)


def _to_dynamodb(value: Any) -> Any:
    """Convert floats to Decimal and datetimes to tagged maps for DynamoDB."""
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, (datetime, date)):
        return {_DATE_TAG: value.isoformat()}
    if isinstance(value, dict):
        return {k: _to_dynamodb(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamodb(i) for i in value]
    return value


def _from_dynamodb(value: Any) -> Any:
    """Inverse of ``_to_dynamodb``: Decimal to int/float, tagged maps to datetime."""
    if isinstance(value, Decimal):
        return int(value) if value == int(value) else float(value)
    if isinstance(value, dict):
        if set(value) == {_DATE_TAG}:
            return datetime.fromisoformat(value[_DATE_TAG])
        return {k: _from_dynamodb(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamodb(i) for i in value]
    return value


def _partition(tenant_id: str | None) -> str:
    return f"TENANT#{tenant_id or 'GLOBAL'}"


class DynamoDBDocumentStore:
    """Production IDocumentStore backed by DynamoDB."""

    def __init__(self, table_prefix: str = "academy-", table_suffix: str = "",
                 region: str = "us-east-1", endpoint_url: str | None = None,
                 connection: ConnectionState | None = None) -> None:
        self._table_prefix = table_prefix
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        self._connection = connection or ConnectionState()
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    @property
    def connection(self) -> ConnectionState:
        return self._connection

    def table_name(self, collection: str) -> str:
        return f"{self._table_prefix}{collection}{self._table_suffix}"

    def _table(self, collection: str):
        return self._ddb.Table(self.table_name(collection))

    def _list_tables(self) -> None:
        self._ddb.meta.client.list_tables(Limit=1)

    def _ensure_connected(self) -> None:
        try:
            self._connection.check(self._list_tables)
        except _AWS_ERRORS as exc:
            raise StoreIOError(f"DynamoDB unreachable: {exc}") from exc

    # ---- raw item access ----

    def _load(self, collection: str, filter: Filter, limit: int | None = None) -> list[Document]:
        """Read candidate items, narrowed to one partition when the filter pins a tenant."""
        self._ensure_connected()
        tbl = self._table(collection)
        tenant_id = tenant_of(filter)
        # Limit can only be pushed down when no other condition filters client-side.
        page_limit = limit if limit is not None and set(filter) == {"managementId"} else None

        kwargs: dict[str, Any] = {}
        if tenant_id is not None:
            kwargs["KeyConditionExpression"] = Key("PK").eq(_partition(tenant_id))
        if page_limit is not None:
            kwargs["Limit"] = page_limit

        items: list[dict[str, Any]] = []
        try:
            while True:
                resp = tbl.query(**kwargs) if tenant_id is not None else tbl.scan(**kwargs)
                items.extend(resp.get("Items", []))
                last_key = resp.get("LastEvaluatedKey")
                if not last_key or (page_limit is not None and len(items) >= page_limit):
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except _AWS_ERRORS as exc:
            raise StoreIOError(f"DynamoDB read failed for {collection!r}: {exc}") from exc

        docs = []
        for item in items:
            doc = _from_dynamodb({k: v for k, v in item.items() if k not in _KEY_ATTRS})
            if matches(doc, filter):
                docs.append(doc)
        return docs

    def _put(self, collection: str, document: Document) -> None:
        item = _to_dynamodb(document)
        item["PK"] = _partition(document.get("managementId"))
        item["SK"] = f"DOC#{document[ID_FIELD]}"
        try:
            self._table(collection).put_item(Item=item)
        except _AWS_ERRORS as exc:
            raise StoreIOError(f"DynamoDB write failed for {collection!r}: {exc}") from exc

    def _delete(self, collection: str, document: Document) -> None:
        key = {
            "PK": _partition(document.get("managementId")),
            "SK": f"DOC#{document[ID_FIELD]}",
        }
        try:
            self._table(collection).delete_item(Key=key)
        except _AWS_ERRORS as exc:
            raise StoreIOError(f"DynamoDB delete failed for {collection!r}: {exc}") from exc

    # ---- IDocumentStore methods ----

    def find(
        self,
        collection: str,
        filter: Filter,
        *,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        found = sort_documents(self._load(collection, filter, limit), sort)
        return found[:limit] if limit is not None else found

    def find_one(self, collection: str, filter: Filter) -> Document | None:
        found = self._load(collection, filter)
        return found[0] if found else None

    def insert_one(self, collection: str, document: Document) -> str:
        self._ensure_connected()
        doc = dict(document)
        doc.setdefault(ID_FIELD, new_object_id())
        self._put(collection, doc)
        return doc[ID_FIELD]

    def insert_many(self, collection: str, documents: list[Document]) -> list[str]:
        return [self.insert_one(collection, doc) for doc in documents]

    def update_one(self, collection: str, filter: Filter, set_fields: Document) -> int:
        found = self._load(collection, filter)
        if not found:
            return 0
        self._put(collection, {**found[0], **set_fields})
        return 1

    def update_many(self, collection: str, filter: Filter, set_fields: Document) -> int:
        found = self._load(collection, filter)
        for doc in found:
            self._put(collection, {**doc, **set_fields})
        return len(found)

    def upsert_many(self, collection: str, operations: list[UpsertOperation]) -> None:
        for op in operations:
            found = self._load(collection, op.filter)
            self._put(collection, apply_upsert(found[0] if found else None, op))
        logger.debug("Upserted %d documents into %s", len(operations), collection)

    def delete_one(self, collection: str, filter: Filter) -> int:
        found = self._load(collection, filter)
        if not found:
            return 0
        self._delete(collection, found[0])
        return 1

    def delete_many(self, collection: str, filter: Filter) -> int:
        found = self._load(collection, filter)
        for doc in found:
            self._delete(collection, doc)
        return len(found)

    def ping(self) -> bool:
        try:
            self._ensure_connected()
        except StoreIOError:
            return False
        return True
