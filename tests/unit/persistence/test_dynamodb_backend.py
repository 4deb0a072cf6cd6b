"""Unit tests for DynamoDBDocumentStore using moto."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import boto3
import pytest
from moto import mock_aws

from academy.core.exceptions import StoreIOError
from academy.core.protocols import IDocumentStore
from academy.core.types import UpsertOperation
from academy.persistence import COLLECTIONS, DATA_FIELD_KEYS, MARKS, STUDENTS
from academy.persistence.connection import ConnectionState
from academy.persistence.dynamodb_backend import DynamoDBDocumentStore

TABLE_SUFFIX = "-test"
REGION = "us-east-1"
TENANT = "school-1"

# ---------- helpers ----------

def _create_table(client, name: str, pk: str = "PK", sk: str = "SK"):
    """Create a DynamoDB table with PK/SK key schema."""
    client.create_table(
        TableName=name,
        KeySchema=[
            {"AttributeName": pk, "KeyType": "HASH"},
            {"AttributeName": sk, "KeyType": "RANGE"},
        ],
        AttributeDefinitions=[
            {"AttributeName": pk, "AttributeType": "S"},
            {"AttributeName": sk, "AttributeType": "S"},
        ],
        BillingMode="PAY_PER_REQUEST",
    )


# ---------- fixtures ----------

@pytest.fixture
def aws():
    with mock_aws():
        ddb = boto3.resource("dynamodb", region_name=REGION)
        client = boto3.client("dynamodb", region_name=REGION)
        for collection in COLLECTIONS:
            _create_table(client, f"academy-{collection}{TABLE_SUFFIX}")
        yield ddb


@pytest.fixture
def store(aws):
    return DynamoDBDocumentStore(table_suffix=TABLE_SUFFIX, region=REGION)


# ---------- layout ----------

class TestLayout:
    def test_satisfies_protocol(self, store):
        assert isinstance(store, IDocumentStore)

    def test_table_name(self, store):
        assert store.table_name(STUDENTS) == "academy-students-test"

    def test_items_are_keyed_by_tenant_and_id(self, store, aws):
        doc_id = store.insert_one(STUDENTS, {"managementId": TENANT, "name": "Asha"})
        item = aws.Table("academy-students-test").get_item(
            Key={"PK": f"TENANT#{TENANT}", "SK": f"DOC#{doc_id}"},
        )["Item"]
        assert item["name"] == "Asha"
        assert item["_id"] == doc_id

    def test_documents_without_tenant_use_global_partition(self, store, aws):
        doc_id = store.insert_one(STUDENTS, {"name": "Nobody"})
        item = aws.Table("academy-students-test").get_item(
            Key={"PK": "TENANT#GLOBAL", "SK": f"DOC#{doc_id}"},
        )
        assert "Item" in item


# ---------- value conversion ----------

class TestValueConversion:
    def test_round_trips_numbers_and_datetimes(self, store):
        created = datetime(2025, 7, 1, 9, 0, tzinfo=timezone.utc)
        doc_id = store.insert_one(MARKS, {
            "managementId": TENANT,
            "students": {"65f0a1b2c3d4e5f6a7b8c901": {"marks": 61.5, "maxMarks": 100}},
            "createdAt": created,
            "flags": [True, None],
        })
        doc = store.find_one(MARKS, {"_id": doc_id, "managementId": TENANT})
        holder = doc["students"]["65f0a1b2c3d4e5f6a7b8c901"]
        assert holder["marks"] == 61.5
        assert holder["maxMarks"] == 100
        assert isinstance(holder["maxMarks"], int)
        assert doc["createdAt"] == created
        assert doc["flags"] == [True, None]
        assert "PK" not in doc and "SK" not in doc

    def test_floats_are_stored_as_decimal(self, store, aws):
        doc_id = store.insert_one(MARKS, {"managementId": TENANT, "score": 0.1})
        item = aws.Table("academy-marks-test").get_item(
            Key={"PK": f"TENANT#{TENANT}", "SK": f"DOC#{doc_id}"},
        )["Item"]
        assert item["score"] == Decimal("0.1")


# ---------- queries ----------

class TestFind:
    def test_tenant_scoped(self, store):
        store.insert_one(STUDENTS, {"managementId": TENANT, "name": "A"})
        store.insert_one(STUDENTS, {"managementId": "other", "name": "B"})
        assert [d["name"] for d in store.find(STUDENTS, {"managementId": TENANT})] == ["A"]

    def test_operators_and_sort(self, store):
        store.insert_many(DATA_FIELD_KEYS, [
            {"managementId": TENANT, "label": "b"},
            {"managementId": TENANT, "label": "a", "keyName": "k"},
            {"managementId": TENANT, "label": "c"},
        ])
        found = store.find(
            DATA_FIELD_KEYS,
            {"managementId": TENANT, "keyName": {"$exists": False}},
            sort=[("label", 1)],
        )
        assert [d["label"] for d in found] == ["b", "c"]

    def test_limit(self, store):
        store.insert_many(STUDENTS, [{"managementId": TENANT, "n": i} for i in range(5)])
        assert len(store.find(STUDENTS, {"managementId": TENANT}, limit=3)) == 3

    def test_scan_without_tenant(self, store):
        store.insert_one(STUDENTS, {"managementId": TENANT, "n": 1})
        store.insert_one(STUDENTS, {"managementId": "other", "n": 1})
        assert len(store.find(STUDENTS, {"n": 1})) == 2

    def test_find_one_missing(self, store):
        assert store.find_one(STUDENTS, {"managementId": TENANT, "_id": "nope"}) is None


# ---------- writes ----------

class TestWrites:
    def test_update_one_and_many(self, store):
        store.insert_many(STUDENTS, [{"managementId": TENANT, "c": "x"}, {"managementId": TENANT, "c": "x"}])
        assert store.update_one(STUDENTS, {"managementId": TENANT, "c": "x"}, {"flag": True}) == 1
        assert store.update_many(STUDENTS, {"managementId": TENANT, "c": "x"}, {"c": "y"}) == 2
        assert len(store.find(STUDENTS, {"managementId": TENANT, "c": "y"})) == 2

    def test_upsert_many_preserves_insert_only_fields(self, store):
        op = UpsertOperation(
            filter={"placeholderKey": "name", "managementId": TENANT},
            set_fields={"label": "Name"},
            set_on_insert={"createdAt": datetime(2025, 1, 1, tzinfo=timezone.utc)},
        )
        store.upsert_many(DATA_FIELD_KEYS, [op])
        store.upsert_many(DATA_FIELD_KEYS, [UpsertOperation(
            filter=op.filter, set_fields={"label": "Full Name"},
            set_on_insert={"createdAt": datetime(2026, 1, 1, tzinfo=timezone.utc)},
        )])
        [doc] = store.find(DATA_FIELD_KEYS, {"managementId": TENANT})
        assert doc["label"] == "Full Name"
        assert doc["createdAt"].year == 2025

    def test_delete_one_and_many(self, store):
        ids = store.insert_many(STUDENTS, [{"managementId": TENANT, "n": i} for i in range(3)])
        assert store.delete_one(STUDENTS, {"managementId": TENANT, "_id": ids[0]}) == 1
        assert store.delete_many(STUDENTS, {"managementId": TENANT, "_id": {"$in": ids[1:]}}) == 2
        assert store.find(STUDENTS, {"managementId": TENANT}) == []
        assert store.delete_one(STUDENTS, {"managementId": TENANT, "_id": ids[0]}) == 0


# ---------- connection handling ----------

class TestConnection:
    def test_ping(self, store):
        assert store.ping() is True
        assert store.connection.is_connected

    def test_missing_table_wraps_error(self, aws):
        store = DynamoDBDocumentStore(table_suffix="-absent", region=REGION)
        with pytest.raises(StoreIOError):
            store.find(STUDENTS, {"managementId": TENANT})

    def test_connection_state_is_reused(self, aws):
        calls = []
        state = ConnectionState(ping_interval=30)
        store = DynamoDBDocumentStore(table_suffix=TABLE_SUFFIX, region=REGION, connection=state)
        original = store._list_tables

        def counting():
            calls.append(1)
            original()

        store._list_tables = counting
        store.find(STUDENTS, {"managementId": TENANT})
        store.find(STUDENTS, {"managementId": TENANT})
        assert calls == [1]
