"""Integration tests for the DynamoDB document store against LocalStack."""

from __future__ import annotations

import pytest

from academy.persistence import DATA_FIELD_KEYS, DynamoDBDocumentStore
from academy.services.field_mapping import FieldMappingStore
from academy.services.marksheets import MarksheetService
from tests.integration.conftest import LOCALSTACK_URL, skip_no_localstack

TENANT = "demo-school"


@skip_no_localstack
class TestDynamoDBIntegration:
    @pytest.fixture
    def store(self, seeded_tables):
        return DynamoDBDocumentStore(
            table_suffix=seeded_tables,
            region="us-east-1",
            endpoint_url=LOCALSTACK_URL,
        )

    def test_ping(self, store):
        assert store.ping() is True

    def test_catalog_refresh_is_idempotent(self, store):
        service = FieldMappingStore(store)
        first = service.list_fields(TENANT, refresh=True).fields
        second = service.list_fields(TENANT, refresh=True).fields
        assert [f.placeholder_key for f in first] == [f.placeholder_key for f in second]
        keys = [d["placeholderKey"] for d in store.find(DATA_FIELD_KEYS, {"managementId": TENANT})]
        assert len(keys) == len(set(keys))

    def test_prepare_from_seed(self, store):
        drafts = MarksheetService(store).prepare(TENANT, "TPL_TERM1", "CLS_10A")
        assert len(drafts) == 2
        assert all(d.subjects[0].is_filled for d in drafts)
