"""Tests for create_persistence wiring."""

from __future__ import annotations

from unittest.mock import patch

import fakeredis
from moto import mock_aws

from academy.core.config import AppSettings, RedisConfig, StoreConfig
from academy.persistence import (
    DynamoDBDocumentStore,
    MemoryCacheBackend,
    MemoryDocumentStore,
    RedisCacheBackend,
    create_persistence,
)


def test_defaults_to_memory_backends():
    store, cache = create_persistence(AppSettings())
    assert isinstance(store, MemoryDocumentStore)
    assert isinstance(cache, MemoryCacheBackend)


def test_dynamodb_and_redis_when_configured():
    settings = AppSettings(
        store=StoreConfig(backend="dynamodb", ping_interval_seconds=5),
        redis=RedisConfig(enabled=True),
    )
    with mock_aws(), patch("redis.Redis", return_value=fakeredis.FakeRedis(decode_responses=True)):
        store, cache = create_persistence(settings)
    assert isinstance(store, DynamoDBDocumentStore)
    assert store.connection.ping_interval == 5
    assert isinstance(cache, RedisCacheBackend)
