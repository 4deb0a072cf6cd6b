"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from academy.core.config import AppSettings
from academy.core.protocols import ICacheBackend, IDocumentStore
from academy.persistence.connection import ConnectionState
from academy.persistence.dynamodb_backend import DynamoDBDocumentStore
from academy.persistence.memory_backend import MemoryCacheBackend, MemoryDocumentStore
from academy.persistence.redis_backend import RedisCacheBackend

# Collection names
STUDENTS = "students"
MARKS = "marks"
SUBJECTS = "subjects"
DATA_FIELD_KEYS = "data_field_keys"
MARKSHEET_TEMPLATES = "marksheet_templates"
GENERATED_MARKSHEETS = "generated_marksheets"

COLLECTIONS = (
    STUDENTS,
    MARKS,
    SUBJECTS,
    DATA_FIELD_KEYS,
    MARKSHEET_TEMPLATES,
    GENERATED_MARKSHEETS,
)


def create_persistence(settings: AppSettings | None = None) -> tuple[IDocumentStore, ICacheBackend]:
    """Create wired-up persistence backends from application settings.

    Returns:
        Tuple of (document_store, cache).
    """
    if settings is None:
        settings = AppSettings()

    cache: ICacheBackend
    if settings.redis.enabled:
        cache = RedisCacheBackend(
            host=settings.redis.host,
            port=settings.redis.port,
            db=settings.redis.db,
        )
    else:
        cache = MemoryCacheBackend()

    store: IDocumentStore
    if settings.store.backend == "dynamodb":
        store = DynamoDBDocumentStore(
            table_prefix=settings.dynamodb.table_prefix,
            table_suffix=settings.dynamodb.table_suffix,
            region=settings.dynamodb.region,
            endpoint_url=settings.dynamodb.endpoint_url,
            connection=ConnectionState(ping_interval=settings.store.ping_interval_seconds),
        )
    else:
        store = MemoryDocumentStore()

    return store, cache
