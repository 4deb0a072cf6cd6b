"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class StoreConfig(BaseSettings):
    """Document store selection."""

    model_config = {"env_prefix": "ACADEMY_STORE_"}

    backend: Literal["memory", "dynamodb"] = "memory"
    ping_interval_seconds: float = 30.0


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "ACADEMY_DYNAMO_"}

    table_prefix: str = "academy-"
    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache configuration."""

    model_config = {"env_prefix": "ACADEMY_REDIS_"}

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0


class DiscoveryConfig(BaseSettings):
    """Field discovery sampling and identifier detection."""

    model_config = {"env_prefix": "ACADEMY_DISCOVERY_"}

    student_sample_limit: int = 100
    marks_sample_limit: int = 50
    subject_sample_limit: int = 50
    identifier_pattern: str = r"^[0-9a-f]{24}$"


class CatalogConfig(BaseSettings):
    """Field catalog read cache."""

    model_config = {"env_prefix": "ACADEMY_CATALOG_"}

    cache_ttl: int = 300  # 5 minutes


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "ACADEMY_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool = False

    store: StoreConfig = StoreConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    discovery: DiscoveryConfig = DiscoveryConfig()
    catalog: CatalogConfig = CatalogConfig()
