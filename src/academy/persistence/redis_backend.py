"""Redis cache backend implementing ICacheBackend."""

from __future__ import annotations

import redis

from academy.core.exceptions import CacheError


class RedisCacheBackend:
    """Production ICacheBackend backed by Redis.

    Keys are namespaced so several deployments can share one Redis database.
    """

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 namespace: str = "academy:") -> None:
        self._namespace = namespace
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def _key(self, key: str) -> str:
        return f"{self._namespace}{key}"

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(self._key(key))
        except Exception as exc:
            raise CacheError(f"Redis GET failed for key={key!r}: {exc}") from exc

    def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            self._client.setex(self._key(key), ttl, value)
        except Exception as exc:
            raise CacheError(f"Redis SETEX failed for key={key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except Exception as exc:
            raise CacheError(f"Redis DELETE failed for key={key!r}: {exc}") from exc
