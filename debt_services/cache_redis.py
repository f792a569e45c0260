"""
Redis backend for the read-view cache.

Values are stored as JSON strings with a per-key TTL.  Prefix invalidation
walks the keyspace with SCAN (never KEYS) and deletes matches in batches.

Requires the ``redis`` extra (``pip install debt-ledger[redis]``).
"""

from __future__ import annotations

import json
from typing import Any

import redis

from debt_kernel.logging_config import get_logger
from debt_services.cache import dumps

logger = get_logger("services.cache_redis")

_GLOB_SPECIAL = "*?[]\\"


def _escape_glob(prefix: str) -> str:
    return "".join(f"\\{ch}" if ch in _GLOB_SPECIAL else ch for ch in prefix)


class RedisCache:
    """CacheBackend over a redis-py client."""

    def __init__(self, client: redis.Redis, scan_batch_size: int = 500):
        self._client = client
        self._scan_batch_size = scan_batch_size

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> RedisCache:
        client = redis.Redis.from_url(url, decode_responses=True)
        logger.info("redis_cache_connected", extra={"redis_url": url.split("@")[-1]})
        return cls(client, **kwargs)

    def get(self, key: str) -> Any | None:
        payload = self._client.get(key)
        if payload is None:
            return None
        return json.loads(payload)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        self._client.set(key, dumps(value), ex=ttl_seconds)

    def invalidate_pattern(self, prefix: str) -> int:
        removed = 0
        batch: list[str] = []
        for key in self._client.scan_iter(match=f"{_escape_glob(prefix)}*", count=self._scan_batch_size):
            batch.append(key)
            if len(batch) >= self._scan_batch_size:
                removed += self._client.delete(*batch)
                batch.clear()
        if batch:
            removed += self._client.delete(*batch)
        return removed
