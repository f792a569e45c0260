"""Tests for the read-view cache (InMemoryCache, DebtCache, RedisCache)."""

from uuid import uuid4

import pytest

from debt_kernel.domain.partner import CustomerRef, SupplierRef
from debt_services.cache import CacheBackend, DebtCache, InMemoryCache


class TestInMemoryCache:
    def test_set_and_get(self, clock):
        backend = InMemoryCache(clock)
        backend.set("k", {"a": 1}, ttl_seconds=60)
        assert backend.get("k") == {"a": 1}
        assert backend.get("missing") is None

    def test_entries_expire(self, clock):
        backend = InMemoryCache(clock)
        backend.set("k", [1, 2], ttl_seconds=60)
        clock.advance(59)
        assert backend.get("k") == [1, 2]
        clock.advance(1)
        assert backend.get("k") is None
        assert len(backend) == 0

    def test_values_are_copies(self, clock):
        backend = InMemoryCache(clock)
        value = {"data": [1]}
        backend.set("k", value, ttl_seconds=60)
        value["data"].append(2)

        cached = backend.get("k")
        cached["data"].append(3)

        assert backend.get("k") == {"data": [1]}

    def test_invalidate_pattern(self, clock):
        backend = InMemoryCache(clock)
        for key in ("smart_debt:list:a", "smart_debt:list:b", "smart_debt:detail:x", "other:list:a"):
            backend.set(key, 1, ttl_seconds=60)

        assert backend.invalidate_pattern("smart_debt:list:") == 2
        assert backend.keys() == ["other:list:a", "smart_debt:detail:x"]

    def test_satisfies_protocol(self, clock):
        assert isinstance(InMemoryCache(clock), CacheBackend)


class TestDebtCache:
    def test_keys(self, cache_backend):
        cache = DebtCache(cache_backend, key_prefix="p:")
        partner = CustomerRef(uuid4())

        assert cache.detail_key(partner, 2024) == f"p:detail:customer:{partner.id}:2024"
        assert cache.list_key({"b": 2, "a": None}) == 'p:list:{"a":null,"b":2}'

    def test_ttl_from_settings(self, cache_backend, clock):
        cache = DebtCache(cache_backend, ttl_seconds=10)
        cache.set("p:x", 1)
        clock.advance(10)
        assert cache.get("p:x") is None

    def test_invalidate_partner_spares_other_details(self, cache_backend):
        cache = DebtCache(cache_backend)
        mine, theirs = SupplierRef(uuid4()), SupplierRef(uuid4())
        cache.set(cache.list_key({"page": 1}), 1)
        cache.set(cache.detail_key(mine, 2023), 1)
        cache.set(cache.detail_key(mine, 2024), 1)
        cache.set(cache.detail_key(theirs, 2024), 1)

        assert cache.invalidate_partner(mine, reason="sync_snapshot") == 3
        assert cache_backend.keys() == [cache.detail_key(theirs, 2024)]

    def test_invalidate_all(self, cache_backend, captured_logs):
        cache = DebtCache(cache_backend)
        cache.set(cache.list_key({}), 1)
        cache.set(cache.detail_key(CustomerRef(uuid4()), 2024), 1)

        assert cache.invalidate_all(reason="snap_all") == 2

        (event,) = [r for r in captured_logs() if r.get("observability_event") == "cache_invalidated"]
        assert event["removed"] == 2
        assert event["reason"] == "snap_all"

    def test_hit_and_miss_are_observed(self, cache_backend, captured_logs):
        cache = DebtCache(cache_backend)
        cache.get("smart_debt:list:x")
        cache.set("smart_debt:list:x", {"ok": True})
        cache.get("smart_debt:list:x")

        events = [r["observability_event"] for r in captured_logs() if "observability_event" in r]
        assert events == ["cache_miss", "cache_hit"]


class FakeRedis:
    """The slice of redis.Redis that RedisCache uses."""

    def __init__(self):
        self.store = {}
        self.expiry = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex

    def scan_iter(self, match=None, count=None):
        prefix = match.rstrip("*").replace("\\", "")
        return [key for key in list(self.store) if key.startswith(prefix)]

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


class TestRedisCache:
    @pytest.fixture
    def redis_cache(self):
        pytest.importorskip("redis")
        from debt_services.cache_redis import RedisCache

        client = FakeRedis()
        return RedisCache(client, scan_batch_size=2), client

    def test_round_trip_with_ttl(self, redis_cache):
        cache, client = redis_cache
        cache.set("smart_debt:list:a", {"total": 3}, ttl_seconds=300)
        assert cache.get("smart_debt:list:a") == {"total": 3}
        assert client.expiry["smart_debt:list:a"] == 300
        assert cache.get("smart_debt:list:zzz") is None

    def test_invalidate_in_batches(self, redis_cache):
        cache, client = redis_cache
        for i in range(5):
            cache.set(f"smart_debt:list:{i}", i, ttl_seconds=60)
        cache.set("keep:me", 1, ttl_seconds=60)

        assert cache.invalidate_pattern("smart_debt:list:") == 5
        assert list(client.store) == ["keep:me"]
