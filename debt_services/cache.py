"""
Read-view cache contract and the in-process backend.

Responsibility:
    ``CacheBackend`` is the three-call contract the ledger needs from a
    cache: ``get``, ``set`` with a TTL, and prefix invalidation.
    ``DebtCache`` builds the list / detail keys on top of any backend and
    reports hits and misses to the observability hooks.

Key layout (prefix from config, default ``smart_debt:``)::

    smart_debt:list:<canonical filter JSON>
    smart_debt:detail:<role>:<partner id>:<year>

Invariants enforced:
    - Values are JSON documents.  Both backends store the serialized form,
      so a cached value never aliases a caller's object.
    - Invalidation runs only after a unit of work has committed.
"""

from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from debt_kernel.domain.clock import Clock, SystemClock
from debt_kernel.domain.partner import PartnerRef
from debt_services import observability


@runtime_checkable
class CacheBackend(Protocol):
    """Minimal cache contract used by the read views."""

    def get(self, key: str) -> Any | None:
        ...

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        ...

    def invalidate_pattern(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``; return how many."""
        ...


def dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


class InMemoryCache:
    """
    Process-local TTL cache.

    Expiry is measured against the injected clock, so tests can expire
    entries with ``DeterministicClock.advance()``.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._entries: dict[str, tuple[datetime, str]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, payload = entry
            if self._clock.now() >= expires_at:
                del self._entries[key]
                return None
        return json.loads(payload)

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        expires_at = self._clock.now() + timedelta(seconds=ttl_seconds)
        payload = dumps(value)
        with self._lock:
            self._entries[key] = (expires_at, payload)

    def invalidate_pattern(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._entries)


class DebtCache:
    """Key building and hit/miss reporting over a CacheBackend."""

    def __init__(
        self,
        backend: CacheBackend,
        ttl_seconds: int = 300,
        key_prefix: str = "smart_debt:",
    ):
        self.backend = backend
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix

    @property
    def list_prefix(self) -> str:
        return f"{self.key_prefix}list:"

    def list_key(self, canonical_filters: dict[str, Any]) -> str:
        encoded = json.dumps(canonical_filters, sort_keys=True, separators=(",", ":"), default=str)
        return f"{self.list_prefix}{encoded}"

    def detail_prefix(self, partner: PartnerRef) -> str:
        return f"{self.key_prefix}detail:{partner.role.value}:{partner.id}:"

    def detail_key(self, partner: PartnerRef, year: int) -> str:
        return f"{self.detail_prefix(partner)}{year}"

    def get(self, key: str) -> Any | None:
        value = self.backend.get(key)
        if value is None:
            observability.log_cache_miss(key=key)
        else:
            observability.log_cache_hit(key=key)
        return value

    def set(self, key: str, value: Any) -> None:
        self.backend.set(key, value, self.ttl_seconds)

    def invalidate_all(self, reason: str | None = None) -> int:
        """Drop every list and detail entry."""
        removed = self.backend.invalidate_pattern(self.key_prefix)
        observability.log_cache_invalidated(prefix=self.key_prefix, removed=removed, reason=reason)
        return removed

    def invalidate_partner(self, partner: PartnerRef, reason: str | None = None) -> int:
        """Drop every list page and this partner's detail entries."""
        removed = 0
        for prefix in (self.list_prefix, self.detail_prefix(partner)):
            count = self.backend.invalidate_pattern(prefix)
            observability.log_cache_invalidated(prefix=prefix, removed=count, reason=reason)
            removed += count
        return removed
