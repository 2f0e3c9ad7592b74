"""TTL cache shared by the network-backed signal providers.

Reputation lookups and favicon hashes are keyed by URL and kept in
memory for a configurable period. Entries are evicted oldest-first once the
cache grows past ``max_entries``.
"""

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class CacheEntry:
    """Cached value with its insertion time."""

    __slots__ = ("value", "timestamp", "ttl_seconds")

    def __init__(self, value: Any, timestamp: float, ttl_seconds: Optional[int] = None):
        self.value = value
        self.timestamp = timestamp
        self.ttl_seconds = ttl_seconds

    def is_expired(self, default_ttl: int, now: Optional[float] = None) -> bool:
        ttl = self.ttl_seconds if self.ttl_seconds is not None else default_ttl
        return (now if now is not None else time.time()) - self.timestamp >= ttl


class SignalCache:
    """
    In-memory TTL cache for provider lookups.

    Usage:
        cache = SignalCache(ttl_seconds=3600, namespace="reputation")
        cache.set("example.com", verdicts)
        cached = cache.get("example.com")
        result = await cache.get_or_fetch("example.com", fetch_async_fn)
    """

    def __init__(
        self,
        ttl_seconds: int = 3600,
        namespace: str = "",
        max_entries: int = 1024,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.namespace = namespace
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()

    def _make_key(self, key: str) -> str:
        if self.namespace:
            return f"{self.namespace}:{key}"
        return key

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None if missing or expired."""
        full_key = self._make_key(key)
        with self._lock:
            entry = self._entries.get(full_key)
            if entry is None:
                return None
            if entry.is_expired(self.ttl_seconds, self._clock()):
                del self._entries[full_key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        full_key = self._make_key(key)
        with self._lock:
            self._entries[full_key] = CacheEntry(value, self._clock(), ttl_seconds)
            self._entries.move_to_end(full_key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted cache entry {evicted}")

    async def get_or_fetch(
        self,
        key: str,
        fetch_fn: Callable[[], Awaitable[Any]],
        ttl_seconds: Optional[int] = None,
    ) -> Any:
        """
        Get cached value or fetch and cache it.

        Failures from ``fetch_fn`` propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await fetch_fn()
        if value is not None:
            self.set(key, value, ttl_seconds)
        return value

