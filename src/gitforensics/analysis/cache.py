"""In-memory cache shared by the analysis engines."""

import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 100

_MISSING = object()


class MemoizedCache:
    """Key/value store with per-entry time-to-live and LRU eviction.

    Engines key entries as ``"<engine>:<absolute path>"`` so namespaces never
    collide. Each analysis context owns (or is handed) one instance; there is no
    module-level singleton.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cache.

        Args:
            ttl_seconds: Default lifetime of an entry
            max_entries: Least recently used entries are evicted beyond this size
            clock: Monotonic time source, injectable for tests
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self._lock = threading.Lock()

        # Stats
        self.hits = 0
        self.misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        """Get a live entry.

        Args:
            key: Cache key
            default: Returned when the entry is absent or expired

        Returns:
            Cached value or ``default``
        """
        value = self._lookup(key)
        if value is _MISSING:
            self.misses += 1
            return default
        self.hits += 1
        return value

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value, overwriting any existing entry.

        Args:
            key: Cache key
            value: Value to store
            ttl: Lifetime in seconds, defaults to the cache TTL
        """
        lifetime = self.ttl_seconds if ttl is None else ttl
        with self._lock:
            self._entries[key] = (value, self._clock() + lifetime)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def has(self, key: str) -> bool:
        return self._lookup(key) is not _MISSING

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __len__(self) -> int:
        return len(self._entries)

    def invalidate(self, prefix: str) -> int:
        """Drop every entry whose key starts with ``prefix``.

        Returns:
            Number of entries removed
        """
        with self._lock:
            stale = [key for key in self._entries if key.startswith(prefix)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        """Drop all entries and reset statistics."""
        with self._lock:
            self._entries.clear()
        self.hits = 0
        self.misses = 0

    def get_stats(self) -> dict:
        """Get cache statistics.

        Returns:
            Dictionary with cache stats
        """
        total_requests = self.hits + self.misses
        hit_rate = (self.hits / total_requests * 100) if total_requests > 0 else 0.0

        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": f"{hit_rate:.1f}%",
            "entries": len(self._entries),
        }

    def _lookup(self, key: str) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return _MISSING
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return _MISSING
            self._entries.move_to_end(key)
            return value
