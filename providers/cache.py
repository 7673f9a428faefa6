"""
Thread-safe bounded response cache with TTL and LRU eviction.

Avoids redundant provider calls: every data source stores its responses
here under a namespaced key. Entries expire after a per-entry TTL and the
store never holds more than `capacity` entries. When full, the least
recently *read* entry is evicted (reads refresh recency, so this is true
LRU rather than insertion-order FIFO).

Thread-safe. No external dependencies beyond loguru.
"""
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Optional

from loguru import logger


def _normalize_param(value: Any) -> str:
    """Render one key parameter in canonical form."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(sorted(_normalize_param(v) for v in value))
    if isinstance(value, dict):
        return ",".join(sorted(
            f"{_normalize_param(k)}={_normalize_param(v)}" for k, v in value.items()
        ))
    return " ".join(str(value).split()).casefold()


def make_cache_key(namespace: str, *params: Any) -> str:
    """Build a stable cache key: "<namespace>:<p1>:<p2>:...".

    Strings are case-folded with whitespace trimmed and collapsed, list-valued
    parameters are sorted, so semantically identical queries collide while the
    namespace keeps different data-source types apart.
    """
    return ":".join([namespace.strip().lower()] + [_normalize_param(p) for p in params])


@dataclass
class CacheEntry:
    """Single cached response."""
    value: Any
    stored_at: float            # clock() at insertion
    ttl_seconds: float
    last_accessed_at: float     # clock() at insertion or last successful get

    def is_live(self, now: float) -> bool:
        return now < self.stored_at + self.ttl_seconds

    def age_seconds(self, now: float) -> float:
        return now - self.stored_at


class CacheStore:
    """Bounded TTL + LRU cache for provider responses. Thread-safe.

    Usage:
        cache = CacheStore(capacity=100, default_ttl_seconds=21600)

        key = make_cache_key("currency", "usd", "eur")
        cached = cache.get(key)
        if cached is not None:
            return cached

        result = api.fetch(...)
        cache.set(key, result, ttl_seconds=3600)

    One instance lives for the whole process; it is created by bootstrap and
    passed to every component that needs it. Expired entries are removed
    lazily on read and in bulk by cleanup_expired(), which the process
    scheduler calls periodically.

    Entries are kept in an OrderedDict ordered by last access: the first item
    is always the eviction victim, and ties resolve to insertion order.
    """

    def __init__(self, capacity: int = 100, default_ttl_seconds: float = 21600,
                 clock: Callable[[], float] = time.monotonic):
        if capacity < 1:
            raise ValueError(f"Cache capacity must be >= 1, got {capacity}")
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()
        self._capacity = capacity
        self._default_ttl = default_ttl_seconds
        self._clock = clock

        # Stats
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def size(self) -> int:
        return len(self)

    def get(self, key: str) -> Optional[Any]:
        """Get cached value or None if expired/missing. A hit refreshes recency."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if not entry.is_live(now):
                del self._entries[key]
                self._misses += 1
                return None
            entry.last_accessed_at = now
            self._entries.move_to_end(key)
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Insert or overwrite. May evict the least recently used entry."""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds

        with self._lock:
            now = self._clock()
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self._capacity:
                # Expired entries are already dead; drop them before touching live ones
                self._purge_expired(now)
                if len(self._entries) >= self._capacity:
                    self._evict_lru()

            self._entries[key] = CacheEntry(
                value=value,
                stored_at=now,
                ttl_seconds=ttl,
                last_accessed_at=now,
            )

    def has(self, key: str) -> bool:
        """True if a live entry exists. Does not refresh recency."""
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry.is_live(self._clock())

    def is_expired(self, key: str) -> bool:
        """True if no live entry exists for key. Does not refresh recency."""
        return not self.has(key)

    def clear(self, key: Optional[str] = None) -> int:
        """Remove one entry, or all entries when key is None. Returns count removed."""
        with self._lock:
            if key is None:
                count = len(self._entries)
                self._entries.clear()
                logger.debug(f"Cache cleared: {count} entries removed")
                return count
            if self._entries.pop(key, None) is None:
                return 0
            return 1

    def cleanup_expired(self) -> int:
        """Remove every expired entry. Returns count removed."""
        with self._lock:
            removed = self._purge_expired(self._clock())
        if removed:
            logger.info(f"Cache cleanup: removed {removed} expired entries")
        return removed

    def keys(self) -> Iterable[str]:
        """Snapshot of keys, least recently used first."""
        with self._lock:
            return list(self._entries.keys())

    def _purge_expired(self, now: float) -> int:
        """Remove all expired entries. Caller must hold lock."""
        expired = [k for k, v in self._entries.items() if not v.is_live(now)]
        for k in expired:
            del self._entries[k]
        return len(expired)

    def _evict_lru(self) -> None:
        """Remove the least recently used entry. Caller must hold lock."""
        key, _ = self._entries.popitem(last=False)
        self._evictions += 1
        logger.debug(f"Cache full ({self._capacity}): evicted '{key}'")

    def stats(self) -> Dict[str, Any]:
        """Cache statistics for reporting."""
        with self._lock:
            total = self._hits + self._misses
            by_namespace: Dict[str, int] = {}
            for key in self._entries:
                namespace = key.split(":", 1)[0]
                by_namespace[namespace] = by_namespace.get(namespace, 0) + 1

            return {
                "size": len(self._entries),
                "capacity": self._capacity,
                "hits": self._hits,
                "misses": self._misses,
                "evictions": self._evictions,
                "hit_rate": (self._hits / total * 100) if total > 0 else 0.0,
                "by_namespace": by_namespace,
            }

    def format_stats_report(self) -> str:
        """Format cache stats for the health report."""
        s = self.stats()
        return (
            f"  Cache:     {s['hit_rate']:.0f}% hit rate "
            f"({s['size']}/{s['capacity']} entries, saved ~{s['hits']} provider calls)"
        )
