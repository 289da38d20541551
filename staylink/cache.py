"""An in-memory hotel availability cache with per-entry time to live."""

from __future__ import annotations

import enum
import heapq
import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

_INSTANT_SIZE = 16
_SIZE_DIVISOR = 2 * 1024


@dataclass
class CacheStats:
    """Counters describing the cache's contents and traffic."""

    size_bytes: int = 0
    items_count: int = 0
    hit_count: int = 0
    miss_count: int = 0
    eviction_count: int = 0
    expired_count: int = 0
    rejected_count: int = 0
    average_lookup_time_ns: int = 0
    total_lookups: int = 0


@dataclass
class CacheConfig:
    """Cache configuration."""

    max_size_mb: int = 100
    default_ttl_seconds: float = 300
    cleanup_interval_seconds: float = 60
    shards_count: int = 16


class EvictionPolicy(enum.Enum):
    """Policies for choosing which entry to drop when space runs out."""

    LEAST_RECENTLY_USED = "lru"
    LEAST_FREQUENTLY_USED = "lfu"
    TIME_TO_LIVE = "ttl"


def create_cache_key(hotel_id: str, check_in: str, check_out: str) -> str:
    """Join a hotel id and its dates into one cache key."""
    return f"{hotel_id}:{check_in}:{check_out}"


def calculate_item_size(key: str, data: bytes) -> int:
    """Estimated number of bytes an entry takes up."""
    return len(key) + len(data) + _INSTANT_SIZE


@dataclass
class _Entry:
    value: bytes
    expires_at: float


class TtlCache:
    """A thread-safe cache whose entries expire after their time to live.

    ``clock`` returns the current wall-clock time in seconds.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config if config is not None else CacheConfig()
        self._clock = clock
        self._lock = threading.RLock()
        self._store: dict[str, _Entry] = {}
        self._expiries: dict[float, set[str]] = {}
        self._heap: list[float] = []
        self._stats = CacheStats()

    def _is_alive(self, expires_at: float) -> bool:
        return int(self._clock()) < int(expires_at)

    def _record_lookup_time(self, elapsed_ns: int) -> None:
        n = self._stats.total_lookups
        avg = self._stats.average_lookup_time_ns
        self._stats.average_lookup_time_ns = (avg * n + elapsed_ns) // n

    def _remove_oldest(self) -> bool:
        """Drop every entry in the earliest expiry bucket; False if none left."""
        if not self._heap:
            return False
        expiry = heapq.heappop(self._heap)
        for key in self._expiries.pop(expiry, set()):
            self._stats.expired_count += 1
            entry = self._store.pop(key, None)
            if entry is not None:
                self._stats.size_bytes -= calculate_item_size(key, entry.value)
        return True

    def _cleanup(self) -> None:
        while self._heap and self._heap[0] < self._clock():
            self._remove_oldest()

    def store(
        self,
        hotel_id: str,
        check_in: str,
        check_out: str,
        data: bytes,
        ttl: float | None = None,
    ) -> bool:
        """Store availability data; False if the cache is too full to accept it.

        ``ttl`` is in seconds; None uses the configured default. Storing under
        an existing key replaces the data but keeps the original expiry.
        """
        data = bytes(data)
        key = create_cache_key(hotel_id, check_in, check_out)
        with self._lock:
            current_size = calculate_item_size(key, data) * len(self._store)
            self._stats.total_lookups += 1
            if self.config.max_size_mb <= current_size // _SIZE_DIVISOR:
                return False

            existing = self._store.get(key)
            if existing is not None:
                existing.value = data
                return True

            lifetime = ttl if ttl is not None else self.config.default_ttl_seconds
            expires_at = self._clock() + lifetime
            self._stats.items_count += 1
            self._stats.size_bytes += calculate_item_size(key, data)
            self._store[key] = _Entry(value=data, expires_at=expires_at)
            bucket = self._expiries.get(expires_at)
            if bucket is None:
                self._expiries[expires_at] = {key}
                heapq.heappush(self._heap, expires_at)
            else:
                bucket.add(key)
            return True

    def get(
        self, hotel_id: str, check_in: str, check_out: str
    ) -> tuple[bytes, bool] | None:
        """Return the stored data and whether it is still alive, or None."""
        with self._lock:
            self._cleanup()
            self._stats.total_lookups += 1
            key = create_cache_key(hotel_id, check_in, check_out)
            start = self._clock()
            entry = self._store.get(key)
            if entry is None:
                self._stats.miss_count += 1
                return None
            end = self._clock()
            self._stats.hit_count += 1
            self._record_lookup_time(max(0, int(round((end - start) * 1e9))))
            return entry.value, self._is_alive(entry.expires_at)

    def stats(self) -> CacheStats:
        """A snapshot of the cache statistics."""
        with self._lock:
            return replace(self._stats)

    def invalidate(
        self,
        hotel_id: str | None = None,
        check_in: str | None = None,
        check_out: str | None = None,
    ) -> int:
        """Remove entries matching the given parts of the key; return how many."""
        pattern = create_cache_key(hotel_id or "", check_in or "", check_out or "")

        def matches(key: str) -> bool:
            if hotel_id is None:
                if check_in is None:
                    return check_out is not None and key.endswith(check_out)
                if check_out is None:
                    return check_in in key
                return key.endswith(pattern)
            if check_in is None:
                if check_out is None:
                    return key.startswith(hotel_id)
                return key.startswith(hotel_id) and key.endswith(check_out)
            if check_out is None:
                return key.startswith(pattern)
            return key == pattern

        with self._lock:
            doomed = [key for key in self._store if matches(key)]
            for key in doomed:
                del self._store[key]
            return len(doomed)

    def resize(self, new_max_size_mb: int) -> bool:
        """Drop the earliest-expiring entries until the size fits the new limit."""
        with self._lock:
            while self._stats.size_bytes // _SIZE_DIVISOR > new_max_size_mb:
                if not self._remove_oldest():
                    break
            return True