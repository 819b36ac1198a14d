"""In-memory cache of visualization results keyed by input fingerprint."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from threading import Lock

from pydantic import BaseModel, Field

from unetvisualizer.core.constants import (
    BYTES_PER_MB,
    CACHE_EVICTION_TARGET_RATIO,
    DEFAULT_MAX_CACHE_MB,
)
from unetvisualizer.core.models import CacheStatistics, VisualizationResult

logger = logging.getLogger(__name__)


class CacheConfig(BaseModel):
    """Configuration for the result cache."""

    max_size_bytes: int = Field(
        default=DEFAULT_MAX_CACHE_MB * BYTES_PER_MB,
        ge=0,
        description="Approximate upper bound on cached bytes",
    )

    model_config = {
        "validate_assignment": True,
    }

    @classmethod
    def from_megabytes(cls, megabytes: float) -> CacheConfig:
        """Create a configuration from a size in megabytes."""
        return cls(max_size_bytes=int(megabytes * BYTES_PER_MB))


class CacheEntry:
    """Individual cache entry with access bookkeeping."""

    def __init__(self, value: VisualizationResult, created_at: float) -> None:
        self.value = value
        self.created_at = created_at
        self.last_accessed = created_at
        self.access_count = 0
        self.size_bytes = self._estimate_size(value)

    def touch(self, now: float) -> None:
        """Update access time and count."""
        self.last_accessed = now
        self.access_count += 1

    def eviction_rank(self) -> tuple[int, float]:
        """Fewest accesses first, then oldest access."""
        return (self.access_count, self.last_accessed)

    @staticmethod
    def _estimate_size(value: VisualizationResult) -> int:
        """RGBA pixel bytes plus the prediction's float footprint."""
        try:
            return value.estimated_nbytes()
        except (AttributeError, IndexError, TypeError, ValueError):
            logger.debug("Could not estimate cache entry size, assuming 0 bytes")
            return 0


class ResultCache:
    """Thread-safe, size-bounded cache with frequency-weighted LRU eviction.

    When the estimated total exceeds ``max_size`` the entries with the lowest
    ``(access_count, last_accessed)`` are evicted until the total is at most
    90% of ``max_size``.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._cache: dict[str, CacheEntry] = {}
        self._lock = Lock()
        self._current_size = 0
        self._hit_count = 0
        self._miss_count = 0

    @property
    def max_size(self) -> int:
        """Maximum total estimated size in bytes."""
        return self.config.max_size_bytes

    @max_size.setter
    def max_size(self, value: int) -> None:
        with self._lock:
            self.config.max_size_bytes = value
            self._evict_if_needed()

    def get(self, key: str) -> VisualizationResult | None:
        """Retrieve a result, updating its access bookkeeping."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._miss_count += 1
                logger.debug("Cache miss: %s", key)
                return None

            entry.touch(self._clock())
            self._hit_count += 1
            logger.debug("Cache hit: %s (accesses: %s)", key, entry.access_count)
            return entry.value

    def set(self, key: str, value: VisualizationResult) -> None:
        """Insert or replace a result, evicting if the cache grows too large."""
        entry = CacheEntry(value, self._clock())

        with self._lock:
            existing = self._cache.pop(key, None)
            if existing is not None:
                self._current_size -= existing.size_bytes

            self._cache[key] = entry
            self._current_size += entry.size_bytes
            logger.debug("Cache set: %s (size: %s bytes)", key, entry.size_bytes)

            self._evict_if_needed()

    def delete(self, key: str) -> bool:
        """Remove a specific cache entry."""
        with self._lock:
            entry = self._cache.pop(key, None)
            if entry is None:
                return False
            self._current_size -= entry.size_bytes
            logger.debug("Cache entry deleted: %s", key)
            return True

    def contains(self, key: str) -> bool:
        """Check for a key without touching access bookkeeping or counters."""
        with self._lock:
            return key in self._cache

    def clear(self) -> int:
        """Clear all entries and reset hit/miss counters."""
        with self._lock:
            cleared_count = len(self._cache)
            self._cache.clear()
            self._current_size = 0
            self._hit_count = 0
            self._miss_count = 0

        logger.info("Cache cleared: %s entries", cleared_count)
        return cleared_count

    def statistics(self) -> CacheStatistics:
        """Get cache statistics."""
        with self._lock:
            lookups = self._hit_count + self._miss_count
            return CacheStatistics(
                entry_count=len(self._cache),
                total_size=self._current_size,
                hit_count=self._hit_count,
                miss_count=self._miss_count,
                hit_rate=self._hit_count / max(1, lookups),
            )

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _evict_if_needed(self) -> None:
        """Evict lowest-ranked entries; caller must hold the lock."""
        if self._current_size <= self.config.max_size_bytes:
            return

        target = self.config.max_size_bytes * CACHE_EVICTION_TARGET_RATIO
        # sorted() is stable, so equal ranks evict in insertion order
        candidates = sorted(self._cache.items(), key=lambda item: item[1].eviction_rank())

        evicted = 0
        for key, entry in candidates:
            del self._cache[key]
            self._current_size -= entry.size_bytes
            evicted += 1
            logger.debug(
                "Evicted %s (accesses: %s, size: %s bytes)",
                key,
                entry.access_count,
                entry.size_bytes,
            )
            if self._current_size <= target:
                break

        logger.debug(
            "Eviction removed %s entries, %s bytes remain", evicted, self._current_size
        )
