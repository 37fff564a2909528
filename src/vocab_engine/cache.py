"""
Bounded memoization tables for the expensive pure computations.

A BoundedCache holds at most `capacity` entries.  When an insert finds the
table full it drops the oldest-inserted half in one pass instead of one
entry per insert, so eviction cost is paid rarely and in bulk.

CacheSet groups the three tables the engine uses (stems, keywords,
similarity) so they can be shrunk or cleared together under memory
pressure.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Generic, Hashable, TypeVar


LOGGER = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

KeywordKey = tuple[str, int, int]  # (text prefix, text hash, limit)
KEYWORD_PREFIX_LENGTH = 100


@dataclass(slots=True)
class CacheStats:
    name: str
    size: int
    capacity: int
    hits: int
    misses: int
    evictions: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class BoundedCache(Generic[K, V]):
    """Insertion-ordered map with batch eviction of the oldest half."""

    def __init__(self, name: str, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"cache capacity must be positive, got {capacity}")
        self.name = name
        self.capacity = capacity
        self._data: dict[K, V] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: K) -> V | None:
        with self._lock:
            value = self._data.get(key)
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
            return value

    def put(self, key: K, value: V) -> None:
        with self._lock:
            if key not in self._data and len(self._data) >= self.capacity:
                self._evict_oldest(len(self._data) - self.capacity // 2)
            self._data[key] = value

    def _evict_oldest(self, count: int) -> None:
        # dicts iterate in insertion order, so the first keys are the oldest
        if count <= 0:
            return
        for key in list(self._data)[:count]:
            del self._data[key]
        self.evictions += count
        LOGGER.debug("%s cache: evicted %d entries", self.name, count)

    def shrink(self, capacity: int) -> None:
        """Lower the capacity, dropping the oldest entries that no longer fit."""
        with self._lock:
            self.capacity = max(1, capacity)
            self._evict_oldest(len(self._data) - self.capacity)

    def grow(self, capacity: int) -> None:
        with self._lock:
            self.capacity = max(self.capacity, capacity)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                name=self.name,
                size=len(self._data),
                capacity=self.capacity,
                hits=self.hits,
                misses=self.misses,
                evictions=self.evictions,
            )


def keyword_key(text: str, limit: int) -> KeywordKey:
    """Cache key for a keyword extraction: text prefix plus a full-text hash."""
    return (text[:KEYWORD_PREFIX_LENGTH], hash(text), limit)


class CacheSet:
    """The stem, keyword and similarity caches, managed as one unit."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        self.capacity = capacity
        self.stems: BoundedCache[str, str] = BoundedCache("stem", capacity)
        self.keywords: BoundedCache[KeywordKey, tuple[str, ...]] = BoundedCache("keyword", capacity)
        self.similarity: BoundedCache[tuple[str, str], float] = BoundedCache("similarity", capacity)
        self.low_memory = False

    def tables(self) -> tuple[BoundedCache, ...]:
        return (self.stems, self.keywords, self.similarity)

    def clear(self) -> None:
        for table in self.tables():
            table.clear()

    def reduce_size(self) -> None:
        """Memory-pressure response: clear every table and halve its capacity."""
        for table in self.tables():
            table.clear()
            table.shrink(self.capacity // 2)
        self.low_memory = True
        LOGGER.info("Caches cleared and reduced to %d entries each", max(1, self.capacity // 2))

    def reserve_similarity(self, pairs: int) -> None:
        """Grow the similarity table so one fuzzy scan of `pairs` keys fits.

        Never shrinks it, and does nothing in low-memory mode.
        """
        if self.low_memory or pairs <= self.similarity.capacity:
            return
        self.similarity.grow(pairs)
        LOGGER.debug("similarity cache: capacity raised to %d", pairs)

    def restore_size(self) -> None:
        for table in self.tables():
            table.capacity = self.capacity
        self.low_memory = False

    def stats(self) -> list[CacheStats]:
        return [table.stats() for table in self.tables()]

    def summary(self) -> str:
        lines = ["Caches" + (" (low-memory mode)" if self.low_memory else "")]
        for s in self.stats():
            lines.append(
                f"  {s.name:11s} {s.size:6d}/{s.capacity:<6d} "
                f"hit rate {s.hit_rate:6.1%}  evicted {s.evictions}"
            )
        return "\n".join(lines)
