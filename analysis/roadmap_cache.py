"""
Time-expiring memoization in front of the roadmap engine.
The engine is deterministic in its inputs, so a parameter tuple is a safe key.
"""

import logging
import os
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from dotenv import load_dotenv

from analysis.roadmap import (
    DEFAULT_MAX_SHIFT_MONTHS,
    DEFAULT_WINDOW_MONTHS,
    PointsFetcher,
    RoadmapResult,
    compute_roadmap,
)

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0


def get_cache_ttl() -> float:
    """Cache TTL from ROADMAP_CACHE_TTL_SECONDS (default 300)."""
    return float(os.getenv('ROADMAP_CACHE_TTL_SECONDS', str(DEFAULT_TTL_SECONDS)))


class RoadmapCache:
    """
    Thread-safe TTL cache keyed by request tuples.

    The first element of every key is the metric name, which is what
    clear_metric() matches on. Computation runs outside the lock; two threads
    missing the same key may both compute, and the later write wins.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = get_cache_ttl() if ttl_seconds is None else float(ttl_seconds)
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: Hashable) -> Optional[Any]:
        """Return a fresh cached value or None. Expired entries are evicted."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """
        Return the cached value for key, computing and storing it on a miss.
        Exceptions from compute propagate and nothing is stored.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("Roadmap cache hit: %s", key)
            return cached

        value = compute()
        self.set(key, value)
        return value

    def clear(self) -> int:
        """Drop every entry. Returns the number removed."""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info("Roadmap cache cleared (%d entries)", count)
        return count

    def clear_metric(self, metric: str) -> int:
        """Drop entries whose key starts with metric. Returns the number removed."""
        with self._lock:
            keys = [
                k for k in self._entries
                if isinstance(k, tuple) and k and k[0] == metric
            ]
            for k in keys:
                del self._entries[k]
        logger.info("Cleared %d roadmap cache entries for metric: %s", len(keys), metric)
        return len(keys)


_default_cache: Optional[RoadmapCache] = None
_default_cache_lock = threading.Lock()


def get_default_cache() -> RoadmapCache:
    """Process-wide cache, created on first use."""
    global _default_cache
    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = RoadmapCache()
        return _default_cache


def get_roadmap(
    fetch_points: PointsFetcher,
    metric: str,
    crisis_id: str,
    window_months: int = DEFAULT_WINDOW_MONTHS,
    max_shift_months: int = DEFAULT_MAX_SHIFT_MONTHS,
    cache: Optional[RoadmapCache] = None,
    clear_cache: bool = False
) -> RoadmapResult:
    """
    Cached roadmap computation.

    Args:
        fetch_points: Series lookup passed through to the assembler
        metric: 'price' or 'pe'
        crisis_id: Catalog identifier
        window_months: Window length in months
        max_shift_months: Carried into metadata and the cache key
        cache: Cache to use (defaults to the process-wide cache)
        clear_cache: Evict entries for this metric before computing

    Returns:
        RoadmapResult, possibly from cache
    """
    if cache is None:
        cache = get_default_cache()

    if clear_cache:
        cache.clear_metric(metric)

    key = (metric, str(crisis_id), window_months, max_shift_months)
    return cache.get_or_compute(
        key,
        lambda: compute_roadmap(fetch_points, metric, crisis_id, window_months, max_shift_months)
    )
