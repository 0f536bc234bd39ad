"""
Fixed-capacity analysis result cache with batched least-recently-used eviction,
plus the cheap key builders callers use to address it.
"""
from __future__ import annotations

import math
import threading
from typing import Any, Hashable, Optional

from config import PERFORMANCE_CONFIG
from logging_config import get_logger

logger = get_logger(__name__)


class AnalysisCache:
    """
    key → value store bounded at `max_size` entries.

    Every get/set stamps the key with a fresh value of a global access
    counter. When a set arrives while the cache is full, the
    `eviction_ratio` share of keys with the lowest stamps (at least one)
    is dropped in a single pass.
    """

    def __init__(
        self,
        max_size: int = PERFORMANCE_CONFIG.analysis_cache_size,
        eviction_ratio: float = PERFORMANCE_CONFIG.cache_eviction_ratio,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        if not 0 < eviction_ratio <= 1:
            raise ValueError("eviction_ratio must be in (0, 1]")

        self.max_size = max_size
        self.eviction_ratio = eviction_ratio
        self._cache: dict[Hashable, Any] = {}
        self._access_order: dict[Hashable, int] = {}
        self._access_counter = 0
        self.evictions = 0
        self._lock = threading.RLock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            if key not in self._cache:
                return default
            self._access_counter += 1
            self._access_order[key] = self._access_counter
            return self._cache[key]

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            if len(self._cache) >= self.max_size:
                self._evict_lru()
            self._cache[key] = value
            self._access_counter += 1
            self._access_order[key] = self._access_counter

    def has(self, key: Hashable) -> bool:
        """Membership only; access order is left untouched."""
        return key in self._cache

    __contains__ = has

    @property
    def size(self) -> int:
        return len(self._cache)

    def __len__(self) -> int:
        return len(self._cache)

    @property
    def access_count(self) -> int:
        return self._access_counter

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
            self._access_order.clear()
            self._access_counter = 0

    def _evict_lru(self) -> None:
        n = max(1, math.floor(self.max_size * self.eviction_ratio))
        oldest = sorted(self._access_order.items(), key=lambda kv: kv[1])[:n]
        for key, _ in oldest:
            del self._cache[key]
            del self._access_order[key]
        self.evictions += len(oldest)
        logger.debug(f"Evicted {len(oldest)} cache entries ({len(self._cache)}/{self.max_size} left)")

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            return {
                "size": len(self._cache),
                "max_size": self.max_size,
                "utilization": round(len(self._cache) / self.max_size * 100),
                "access_count": self._access_counter,
                "evictions": self.evictions,
            }


# ── Key generation ────────────────────────────────────────────────────────────

def generate_cache_key(operation: str, content: str) -> str:
    """
    Fast, non-cryptographic fingerprint of `content`: its length plus the
    first and last 100 characters. Distinct contents can collide; swap in a
    real hash behind this signature if that ever matters.
    """
    fingerprint = f"{len(content)}{content[:100]}{content[-100:]}"
    return f"{operation}_{len(fingerprint)}_{ord(fingerprint[0])}_{ord(fingerprint[-1])}"


def generate_url_cache_key(operation: str, url: str) -> str:
    return f"{operation}_{len(url)}_{url[-50:]}"


def cache_stats_or_empty(cache: Optional[AnalysisCache]) -> dict[str, Any]:
    if cache is None:
        return {"size": 0, "utilization": 0}
    stats = cache.get_stats()
    return {"size": stats["size"], "utilization": stats["utilization"]}
