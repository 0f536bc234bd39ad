"""
Counters and timers for the analysis pipeline: cache hit rate,
per-page processing time, memory deltas and operation counts.
"""
from __future__ import annotations

import threading
import time
from collections import deque
from typing import Any, Optional

from config import PERFORMANCE_CONFIG
from performance.cache import AnalysisCache, cache_stats_or_empty


class PerformanceMetrics:
    def __init__(self, processing_time_window: int = PERFORMANCE_CONFIG.processing_time_window):
        self.processing_time_window = processing_time_window
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.total_memory_usage = 0.0
            self.avg_processing_time = 0.0
            self.processed_count = 0
            self.cache_hits = 0
            self.cache_misses = 0
            self.page_processing_times: deque[float] = deque(maxlen=self.processing_time_window)
            self.operation_counts: dict[str, int] = {}
            self.start_time = time.time()

    def record_cache_hit(self) -> None:
        with self._lock:
            self.cache_hits += 1

    def record_cache_miss(self) -> None:
        with self._lock:
            self.cache_misses += 1

    def record_page_processing_time(self, time_ms: float) -> None:
        # True running mean over every sample ever recorded, not just the
        # retained window; the window only bounds slowest/fastest.
        with self._lock:
            self.page_processing_times.append(time_ms)
            self.processed_count += 1
            self.avg_processing_time += (time_ms - self.avg_processing_time) / self.processed_count

    def record_operation(self, operation: str) -> None:
        with self._lock:
            self.operation_counts[operation] = self.operation_counts.get(operation, 0) + 1

    def add_memory_usage(self, memory_mb: float) -> None:
        with self._lock:
            self.total_memory_usage += memory_mb

    def get_cache_hit_rate(self) -> int:
        total = self.cache_hits + self.cache_misses
        return round(self.cache_hits / total * 100) if total else 0

    def get_stats(self, cache: Optional[AnalysisCache] = None) -> dict[str, Any]:
        runtime_ms = (time.time() - self.start_time) * 1000
        with self._lock:
            times = list(self.page_processing_times)
            processed = self.processed_count
            return {
                "runtime": {
                    "total_ms": round(runtime_ms),
                    "total_seconds": round(runtime_ms / 1000),
                    "total_minutes": round(runtime_ms / 60_000),
                },
                "processing": {
                    "avg_processing_time": round(self.avg_processing_time),
                    "total_pages": processed,
                    "slowest_page": max(times) if times else 0,
                    "fastest_page": min(times) if times else 0,
                },
                "cache": {
                    "hits": self.cache_hits,
                    "misses": self.cache_misses,
                    "hit_rate": self.get_cache_hit_rate(),
                    **cache_stats_or_empty(cache),
                },
                "memory": {
                    "total_usage": round(self.total_memory_usage),
                    "avg_per_page": round(self.total_memory_usage / processed) if processed else 0,
                },
                "operations": dict(self.operation_counts),
            }
