"""
Process memory sampling with a bounded history, trend detection and
threshold-driven garbage collection.
"""
from __future__ import annotations

import gc
import threading
import time
from collections import deque
from statistics import mean
from typing import Any, Callable, Optional

import psutil

from config import PERFORMANCE_CONFIG, PerformanceConfig
from logging_config import get_logger
from models import MemorySample

logger = get_logger(__name__)


class MemoryMonitor:
    """
    Samples are tagged with the operation that produced them so peaks and
    trends can be traced back to specific pages or batches.

    `gc_hook` is whatever "collect now" capability the runtime offers;
    pass None to make GC requests a no-op.
    """

    def __init__(
        self,
        config: PerformanceConfig = PERFORMANCE_CONFIG,
        gc_hook: Optional[Callable[[], Any]] = gc.collect,
    ):
        self.config = config
        self.gc_hook = gc_hook
        self._measurements: deque[MemorySample] = deque(maxlen=config.memory_sample_window)
        self._lock = threading.Lock()

    def get_current_usage(self) -> float:
        """Resident memory of this process in whole MB, 0 when unavailable."""
        try:
            rss = psutil.Process().memory_info().rss
        except psutil.Error:
            return 0
        return round(rss / 1024 / 1024)

    def record_measurement(self, operation: str) -> float:
        usage = self.get_current_usage()
        with self._lock:
            self._measurements.append(MemorySample(
                operation=operation,
                usage=usage,
                timestamp=int(time.time() * 1000),
            ))
        return usage

    def get_samples(self) -> list[MemorySample]:
        with self._lock:
            return list(self._measurements)

    def is_above_threshold(self, threshold: Optional[float] = None) -> bool:
        if threshold is None:
            threshold = self.config.memory_warning_threshold_mb
        return self.get_current_usage() > threshold

    def get_stats(self) -> dict[str, Any]:
        current = self.get_current_usage()
        samples = self.get_samples()
        if not samples:
            return {
                "current": current,
                "average": 0,
                "peak": 0,
                "measurements": 0,
                "trend": "insufficient_data",
            }

        usages = [s.usage for s in samples]
        return {
            "current": current,
            "average": round(mean(usages)),
            "peak": max(usages),
            "measurements": len(samples),
            "trend": self._trend(usages),
        }

    def _trend(self, usages: list[float]) -> str:
        window = self.config.memory_trend_window
        if len(usages) < window:
            return "insufficient_data"

        recent = usages[-window:]
        older = usages[-2 * window:-window]
        if not older:
            return "stable"

        change = mean(recent) - mean(older)
        if change > self.config.memory_trend_delta_mb:
            return "increasing"
        if change < -self.config.memory_trend_delta_mb:
            return "decreasing"
        return "stable"

    def trigger_gc_if_needed(self, force: bool = False) -> bool:
        """
        Collect when forced or above the GC threshold, if a hook is available.
        Returns True only when a collection actually ran.
        """
        if self.gc_hook is None:
            return False

        current = self.get_current_usage()
        if not force and current <= self.config.gc_trigger_threshold_mb:
            return False

        logger.info(f"Triggering garbage collection (Memory: {current}MB)")
        self.gc_hook()
        return True
