"""
Facade tying the analysis cache, memory monitor and metrics together.
Crawl drivers wrap each expensive unit of work in `monitor_operation`.
"""
from __future__ import annotations

import time
from dataclasses import asdict
from typing import Any, Callable, Optional, TypeVar

from config import PERFORMANCE_CONFIG, PerformanceConfig
from logging_config import get_logger
from performance.cache import AnalysisCache
from performance.memory import MemoryMonitor
from performance.metrics import PerformanceMetrics

logger = get_logger(__name__)

T = TypeVar("T")

_MISSING = object()


class PerformanceManager:
    """
    Owns one cache, one memory monitor and one metrics tracker. Instances
    are independent; nothing is shared between two managers.
    """

    def __init__(
        self,
        cache_size: Optional[int] = None,
        config: PerformanceConfig = PERFORMANCE_CONFIG,
        memory_monitor: Optional[MemoryMonitor] = None,
    ):
        self.config = config
        self.cache = AnalysisCache(
            cache_size if cache_size is not None else config.analysis_cache_size,
            config.cache_eviction_ratio,
        )
        self.memory_monitor = memory_monitor or MemoryMonitor(config)
        self.metrics = PerformanceMetrics(config.processing_time_window)

    def monitor_operation(self, operation: str, fn: Callable[..., T], *args, **kwargs) -> T:
        """
        Run `fn`, recording duration and memory delta into the metrics.

        Slow runs are logged, and GC is considered (not forced) after every
        successful run. If `fn` raises, the error is logged and re-raised
        untouched; nothing is recorded for that run beyond its start sample.
        """
        start = time.perf_counter()
        start_memory = self.memory_monitor.record_measurement(f"{operation}_start")

        try:
            result = fn(*args, **kwargs)
        except Exception as exc:
            logger.error(f"Error in {operation}: {exc}")
            raise

        duration = (time.perf_counter() - start) * 1000
        end_memory = self.memory_monitor.record_measurement(f"{operation}_end")
        memory_delta = end_memory - start_memory

        self.metrics.record_page_processing_time(duration)
        self.metrics.add_memory_usage(memory_delta)
        self.metrics.record_operation(operation)

        if duration > self.config.slow_page_threshold_ms:
            logger.warning(f"Slow {operation}: {duration:.0f}ms, Memory: {memory_delta}MB")

        self.memory_monitor.trigger_gc_if_needed()
        return result

    def cached(self, key: str, compute: Callable[[], T]) -> T:
        """
        Return the cached value for `key`, or compute, store and return it.
        Hits and misses are counted. Build keys with generate_cache_key or
        generate_url_cache_key.
        """
        value = self.cache.get(key, _MISSING)
        if value is not _MISSING:
            self.metrics.record_cache_hit()
            return value

        self.metrics.record_cache_miss()
        value = compute()
        self.cache.set(key, value)
        return value

    def get_performance_report(self) -> dict[str, Any]:
        return {
            "metrics": self.metrics.get_stats(self.cache),
            "memory": self.memory_monitor.get_stats(),
            "cache": self.cache.get_stats(),
            "config": asdict(self.config),
        }

    def log_performance_summary(self) -> None:
        report = self.get_performance_report()
        metrics, memory, cache = report["metrics"], report["memory"], report["cache"]

        logger.info("Performance Summary:")
        logger.info(f"  • Average processing time: {metrics['processing']['avg_processing_time']}ms per page")
        logger.info(
            f"  • Cache hit rate: {metrics['cache']['hit_rate']}% "
            f"({metrics['cache']['hits']} hits, {metrics['cache']['misses']} misses)"
        )
        logger.info(
            f"  • Memory usage: Current {memory['current']}MB, Peak {memory['peak']}MB ({memory['trend']})"
        )
        logger.info(
            f"  • Cache utilization: {cache['utilization']}% ({cache['size']}/{cache['max_size']} entries)"
        )
        logger.info(f"  • Total runtime: {metrics['runtime']['total_minutes']} minutes")

        if self.memory_monitor.is_above_threshold():
            logger.warning(
                f"Memory usage above {self.config.memory_warning_threshold_mb}MB warning threshold"
            )

    def cleanup(self) -> None:
        self.cache.clear()
        self.memory_monitor.trigger_gc_if_needed(force=True)
