from __future__ import annotations

import logging

import pytest

from config import PerformanceConfig
from performance.manager import PerformanceManager
from performance.memory import MemoryMonitor


class StubMonitor(MemoryMonitor):
    """Reports a scripted memory usage and counts GC requests."""

    def __init__(self, usage=100, config=PerformanceConfig()):
        self.gc_requests = []
        super().__init__(config=config, gc_hook=lambda: None)
        self.usage = usage

    def get_current_usage(self):
        return self.usage

    def trigger_gc_if_needed(self, force=False):
        self.gc_requests.append(force)
        return super().trigger_gc_if_needed(force)


def test_monitor_operation_returns_result_and_records_metrics():
    monitor = StubMonitor()
    manager = PerformanceManager(memory_monitor=monitor)

    assert manager.monitor_operation("analyze", lambda: 42) == 42

    stats = manager.metrics.get_stats()
    assert stats["operations"] == {"analyze": 1}
    assert stats["processing"]["total_pages"] == 1
    assert [s.operation for s in monitor.get_samples()] == ["analyze_start", "analyze_end"]


def test_monitor_operation_passes_arguments_through():
    manager = PerformanceManager(memory_monitor=StubMonitor())
    assert manager.monitor_operation("sum", lambda a, b=0: a + b, 2, b=3) == 5


def test_memory_delta_is_accumulated():
    monitor = StubMonitor(usage=100)
    manager = PerformanceManager(memory_monitor=monitor)

    def grow():
        monitor.usage = 130
        return "done"

    manager.monitor_operation("grow", grow)
    assert manager.metrics.total_memory_usage == 30


def test_monitor_operation_rethrows_same_error(caplog):
    monitor = StubMonitor()
    manager = PerformanceManager(memory_monitor=monitor)
    error = ValueError("boom")

    def explode():
        raise error

    with caplog.at_level(logging.ERROR):
        with pytest.raises(ValueError) as excinfo:
            manager.monitor_operation("page", explode)

    assert excinfo.value is error
    assert manager.metrics.get_stats()["operations"] == {}
    assert manager.metrics.processed_count == 0
    assert [s.operation for s in monitor.get_samples()] == ["page_start"]
    assert "Error in page: boom" in caplog.text


def test_gc_considered_but_not_forced_after_each_operation():
    monitor = StubMonitor()
    manager = PerformanceManager(memory_monitor=monitor)

    manager.monitor_operation("a", lambda: None)
    manager.monitor_operation("b", lambda: None)

    assert monitor.gc_requests == [False, False]


def test_slow_operation_logs_warning(caplog):
    config = PerformanceConfig(slow_page_threshold_ms=-1)
    manager = PerformanceManager(config=config, memory_monitor=StubMonitor(config=config))

    with caplog.at_level(logging.WARNING):
        manager.monitor_operation("crawl", lambda: None)

    assert "Slow crawl" in caplog.text


def test_cached_counts_hits_and_misses():
    manager = PerformanceManager(memory_monitor=StubMonitor())
    calls = []

    def compute():
        calls.append(1)
        return ["https://example.com"]

    first = manager.cached("links_key", compute)
    second = manager.cached("links_key", compute)

    assert first is second
    assert len(calls) == 1
    assert manager.metrics.cache_hits == 1
    assert manager.metrics.cache_misses == 1
    assert manager.metrics.get_cache_hit_rate() == 50


def test_cache_size_from_constructor():
    manager = PerformanceManager(cache_size=5, memory_monitor=StubMonitor())
    assert manager.cache.max_size == 5
    assert PerformanceManager(memory_monitor=StubMonitor()).cache.max_size == 1000


def test_performance_report_sections():
    manager = PerformanceManager(cache_size=10, memory_monitor=StubMonitor(usage=64))
    manager.cache.set("k", "v")
    manager.monitor_operation("op", lambda: None)

    report = manager.get_performance_report()
    assert set(report) == {"metrics", "memory", "cache", "config"}
    assert report["cache"]["size"] == 1
    assert report["metrics"]["cache"]["size"] == 1
    assert report["memory"]["current"] == 64
    assert report["config"]["slow_page_threshold_ms"] == 10_000
    assert report["config"]["gc_trigger_threshold_mb"] == 500
    assert set(report["config"]) == {
        "analysis_cache_size",
        "cache_eviction_ratio",
        "memory_warning_threshold_mb",
        "slow_page_threshold_ms",
        "gc_trigger_threshold_mb",
        "memory_sample_window",
        "memory_trend_window",
        "memory_trend_delta_mb",
        "processing_time_window",
    }


def test_log_performance_summary(caplog):
    manager = PerformanceManager(memory_monitor=StubMonitor())
    manager.monitor_operation("op", lambda: None)

    with caplog.at_level(logging.INFO):
        manager.log_performance_summary()

    assert "Performance Summary" in caplog.text
    assert "Cache hit rate" in caplog.text


def test_cleanup_clears_cache_and_forces_gc():
    monitor = StubMonitor()
    manager = PerformanceManager(memory_monitor=monitor)
    manager.cache.set("k", "v")

    manager.cleanup()

    assert manager.cache.size == 0
    assert monitor.gc_requests == [True]


def test_managers_are_independent():
    first = PerformanceManager(memory_monitor=StubMonitor())
    second = PerformanceManager(memory_monitor=StubMonitor())
    first.cache.set("k", "v")
    first.monitor_operation("op", lambda: None)

    assert not second.cache.has("k")
    assert second.metrics.get_stats()["operations"] == {}
