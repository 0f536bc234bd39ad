from __future__ import annotations

from performance.cache import AnalysisCache
from performance.metrics import PerformanceMetrics


def test_cache_hit_rate():
    metrics = PerformanceMetrics()
    for _ in range(3):
        metrics.record_cache_hit()
    metrics.record_cache_miss()
    assert metrics.get_cache_hit_rate() == 75


def test_cache_hit_rate_without_lookups_is_zero():
    assert PerformanceMetrics().get_cache_hit_rate() == 0


def test_average_processing_time_is_true_mean():
    metrics = PerformanceMetrics()
    for ms in (100, 200, 600):
        metrics.record_page_processing_time(ms)
    assert metrics.avg_processing_time == 300


def test_processing_time_window_is_fifo_bounded():
    metrics = PerformanceMetrics(processing_time_window=3)
    for ms in (900, 10, 20, 30, 40):
        metrics.record_page_processing_time(ms)

    stats = metrics.get_stats()["processing"]
    assert list(metrics.page_processing_times) == [20, 30, 40]
    assert stats["slowest_page"] == 40
    assert stats["fastest_page"] == 20
    assert stats["total_pages"] == 5
    assert stats["avg_processing_time"] == 200


def test_operation_counts_and_memory_totals():
    metrics = PerformanceMetrics()
    metrics.record_operation("page")
    metrics.record_operation("page")
    metrics.record_operation("links")
    metrics.record_page_processing_time(10)
    metrics.record_page_processing_time(10)
    metrics.add_memory_usage(6)
    metrics.add_memory_usage(-2)

    stats = metrics.get_stats()
    assert stats["operations"] == {"page": 2, "links": 1}
    assert stats["memory"] == {"total_usage": 4, "avg_per_page": 2}


def test_stats_include_cache_state():
    cache = AnalysisCache(max_size=4)
    cache.set("a", 1)
    metrics = PerformanceMetrics()
    metrics.record_cache_hit()

    cache_stats = metrics.get_stats(cache)["cache"]
    assert cache_stats == {"hits": 1, "misses": 0, "hit_rate": 100, "size": 1, "utilization": 25}


def test_stats_without_cache():
    stats = PerformanceMetrics().get_stats()
    assert stats["cache"]["size"] == 0
    assert stats["cache"]["utilization"] == 0
    assert stats["processing"] == {
        "avg_processing_time": 0,
        "total_pages": 0,
        "slowest_page": 0,
        "fastest_page": 0,
    }
    assert set(stats["runtime"]) == {"total_ms", "total_seconds", "total_minutes"}


def test_reset_clears_counters():
    metrics = PerformanceMetrics()
    metrics.record_cache_hit()
    metrics.record_operation("page")
    metrics.record_page_processing_time(50)
    metrics.reset()

    stats = metrics.get_stats()
    assert stats["cache"]["hits"] == 0
    assert stats["operations"] == {}
    assert stats["processing"]["total_pages"] == 0
    assert metrics.avg_processing_time == 0
