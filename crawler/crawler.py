"""
Link audit driver.
Fetches each start page under performance monitoring, extracts its links
(memoized per final URL), then checks every external link with a bounded
worker pool. Progress dicts go to an optional callback for live display.
"""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

from crawler.parser import extract_links
from logging_config import get_logger
from models import AuditConfig, LinkAuditResult, LinkCheckResult, PageLinks
from network.client import NetworkClient, make_session
from network.stats import NetworkStats
from network.urls import normalize_url
from performance.cache import generate_url_cache_key
from performance.manager import PerformanceManager

logger = get_logger(__name__)


def audit_links(
    config: AuditConfig,
    client: Optional[NetworkClient] = None,
    manager: Optional[PerformanceManager] = None,
    progress_callback: Optional[Callable[[dict], None]] = None,
) -> LinkAuditResult:
    """
    Audit the outbound links of `config.start_urls`.
    Call `progress_callback` with status dicts as the audit progresses.

    An injected client or manager is used as is and left intact; only the
    ones built here are cleaned up at the end.
    """
    result = LinkAuditResult(config=config, started_at=datetime.now())

    if client is None:
        client = NetworkClient(session=make_session(config.user_agent), stats=NetworkStats())
    owns_manager = manager is None
    if owns_manager:
        manager = PerformanceManager()

    total = len(config.start_urls)
    _emit(progress_callback, f"Fetching {total} pages…", 0)

    for idx, url in enumerate(config.start_urls, start=1):
        try:
            page = manager.monitor_operation(f"page:{url}", _fetch_and_extract, url, config, client, manager)
        except Exception as exc:
            page = PageLinks(url=url, error=f"Unexpected error: {exc}")
        result.pages[url] = page

        pct = int(idx / max(total, 1) * 60)
        _emit(progress_callback, f"Fetched {idx}/{total} pages — {url}", pct)

    pairs = _collect_external_links(result.pages, config.max_external_links)
    if pairs:
        _emit(progress_callback, f"Checking {len(pairs)} external links…", 65)
        result.link_results = client.batch_check_external_links(
            pairs,
            config.concurrency,
            timeout=config.request_timeout,
            check_redirects=config.check_redirects,
            check_content=config.check_content,
        )

    result.network_stats = _network_stats(client, result.link_results)
    result.performance = manager.get_performance_report()
    manager.log_performance_summary()
    if owns_manager:
        manager.cleanup()

    result.finished_at = datetime.now()
    logger.info(
        f"Link audit finished in {result.duration_seconds:.1f}s: "
        f"{len(result.pages)} pages, {len(result.link_results)} external links, "
        f"{len(result.broken_links)} broken"
    )
    _emit(progress_callback, "Link audit complete.", 100)
    return result


# ── Per-page work ─────────────────────────────────────────────────────────────

def _fetch_and_extract(
    url: str,
    config: AuditConfig,
    client: NetworkClient,
    manager: PerformanceManager,
) -> PageLinks:
    fetched = client.fetch_content(url, config.request_timeout)
    if fetched.content is None:
        return PageLinks(url=url, status=fetched.status, error=fetched.error or fetched.status_text)

    final_url = fetched.url or url
    key = generate_url_cache_key("page_links", normalize_url(final_url))
    hits_before = manager.metrics.cache_hits
    internal, external = manager.cached(
        key,
        lambda: extract_links(fetched.content, final_url, config.domain),
    )

    return PageLinks(
        url=url,
        status=fetched.status,
        internal_links=list(internal),
        external_links=list(external),
        from_cache=manager.metrics.cache_hits > hits_before,
    )


def _network_stats(client: NetworkClient, link_results: list[LinkCheckResult]) -> dict:
    if client.stats is not None:
        return client.stats.get_stats()
    # Client without a stats sink: summarize this run only
    stats = NetworkStats()
    for link_result in link_results:
        stats.record_request(link_result)
    return stats.get_stats()


def _collect_external_links(pages: dict[str, PageLinks], limit: int) -> list[tuple[str, str]]:
    """Unique (url, first source page) pairs, capped at `limit`."""
    pairs: list[tuple[str, str]] = []
    seen: set[str] = set()
    for page in pages.values():
        for link in page.external_links:
            norm = normalize_url(link)
            if norm in seen:
                continue
            seen.add(norm)
            pairs.append((link, page.url))
            if len(pairs) >= limit:
                return pairs
    return pairs


def _emit(callback: Optional[Callable], message: str, pct: int) -> None:
    if callback:
        try:
            callback({"message": message, "pct": pct})
        except Exception:
            logger.debug("Progress callback failed", exc_info=True)
