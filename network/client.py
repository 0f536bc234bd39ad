"""
HTTP client for the audit: timeout-bounded fetches, retry with backoff,
manual redirect-chain tracking and concurrent external link checking.

Every expected failure is returned as data. A result's `status` is either
the HTTP status code or one of the FetchStatus markers, so batch and retry
logic can branch on it without exception handling at each call site.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from itertools import count
from typing import Iterable, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import TimeoutError as Urllib3TimeoutError

from config import CONTENT_HEADERS, DEFAULT_HEADERS, NETWORK_CONFIG, NetworkConfig
from logging_config import get_logger
from models import (
    ContentInfo,
    FetchResult,
    FetchStatus,
    LinkCheckResult,
    RedirectChainEntry,
    RedirectChainResult,
)
from network.rate_limiter import RateLimiter
from network.stats import NetworkStats
from network.urls import is_valid_url

logger = get_logger(__name__)


class NetworkClient:
    """
    One client per audit run. The rate limiter and the stats accumulator are
    injected so that everything issuing requests during a run shares them,
    while tests can build isolated instances.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
        stats: Optional[NetworkStats] = None,
        config: NetworkConfig = NETWORK_CONFIG,
    ):
        self.config = config
        self.session = session or make_session(config.user_agent)
        self.rate_limiter = rate_limiter or RateLimiter(config.rate_limit_delay)
        self.stats = stats

    # ── Core fetch ────────────────────────────────────────────────────────────

    def fetch_with_timeout(self, url: str, timeout: Optional[float] = None, **options) -> FetchResult:
        """
        Issue a request and return status and headers only; the body is never read.
        Transport failures come back as TIMEOUT or FETCH_ERROR results.
        """
        timeout = self._timeout(timeout)
        try:
            resp = self._send(url, timeout, DEFAULT_HEADERS, **options)
        except requests.exceptions.RequestException as exc:
            return _transport_failure(exc)

        try:
            return FetchResult(
                status=resp.status_code,
                status_text=resp.reason or "",
                headers=_headers(resp),
                url=resp.url or url,
                redirected=bool(resp.history),
                ok=resp.ok,
            )
        finally:
            resp.close()

    def fetch_content(
        self,
        url: str,
        timeout: Optional[float] = None,
        max_content_length: Optional[int] = None,
        **options,
    ) -> FetchResult:
        """
        Fetch and decode the body, refusing anything above `max_content_length`.

        A declared Content-Length over the limit fails before the body is read;
        a missing or wrong declaration is caught while streaming. `timeout` is
        also enforced as an overall deadline across the streamed read.
        """
        timeout = self._timeout(timeout)
        limit = self.config.max_content_length if max_content_length is None else max_content_length
        deadline = time.monotonic() + timeout

        try:
            resp = self._send(url, timeout, CONTENT_HEADERS, **options)
        except requests.exceptions.RequestException as exc:
            return _transport_failure(exc)

        try:
            headers = _headers(resp)
            base = dict(
                status=resp.status_code,
                status_text=resp.reason or "",
                headers=headers,
                url=resp.url or url,
                redirected=bool(resp.history),
            )

            if not resp.ok:
                return FetchResult(**base, error=f"HTTP {resp.status_code}")

            declared = _content_length(headers)
            if declared > limit:
                return FetchResult(
                    status=FetchStatus.TOO_LARGE,
                    status_text=f"Content too large: {declared} bytes",
                    headers=headers,
                    url=base["url"],
                    error="content_too_large",
                )

            chunks: list[bytes] = []
            total = 0
            for chunk in resp.iter_content(chunk_size=self.config.chunk_size):
                total += len(chunk)
                if total > limit:
                    return FetchResult(
                        status=FetchStatus.TOO_LARGE,
                        status_text=f"Content exceeded size limit during streaming: {total} bytes",
                        headers=headers,
                        url=base["url"],
                        error="content_too_large",
                    )
                if time.monotonic() > deadline:
                    return _timeout_result(headers)
                chunks.append(chunk)

            content = b"".join(chunks).decode(resp.encoding or "utf-8", errors="replace")
            return FetchResult(**base, ok=True, content=content, size=total)

        except requests.exceptions.RequestException as exc:
            return _transport_failure(exc)
        finally:
            resp.close()

    # ── Retry ─────────────────────────────────────────────────────────────────

    def fetch_with_retry(
        self,
        url: str,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
        **options,
    ) -> FetchResult:
        """
        fetch_with_timeout, retried on TIMEOUT / FETCH_ERROR only, with
        exponential backoff (retry_delay * 2 ** attempt). Any HTTP status,
        4xx and 5xx included, ends the loop immediately.
        """
        max_retries = self.config.max_retries if max_retries is None else max_retries

        attempt = 0
        while True:
            result = self.fetch_with_timeout(url, timeout, **options)
            result.attempts = attempt + 1
            result.retried = attempt > 0

            if not result.is_transport_failure:
                return result

            if attempt >= max_retries:
                result.max_retries_reached = True
                logger.warning(f"Giving up on {url} after {result.attempts} attempts: {result.status}")
                return result

            delay = self.config.retry_delay * (2 ** attempt)
            logger.debug(f"Retrying {url} in {delay:.2f}s (attempt {attempt + 1} → {result.status})")
            time.sleep(delay)
            attempt += 1

    # ── Redirect analysis ─────────────────────────────────────────────────────

    def check_redirect_chain(
        self,
        url: str,
        max_redirects: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> RedirectChainResult:
        """
        Follow Location headers by hand, recording every hop.

        Stops on a non-redirect status, a missing or invalid Location, a URL
        already visited (a LOOP_DETECTED entry is appended), a transport
        failure, or after `max_redirects` hops. The partial chain is always
        returned.
        """
        max_redirects = self.config.max_redirects if max_redirects is None else max_redirects
        timeout = self._timeout(timeout)

        chain: list[RedirectChainEntry] = []
        visited: set[str] = set()
        current_url = url
        redirect_count = 0

        while redirect_count < max_redirects:
            if current_url in visited:
                chain.append(RedirectChainEntry(url=current_url, status=FetchStatus.LOOP_DETECTED))
                break
            visited.add(current_url)

            try:
                resp = self._send(current_url, timeout, DEFAULT_HEADERS, allow_redirects=False)
            except requests.exceptions.RequestException as exc:
                failure = _transport_failure(exc)
                chain.append(RedirectChainEntry(
                    url=current_url,
                    status=failure.status,
                    status_text=failure.status_text,
                    error=failure.error,
                ))
                break

            try:
                entry = RedirectChainEntry(
                    url=current_url,
                    status=resp.status_code,
                    status_text=resp.reason or "",
                    headers=_headers(resp),
                )
            finally:
                resp.close()
            chain.append(entry)

            if not 300 <= entry.status < 400:
                break

            location = entry.headers.get("location")
            if not location:
                entry.error = "Missing location header"
                break

            try:
                next_url = urljoin(current_url, location)
            except ValueError:
                next_url = None
            if not next_url or not is_valid_url(next_url):
                entry.error = f"Invalid location header: {location}"
                break

            logger.debug(f"Redirect {entry.status}: {current_url} → {next_url}")
            current_url = next_url
            redirect_count += 1

        last = chain[-1] if chain else None
        return RedirectChainResult(
            original_url=url,
            final_url=last.url if last else url,
            chain=chain,
            redirect_count=redirect_count,
            has_loop=any(e.status == FetchStatus.LOOP_DETECTED for e in chain),
            max_redirects_reached=redirect_count >= max_redirects,
            is_successful=last is not None and _is_2xx(last.status),
        )

    # ── External links ────────────────────────────────────────────────────────

    def check_external_link(
        self,
        url: str,
        source_url: str,
        max_retries: Optional[int] = None,
        timeout: Optional[float] = None,
        check_redirects: bool = True,
        check_content: bool = False,
    ) -> LinkCheckResult:
        """
        Status (with retries), then optionally the redirect chain (at most
        `external_max_redirects` hops) and content metadata. Content problems
        land in `content_info.error` and never fail the check.
        """
        start = time.perf_counter()

        try:
            status_result = self.fetch_with_retry(url, max_retries, timeout)

            redirect_info = None
            if check_redirects and not status_result.is_transport_failure:
                redirect_info = self.check_redirect_chain(url, self.config.external_max_redirects, timeout)

            content_info = None
            if check_content and status_result.ok:
                content_info = self._content_info(url, timeout)

            result = LinkCheckResult(
                url=url,
                source_url=source_url,
                status=status_result.status,
                status_text=status_result.status_text,
                headers=status_result.headers,
                response_time=_elapsed_ms(start),
                attempts=status_result.attempts,
                retried=status_result.retried,
                redirect_info=redirect_info,
                content_info=content_info,
                is_successful=status_result.ok or _is_success_status(status_result.status),
                error=status_result.error,
            )
        except Exception as exc:
            logger.exception(f"Link check failed for {url} (from {source_url})")
            result = LinkCheckResult(
                url=url,
                source_url=source_url,
                status=FetchStatus.CHECK_ERROR,
                status_text=str(exc),
                response_time=_elapsed_ms(start),
                error=type(exc).__name__,
            )

        if self.stats is not None:
            self.stats.record_request(result)
        return result

    def batch_check_external_links(
        self,
        links: Iterable[tuple[str, str]],
        concurrency: Optional[int] = None,
        **options,
    ) -> list[LinkCheckResult]:
        """
        Check `(url, source_url)` pairs with a fixed pool of workers pulling
        from a shared cursor. Results keep the input order; an exception in
        one link becomes a WORKER_ERROR result for that link only.
        """
        links = list(links)
        if not links:
            return []

        concurrency = concurrency or self.config.default_concurrency
        n_workers = max(1, min(concurrency, len(links)))
        results: list[Optional[LinkCheckResult]] = [None] * len(links)
        cursor = count()
        cursor_lock = threading.Lock()

        def worker() -> None:
            while True:
                with cursor_lock:
                    index = next(cursor)
                if index >= len(links):
                    return

                url, source_url = links[index]
                try:
                    results[index] = self.check_external_link(url, source_url, **options)
                except Exception as exc:
                    logger.error(f"Worker error checking {url}: {exc}")
                    result = LinkCheckResult(
                        url=url,
                        source_url=source_url,
                        status=FetchStatus.WORKER_ERROR,
                        status_text=str(exc),
                        error=type(exc).__name__,
                    )
                    if self.stats is not None:
                        self.stats.record_request(result)
                    results[index] = result

        logger.info(f"Checking {len(links)} external links with {n_workers} workers")
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            futures = [executor.submit(worker) for _ in range(n_workers)]
            for future in futures:
                future.result()

        checked = [r for r in results if r is not None]
        logger.info(
            f"External link check complete: {sum(r.is_successful for r in checked)}/{len(checked)} ok"
        )
        return checked

    # ── Utilities ─────────────────────────────────────────────────────────────

    def is_url_reachable(self, url: str, timeout: Optional[float] = None) -> bool:
        timeout = self.config.reachability_timeout if timeout is None else timeout
        return not self.fetch_with_timeout(url, timeout).is_transport_failure

    def _content_info(self, url: str, timeout: float) -> ContentInfo:
        try:
            content_result = self.fetch_content(url, timeout)
        except Exception as exc:
            return ContentInfo(error=str(exc))

        if content_result.content is None:
            return ContentInfo(error=content_result.error or str(content_result.status))

        return ContentInfo(
            size=content_result.size,
            content_type=content_result.headers.get("content-type", "unknown"),
            has_content=len(content_result.content) > 0,
            encoding=content_result.headers.get("content-encoding", "none"),
        )

    def _timeout(self, timeout: Optional[float]) -> float:
        return self.config.default_timeout if timeout is None else timeout

    def _send(self, url: str, timeout: float, default_headers: dict[str, str], **options) -> requests.Response:
        self.rate_limiter.wait()
        method = options.pop("method", "GET")
        headers = {**default_headers, **options.pop("headers", {})}
        options.setdefault("stream", True)
        return self.session.request(method, url, headers=headers, timeout=timeout, **options)


# ── Session ───────────────────────────────────────────────────────────────────

def make_session(user_agent: str) -> requests.Session:
    session = requests.Session()
    # No transport-level retries; fetch_with_retry owns that policy
    adapter = HTTPAdapter(max_retries=0)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": user_agent})
    return session


# ── Helpers ───────────────────────────────────────────────────────────────────

def _headers(resp: requests.Response) -> dict[str, str]:
    return {k.lower(): v for k, v in resp.headers.items()}


def _content_length(headers: dict[str, str]) -> int:
    try:
        return int(headers.get("content-length") or 0)
    except ValueError:
        return 0


def _is_timeout(exc: Exception) -> bool:
    if isinstance(exc, requests.exceptions.Timeout):
        return True
    # Read timeouts while streaming surface as ConnectionError(ReadTimeoutError)
    return any(isinstance(arg, Urllib3TimeoutError) for arg in exc.args)


def _timeout_result(headers: Optional[dict[str, str]] = None) -> FetchResult:
    return FetchResult(
        status=FetchStatus.TIMEOUT,
        status_text="Request timed out",
        headers=headers or {},
        error="timeout",
    )


def _transport_failure(exc: requests.exceptions.RequestException) -> FetchResult:
    if _is_timeout(exc):
        return _timeout_result()
    return FetchResult(
        status=FetchStatus.FETCH_ERROR,
        status_text=str(exc),
        error=type(exc).__name__ or "unknown",
    )


def _is_2xx(status) -> bool:
    return FetchStatus.is_http(status) and 200 <= status < 300


def _is_success_status(status) -> bool:
    return FetchStatus.is_http(status) and 200 <= status < 400


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)
