"""
Core data models for the site audit performance layer.
All modules import from here; nothing else is cross-imported at this level.

NOTE: `from __future__ import annotations` is intentionally omitted here.
Python 3.13.0 has a regression (bpo-121814) where that import causes a crash
in the dataclasses decorator when the module is not yet fully registered in
sys.modules. Python 3.9+ supports generic aliases (list[str], dict[str, Any])
natively, so the future import is unnecessary.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from config import DEFAULT_CONCURRENCY, DEFAULT_MAX_EXTERNAL_LINKS, DEFAULT_TIMEOUT, DEFAULT_USER_AGENT


# ── Status markers ────────────────────────────────────────────────────────────
class FetchStatus:
    """String statuses used in place of an HTTP status code."""

    TIMEOUT       = "TIMEOUT"
    FETCH_ERROR   = "FETCH_ERROR"
    TOO_LARGE     = "TOO_LARGE"
    LOOP_DETECTED = "LOOP_DETECTED"
    CHECK_ERROR   = "CHECK_ERROR"
    WORKER_ERROR  = "WORKER_ERROR"

    # Transport-level outcomes; the only ones worth retrying
    TRANSPORT = (TIMEOUT, FETCH_ERROR)

    @staticmethod
    def is_http(status: Union[int, str]) -> bool:
        return isinstance(status, int) and not isinstance(status, bool)

    @classmethod
    def is_transport_failure(cls, status: Union[int, str]) -> bool:
        return status in cls.TRANSPORT


Status = Union[int, str]


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


# ── Memory ────────────────────────────────────────────────────────────────────
@dataclass
class MemorySample:
    operation: str
    usage: float            # MB
    timestamp: int          # epoch ms


# ── Fetch results ─────────────────────────────────────────────────────────────
@dataclass
class FetchResult:
    status: Status
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""
    redirected: bool = False
    ok: bool = False
    error: Optional[str] = None

    # fetch_content only
    content: Optional[str] = None
    size: Optional[int] = None

    # fetch_with_retry only
    attempts: int = 1
    retried: bool = False
    max_retries_reached: bool = False

    @property
    def is_transport_failure(self) -> bool:
        return FetchStatus.is_transport_failure(self.status)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RedirectChainEntry:
    url: str
    status: Status
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_now)
    error: Optional[str] = None


@dataclass
class RedirectChainResult:
    original_url: str
    final_url: str
    chain: list[RedirectChainEntry] = field(default_factory=list)
    redirect_count: int = 0
    has_loop: bool = False
    max_redirects_reached: bool = False
    is_successful: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ── Link checking ─────────────────────────────────────────────────────────────
@dataclass
class ContentInfo:
    size: Optional[int] = None
    content_type: str = "unknown"
    has_content: bool = False
    encoding: str = "none"
    error: Optional[str] = None


@dataclass
class LinkCheckResult:
    url: str
    source_url: str
    status: Status
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    response_time: float = 0.0          # ms
    attempts: int = 1
    retried: bool = False
    redirect_info: Optional[RedirectChainResult] = None
    content_info: Optional[ContentInfo] = None
    timestamp: str = field(default_factory=utc_now)
    is_successful: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class DomainStat:
    requests: int = 0
    successful: int = 0
    failed: int = 0
    avg_response_time: float = 0.0
    total_response_time: float = 0.0


# ── Audit driver ──────────────────────────────────────────────────────────────
@dataclass
class AuditConfig:
    domain: str
    start_urls: list[str] = field(default_factory=list)
    request_timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    concurrency: int = DEFAULT_CONCURRENCY
    max_external_links: int = DEFAULT_MAX_EXTERNAL_LINKS
    check_redirects: bool = True
    check_content: bool = False


@dataclass
class PageLinks:
    url: str
    status: Status = 0
    internal_links: list[str] = field(default_factory=list)
    external_links: list[str] = field(default_factory=list)
    error: Optional[str] = None
    from_cache: bool = False


@dataclass
class LinkAuditResult:
    config: AuditConfig
    pages: dict[str, PageLinks] = field(default_factory=dict)
    link_results: list[LinkCheckResult] = field(default_factory=list)
    network_stats: dict[str, Any] = field(default_factory=dict)
    performance: dict[str, Any] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    @property
    def duration_seconds(self) -> float:
        if self.started_at and self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    @property
    def broken_links(self) -> list[LinkCheckResult]:
        return [r for r in self.link_results if not r.is_successful]
