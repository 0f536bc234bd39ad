"""
Global configuration constants for the site audit performance layer.
All tunable thresholds live here.
"""
from __future__ import annotations

from dataclasses import dataclass

# ── Size units ────────────────────────────────────────────────────────────────
MB = 1024 * 1024

# ── Performance thresholds ────────────────────────────────────────────────────
ANALYSIS_CACHE_SIZE = 1000
CACHE_EVICTION_RATIO = 0.1               # evict the oldest 10% when full
MEMORY_WARNING_THRESHOLD_MB = 800
GC_TRIGGER_THRESHOLD_MB = 500
SLOW_PAGE_THRESHOLD_MS = 10_000
MEMORY_SAMPLE_WINDOW = 100
MEMORY_TREND_WINDOW = 10
MEMORY_TREND_DELTA_MB = 10
PROCESSING_TIME_WINDOW = 1000

# ── Network defaults ──────────────────────────────────────────────────────────
DEFAULT_TIMEOUT = 30.0                   # seconds
REACHABILITY_TIMEOUT = 5.0               # seconds
MAX_REDIRECTS = 5
EXTERNAL_MAX_REDIRECTS = 3
MAX_RETRIES = 3
RETRY_DELAY = 1.0                        # seconds, doubled per attempt
MAX_CONTENT_LENGTH = 10 * MB
RATE_LIMIT_DELAY = 0.1                   # seconds between request starts
DEFAULT_CONCURRENCY = 5
CHUNK_SIZE = 64 * 1024
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/128.0.0.0 Safari/537.36"
)

# Official bot user-agent strings, selectable per audit
USER_AGENT_PRESETS = {
    "Browser (default)": DEFAULT_USER_AGENT,
    "Site Audit Bot": "SiteAuditBot/1.0 (+https://github.com/site-audit-tool)",
    "Googlebot": "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
    "Bingbot": "Mozilla/5.0 (compatible; bingbot/2.0; +http://www.bing.com/bingbot.htm)",
}

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
    "Connection": "close",
    "Upgrade-Insecure-Requests": "1",
    "DNT": "1",
}

CONTENT_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml",
    "Accept-Encoding": "gzip, deflate",
    "Cache-Control": "no-cache",
}

# ── Audit driver defaults ─────────────────────────────────────────────────────
DEFAULT_MAX_EXTERNAL_LINKS = 500

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_ENV = "SITE_AUDIT_LOG_FILE"
LOG_FILE_MAX_BYTES = 10_000_000
LOG_FILE_BACKUP_COUNT = 5


@dataclass(frozen=True)
class PerformanceConfig:
    analysis_cache_size: int = ANALYSIS_CACHE_SIZE
    cache_eviction_ratio: float = CACHE_EVICTION_RATIO
    memory_warning_threshold_mb: float = MEMORY_WARNING_THRESHOLD_MB
    slow_page_threshold_ms: float = SLOW_PAGE_THRESHOLD_MS
    gc_trigger_threshold_mb: float = GC_TRIGGER_THRESHOLD_MB
    memory_sample_window: int = MEMORY_SAMPLE_WINDOW
    memory_trend_window: int = MEMORY_TREND_WINDOW
    memory_trend_delta_mb: float = MEMORY_TREND_DELTA_MB
    processing_time_window: int = PROCESSING_TIME_WINDOW


@dataclass(frozen=True)
class NetworkConfig:
    default_timeout: float = DEFAULT_TIMEOUT
    reachability_timeout: float = REACHABILITY_TIMEOUT
    max_redirects: int = MAX_REDIRECTS
    external_max_redirects: int = EXTERNAL_MAX_REDIRECTS
    max_retries: int = MAX_RETRIES
    retry_delay: float = RETRY_DELAY
    max_content_length: int = MAX_CONTENT_LENGTH
    rate_limit_delay: float = RATE_LIMIT_DELAY
    default_concurrency: int = DEFAULT_CONCURRENCY
    chunk_size: int = CHUNK_SIZE
    user_agent: str = DEFAULT_USER_AGENT


PERFORMANCE_CONFIG = PerformanceConfig()
NETWORK_CONFIG = NetworkConfig()
