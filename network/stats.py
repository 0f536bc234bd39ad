"""
Aggregates link-check outcomes into overall, per-status and per-domain statistics.
"""
from __future__ import annotations

import threading
from dataclasses import asdict
from typing import Any, Optional

from models import DomainStat, LinkCheckResult, Status
from network.urls import extract_domain

_TOP_DOMAINS = 10


class NetworkStats:
    """
    Accumulates results as they arrive. Nothing is ever dropped until reset().
    One instance is meant to live for a whole audit run and be shared by
    every client that issues requests during it.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self.total_requests = 0
            self.successful_requests = 0
            self.failed_requests = 0
            self.timeouts = 0
            self.retries = 0
            self.total_response_time = 0.0
            self.requests_by_status: dict[Status, int] = {}
            self.domain_stats: dict[str, DomainStat] = {}

    def record_request(self, result: LinkCheckResult) -> None:
        domain = extract_domain(result.url)

        with self._lock:
            self.total_requests += 1
            if result.is_successful:
                self.successful_requests += 1
            else:
                self.failed_requests += 1

            if result.error == "timeout":
                self.timeouts += 1
            if result.retried:
                self.retries += 1
            if result.response_time:
                self.total_response_time += result.response_time

            self.requests_by_status[result.status] = self.requests_by_status.get(result.status, 0) + 1

            if domain:
                stat = self.domain_stats.setdefault(domain, DomainStat())
                stat.requests += 1
                if result.is_successful:
                    stat.successful += 1
                else:
                    stat.failed += 1
                if result.response_time:
                    stat.total_response_time += result.response_time
                    stat.avg_response_time = stat.total_response_time / stat.requests

    def get_domain_stats(self, domain: str) -> Optional[DomainStat]:
        with self._lock:
            stat = self.domain_stats.get(domain)
            return DomainStat(**asdict(stat)) if stat else None

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = self.total_requests
            top = sorted(self.domain_stats.items(), key=lambda kv: kv[1].requests, reverse=True)
            return {
                "total": total,
                "successful": self.successful_requests,
                "failed": self.failed_requests,
                "success_rate": round(self.successful_requests / total * 100) if total else 0,
                "timeouts": self.timeouts,
                "retries": self.retries,
                "avg_response_time": round(self.total_response_time / total) if total else 0,
                "status_codes": dict(self.requests_by_status),
                "top_domains": [
                    {"domain": domain, **asdict(stat)} for domain, stat in top[:_TOP_DOMAINS]
                ],
            }
