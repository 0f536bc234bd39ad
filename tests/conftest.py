"""
Shared fixtures: an in-memory stand-in for requests.Session that serves real
requests.Response objects from a route table, so no test touches the network.
"""
from __future__ import annotations

import io
from http import HTTPStatus
from typing import Callable, Optional

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from config import NetworkConfig
from network.client import NetworkClient
from network.rate_limiter import RateLimiter
from network.stats import NetworkStats


def make_response(
    url: str,
    status: int = 200,
    body: bytes = b"",
    headers: Optional[dict] = None,
    raw=None,
) -> requests.Response:
    resp = requests.Response()
    resp.status_code = status
    resp.reason = HTTPStatus(status).phrase
    resp.headers = CaseInsensitiveDict(headers or {})
    resp.raw = raw if raw is not None else io.BytesIO(body)
    resp.url = url
    resp.encoding = "utf-8"
    return resp


def respond(status: int = 200, body: bytes = b"", headers: Optional[dict] = None) -> Callable:
    def handler(url, **kwargs):
        return make_response(url, status, body, headers)
    return handler


def redirect_to(location: str, status: int = 301) -> Callable:
    return respond(status, headers={"Location": location})


def fail_with(exc: Exception) -> Callable:
    def handler(url, **kwargs):
        raise exc
    return handler


class FakeSession:
    """Routes each URL to a handler returning a fresh Response or raising."""

    def __init__(self, routes: Optional[dict[str, Callable]] = None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str, dict]] = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        handler = self.routes.get(url)
        if handler is None:
            raise requests.exceptions.ConnectionError(f"No route to {url}")
        return handler(url, **kwargs)

    def calls_to(self, url: str) -> int:
        return sum(1 for _, called, _ in self.calls if called == url)


class CountingRateLimiter(RateLimiter):
    def __init__(self):
        super().__init__(delay=0)
        self.waits = 0

    def wait(self) -> float:
        self.waits += 1
        return 0.0


@pytest.fixture
def fast_config() -> NetworkConfig:
    return NetworkConfig(retry_delay=0, rate_limit_delay=0, max_retries=2)


@pytest.fixture
def make_client(fast_config):
    def _make(routes=None, stats: Optional[NetworkStats] = None, config: Optional[NetworkConfig] = None):
        session = FakeSession(routes)
        client = NetworkClient(
            session=session,
            rate_limiter=CountingRateLimiter(),
            stats=stats,
            config=config or fast_config,
        )
        return client, session
    return _make
