"""
HTML link extraction: turns raw page HTML into internal and external link lists.
"""
from __future__ import annotations

from urllib.parse import urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup, FeatureNotFound

from network.urls import is_same_site

_SKIP_SCHEMES = ("mailto:", "tel:", "javascript:", "data:")


def extract_links(html: str, page_url: str, site_domain: str) -> tuple[list[str], list[str]]:
    """
    Return (internal_links, external_links) found in <a href> tags.
    Links are absolute, fragment-free and de-duplicated in document order.
    Only http(s) URLs are reported as external.
    """
    if not html:
        return [], []

    try:
        soup = BeautifulSoup(html, "lxml")
    except FeatureNotFound:
        soup = BeautifulSoup(html, "html.parser")

    base_url = _resolve_base_url(soup, page_url)
    internal: list[str] = []
    external: list[str] = []
    seen: set[str] = set()

    for a_tag in soup.find_all("a", href=True):
        href = a_tag["href"].strip()
        if not href or href.startswith("#") or href.lower().startswith(_SKIP_SCHEMES):
            continue

        abs_url = _strip_fragment(urljoin(base_url, href))
        if abs_url in seen:
            continue
        seen.add(abs_url)

        parsed = urlparse(abs_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            continue

        if is_same_site(abs_url, site_domain):
            internal.append(abs_url)
        else:
            external.append(abs_url)

    return internal, external


def _resolve_base_url(soup: BeautifulSoup, fallback: str) -> str:
    base_tag = soup.find("base", href=True)
    if base_tag:
        return urljoin(fallback, base_tag["href"])
    return fallback


def _strip_fragment(url: str) -> str:
    parsed = urlparse(url)
    return urlunparse(parsed._replace(fragment=""))
