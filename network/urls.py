"""
URL helpers: validation, domain extraction and normalization for deduplication.
"""
from __future__ import annotations

from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import tldextract

# Bundled public suffix snapshot; no network fetch at first use
_extract = tldextract.TLDExtract(suffix_list_urls=())

_DEFAULT_PORTS = {"http": ":80", "https": ":443"}


def is_valid_url(url: str) -> bool:
    """True for absolute URLs carrying both a scheme and a network location."""
    try:
        parsed = urlparse(url)
    except (TypeError, ValueError):
        return False
    return bool(parsed.scheme and parsed.netloc)


def extract_domain(url: str) -> Optional[str]:
    """Hostname of `url`, or None when it cannot be parsed."""
    if not is_valid_url(url):
        return None
    try:
        return urlparse(url).hostname
    except ValueError:
        return None


def normalize_url(url: str) -> str:
    """
    Normalize a URL for comparison:
    - Lowercase scheme and host
    - Remove fragment and default ports (80 for http, 443 for https)
    - Remove trailing slash from path (except root)
    - Sort query parameters
    Invalid URLs are returned unchanged.
    """
    if not is_valid_url(url):
        return url

    p = urlparse(url.strip())
    scheme = p.scheme.lower()
    host = p.netloc.lower()
    default_port = _DEFAULT_PORTS.get(scheme)
    if default_port and host.endswith(default_port):
        host = host[: -len(default_port)]

    path = p.path or "/"
    if path != "/" and path.endswith("/"):
        path = path[:-1]

    query = urlencode(sorted(parse_qsl(p.query, keep_blank_values=True)))
    return urlunparse((scheme, host, path, p.params, query, ""))


def registered_domain(url: str) -> str:
    """Registrable domain (eTLD+1) of a URL or bare hostname."""
    netloc = urlparse(url).netloc if "://" in url else url
    ext = _extract(netloc)
    return ext.registered_domain or ext.domain


def is_same_site(url: str, site: str) -> bool:
    return registered_domain(url) == registered_domain(site)
