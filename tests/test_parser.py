from __future__ import annotations

from crawler.parser import extract_links

PAGE = "https://www.example.com/blog/post"


def test_splits_internal_and_external_links():
    html = """
    <html><body>
      <a href="/about">About</a>
      <a href="https://shop.example.com/cart">Shop</a>
      <a href="https://partner.org/landing">Partner</a>
      <a href="http://other.net">Other</a>
    </body></html>
    """
    internal, external = extract_links(html, PAGE, "example.com")

    assert internal == ["https://www.example.com/about", "https://shop.example.com/cart"]
    assert external == ["https://partner.org/landing", "http://other.net"]


def test_skips_non_http_links_and_anchors():
    html = """
    <a href="#top">Top</a>
    <a href="mailto:team@example.com">Mail</a>
    <a href="tel:+15550100">Call</a>
    <a href="javascript:void(0)">JS</a>
    <a href="ftp://files.partner.org/a.zip">FTP</a>
    <a href="">Empty</a>
    <a>No href</a>
    """
    assert extract_links(html, PAGE, "example.com") == ([], [])


def test_strips_fragments_and_deduplicates():
    html = """
    <a href="https://partner.org/a#one">1</a>
    <a href="https://partner.org/a#two">2</a>
    <a href="https://partner.org/a">3</a>
    """
    _, external = extract_links(html, PAGE, "example.com")
    assert external == ["https://partner.org/a"]


def test_resolves_relative_links_against_base_tag():
    html = """
    <html><head><base href="https://cdn.partner.org/docs/"></head>
    <body><a href="guide.html">Guide</a></body></html>
    """
    _, external = extract_links(html, PAGE, "example.com")
    assert external == ["https://cdn.partner.org/docs/guide.html"]


def test_empty_html():
    assert extract_links("", PAGE, "example.com") == ([], [])
