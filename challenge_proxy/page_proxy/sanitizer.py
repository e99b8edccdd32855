"""
Downstream response headers: drop everything that stops the page from being
framed or embedded, then open CORS up.
"""

from typing import Dict, Optional

import httpx

from challenge_proxy.vars import PROXIED_BY

# Headers that keep a page from rendering inside another origin
STRIPPED_HEADERS = (
    "content-security-policy",
    "content-security-policy-report-only",
    "x-frame-options",
    "frame-options",
    "cross-origin-embedder-policy",
    "cross-origin-opener-policy",
    "cross-origin-resource-policy",
)

# Hop-by-hop headers that should NOT be forwarded (RFC 2616)
HOP_BY_HOP_HEADERS = (
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
)

# Only valid for the exact bytes upstream sent
BODY_FRAMING_HEADERS = ("content-length", "content-encoding")


def _drop(headers: httpx.Headers, names) -> None:
    for name in names:
        if name in headers:
            del headers[name]


def proxy_headers(proxied_by: Optional[str] = None) -> Dict[str, str]:
    """Headers every response of the proxy carries, upstream-derived or not."""
    return {
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
        "Access-Control-Allow-Headers": "*",
        "X-Proxied-By": proxied_by or PROXIED_BY,
    }


def sanitize_headers(
    upstream_headers: httpx.Headers,
    body_rewritten: bool = False,
    proxied_by: Optional[str] = None,
) -> httpx.Headers:
    """
    Return a sanitized copy of the upstream headers.

    Order and duplicates (several Set-Cookie, ...) of the kept headers are
    preserved; names are matched case-insensitively. ``body_rewritten`` also
    drops content-length/content-encoding, which no longer describe a body
    that was decoded and encoded again.
    """
    headers = httpx.Headers(upstream_headers.multi_items())
    _drop(headers, STRIPPED_HEADERS)
    _drop(headers, HOP_BY_HOP_HEADERS)
    if body_rewritten:
        _drop(headers, BODY_FRAMING_HEADERS)

    for name, value in proxy_headers(proxied_by).items():
        headers[name] = value
    return headers
