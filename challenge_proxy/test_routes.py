"""
End-to-end tests of the HTTP surface with a simulated upstream.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from challenge_proxy.page_proxy.sanitizer import STRIPPED_HEADERS

USAGE = "Use /proxy?url=https://example.com"
SELF_BASE = "http://testserver"

FRAMING_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "X-Frame-Options": "SAMEORIGIN",
    "Cross-Origin-Opener-Policy": "same-origin",
}


@pytest.fixture(scope="session")
def test_client():
    from challenge_proxy.server import app

    with TestClient(app) as client:
        yield client


@pytest.fixture
def solver_url(monkeypatch):
    monkeypatch.setattr(
        "challenge_proxy.page_proxy.challenge.CHALLENGE_SOLVER_URL",
        "https://solver.test",
    )
    return "https://solver.test"


def _assert_sanitized(response):
    for name in STRIPPED_HEADERS:
        assert name not in response.headers, f"{name} leaked: {response.headers}"
    assert response.headers["access-control-allow-origin"] == "*"


def _assert_cors(response):
    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-methods"] == "GET,POST,OPTIONS"
    assert response.headers["access-control-allow-headers"] == "*"
    assert response.headers["x-proxied-by"]


def test_root_is_usage_hint(test_client):
    r = test_client.get("/")
    assert r.status_code == 400, f"Unexpected status code: {r.status_code}, {r.text}"
    assert r.text == USAGE
    _assert_cors(r)
    assert r.headers["content-type"].startswith("text/plain")


def test_proxy_without_url_is_usage_hint(test_client, mock_upstream):
    seen = mock_upstream(lambda request: httpx.Response(200))

    r = test_client.get("/proxy")

    assert r.status_code == 400, f"Unexpected status code: {r.status_code}, {r.text}"
    assert r.text == USAGE
    _assert_cors(r)
    assert seen == []


def test_html_page_is_rewritten(test_client, mock_upstream):
    mock_upstream(
        lambda request: httpx.Response(
            200,
            headers={"content-type": "text/html", **FRAMING_HEADERS},
            content=b'<html><head></head><body><a href="/x">go</a></body></html>',
        )
    )

    r = test_client.get("/proxy", params={"url": "https://example.com"})

    assert r.status_code == 200, f"Unexpected status code: {r.status_code}, {r.text}"
    assert '<head><base href="https://example.com/">' in r.text
    assert f'href="{SELF_BASE}/proxy?url=https%3A%2F%2Fexample.com%2Fx"' in r.text
    _assert_sanitized(r)
    assert r.headers["access-control-allow-methods"] == "GET,POST,OPTIONS"
    assert r.headers["access-control-allow-headers"] == "*"
    assert r.headers["x-proxied-by"]


def test_blocked_status_redirects_to_solver(test_client, mock_upstream, solver_url):
    mock_upstream(lambda request: httpx.Response(403, content=b"forbidden"))

    r = test_client.get(
        "/proxy",
        params={"url": "https://example.com/search?q=a b"},
        follow_redirects=False,
    )

    assert r.status_code == 302, f"Unexpected status code: {r.status_code}, {r.text}"
    location = r.headers["location"]
    assert location.startswith(solver_url)
    _assert_cors(r)
    assert location == (
        f"{solver_url}/?url=https%3A%2F%2Fexample.com%2Fsearch%3Fq%3Da%20b"
    )


def test_captcha_page_redirects_despite_success_status(
    test_client, mock_upstream, solver_url
):
    mock_upstream(
        lambda request: httpx.Response(
            200,
            headers={"content-type": "text/html"},
            content=b'<script src="https://www.google.com/recaptcha/api.js"></script>',
        )
    )

    r = test_client.get(
        "/proxy", params={"url": "https://example.com"}, follow_redirects=False
    )

    assert r.status_code == 302, f"Unexpected status code: {r.status_code}, {r.text}"
    assert r.headers["location"] == f"{solver_url}/?url=https%3A%2F%2Fexample.com"


def test_binary_body_passes_through(test_client, mock_upstream):
    png = b"\x89PNG\r\n\x1a\n" + bytes(range(256)) * 64
    mock_upstream(
        lambda request: httpx.Response(
            200,
            headers={"content-type": "image/png", **FRAMING_HEADERS},
            content=png,
        )
    )

    r = test_client.get("/proxy", params={"url": "https://example.com/logo.png"})

    assert r.status_code == 200, f"Unexpected status code: {r.status_code}"
    assert r.content == png
    assert r.headers["content-type"] == "image/png"
    _assert_sanitized(r)


def test_upstream_status_is_mirrored(test_client, mock_upstream):
    mock_upstream(
        lambda request: httpx.Response(
            404,
            headers={"content-type": "text/plain", **FRAMING_HEADERS},
            content=b"Not here: https://example.com/gone",
        )
    )

    r = test_client.get("/proxy", params={"url": "https://example.com/gone"})

    assert r.status_code == 404
    assert r.text == "Not here: https://example.com/gone"
    _assert_sanitized(r)


def test_fetch_failure_is_bad_gateway(test_client, mock_upstream):
    def handler(request: httpx.Request):
        raise httpx.ConnectError("connection refused", request=request)

    mock_upstream(handler)

    r = test_client.get("/proxy", params={"url": "https://down.example.com"})

    assert r.status_code == 502, f"Unexpected status code: {r.status_code}, {r.text}"
    assert r.text == "Proxy failed: connection refused"
    _assert_cors(r)
    assert r.headers["content-type"].startswith("text/plain")


def test_upstream_timeout_is_bad_gateway(test_client, mock_upstream):
    def handler(request: httpx.Request):
        raise httpx.ConnectTimeout("timed out", request=request)

    mock_upstream(handler)

    r = test_client.get("/proxy", params={"url": "https://slow.example.com"})

    assert r.status_code == 502
    assert r.text == "Proxy failed: timed out"


def test_malformed_target_is_bad_gateway(test_client, mock_upstream):
    seen = mock_upstream(lambda request: httpx.Response(200))

    r = test_client.get("/proxy", params={"url": "not-a-url"})

    assert r.status_code == 502
    assert r.text == "Proxy failed: Invalid URL: not-a-url"
    assert seen == []


def test_upstream_redirects_are_invisible(test_client, mock_upstream):
    def handler(request: httpx.Request):
        if request.url.host == "example.com":
            return httpx.Response(302, headers={"location": "https://www.example.com/"})
        return httpx.Response(
            200, headers={"content-type": "text/plain"}, content=b"final"
        )

    mock_upstream(handler)

    r = test_client.get(
        "/proxy", params={"url": "https://example.com"}, follow_redirects=False
    )

    assert r.status_code == 200
    assert r.text == "final"


def test_outcome_metrics_are_exposed(test_client, mock_upstream):
    mock_upstream(
        lambda request: httpx.Response(
            200, headers={"content-type": "text/plain"}, content=b"ok"
        )
    )
    test_client.get("/proxy", params={"url": "https://example.com/ok.txt"})

    r = test_client.get("/metrics")

    assert r.status_code == 200
    assert 'proxy_outcomes_total{outcome="passthrough_text"}' in r.text
