# Ensure tests import modules from this service directory first, so
# `import challenge_proxy.*` resolves to the working tree.
import os
import sys

import httpx
import pytest

SERVICE_ROOT = os.path.dirname(__file__)

if SERVICE_ROOT not in sys.path:
    sys.path.insert(0, SERVICE_ROOT)


@pytest.fixture
def mock_upstream(monkeypatch):
    """
    Route the fetcher's outbound client through an httpx.MockTransport.

    Call the returned function with a handler ``(httpx.Request) -> httpx.Response``;
    every request the handler sees is recorded in the returned list. Bodies given
    as bytes are served as a lazily produced ChunkedStream, since httpx reads a
    bytes body eagerly and would leave nothing for raw streaming.
    """
    from challenge_proxy.page_proxy import fetcher
    from challenge_proxy.utils_tests.upstream_stream import as_streamed

    seen = []

    def install(handler):
        def recording_handler(request: httpx.Request):
            seen.append(request)
            return as_streamed(handler(request))

        def build_client(timeout: float) -> httpx.AsyncClient:
            return httpx.AsyncClient(
                transport=httpx.MockTransport(recording_handler),
                timeout=httpx.Timeout(timeout),
                follow_redirects=True,
            )

        monkeypatch.setattr(fetcher, "build_client", build_client)
        return seen

    return install
