"""
Single request pipeline of the proxy.

Validate the target, fetch it with disguise headers, send bot challenges to the
external solver and otherwise return the upstream response with sanitized
headers: HTML is link-rewritten, other text is returned verbatim and binary
bodies are streamed through as they arrive. Every failure ends up as a
``text/plain`` response here; nothing propagates to the server.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request
from fastapi.responses import (
    PlainTextResponse,
    RedirectResponse,
    Response,
    StreamingResponse,
)
from opentelemetry import trace
from prometheus_client import Counter
from starlette.background import BackgroundTask

from challenge_proxy.utils import redact_url
from challenge_proxy.utils.exception_logging import (
    format_exception_message,
    log_exception_with_details,
)
from challenge_proxy.vars import PUBLIC_URL

from .challenge import detect_challenge
from .disguise import disguise_headers
from .errors import FetchError, MissingTargetError
from .fetcher import UpstreamResponse, fetch_upstream
from .rewriter import RewriteContext, rewrite_html
from .sanitizer import proxy_headers, sanitize_headers

logger = logging.getLogger("uvicorn.error")
tracer = trace.get_tracer(__name__)

USAGE_MESSAGE = "Use /proxy?url=https://example.com"

PROXY_OUTCOMES = Counter(
    "proxy_outcomes",
    "Outcomes of proxied page requests",
    ["outcome"],
)


@dataclass(frozen=True)
class ProxyRequest:
    target: Optional[str]
    self_base: str

    @classmethod
    def from_request(cls, request: Request) -> "ProxyRequest":
        return cls(
            target=request.query_params.get("url") or None,
            self_base=self_base_of(request),
        )

    def require_target(self) -> str:
        if not self.target:
            raise MissingTargetError(USAGE_MESSAGE)
        return self.target


def self_base_of(request: Request) -> str:
    """Scheme and host this proxy is reached under, unless PUBLIC_URL pins it."""
    if PUBLIC_URL:
        return PUBLIC_URL
    host = request.headers.get("host")
    if not host:
        host = request.client.host if request.client else "localhost"
    return f"{request.url.scheme}://{host}"


def usage_response() -> PlainTextResponse:
    return PlainTextResponse(USAGE_MESSAGE, status_code=400, headers=proxy_headers())


def failure_response(message: str) -> PlainTextResponse:
    return PlainTextResponse(
        f"Proxy failed: {message}", status_code=502, headers=proxy_headers()
    )


def _apply_headers(response: Response, headers: httpx.Headers) -> Response:
    # raw pairs keep duplicates and the exact upstream bytes
    response.raw_headers.extend((name.lower(), value) for name, value in headers.raw)
    return response


def _record(span, outcome: str) -> None:
    span.set_attribute("proxy.outcome", outcome)
    PROXY_OUTCOMES.labels(outcome=outcome).inc()


async def _respond(upstream: UpstreamResponse, target: str, self_base: str, span) -> Response:
    challenge = detect_challenge(target, upstream)
    if challenge is not None:
        await upstream.aclose()
        logger.warning(
            f"Challenge detected for {redact_url(target)} (status {upstream.status}), "
            f"redirecting to solver"
        )
        _record(span, "redirected")
        return RedirectResponse(
            challenge.redirect_url, status_code=302, headers=proxy_headers()
        )

    headers = sanitize_headers(upstream.headers, body_rewritten=upstream.is_text)

    if upstream.is_text:
        body = upstream.text
        if upstream.is_html:
            body = rewrite_html(body, RewriteContext.for_target(target, self_base))
            _record(span, "rewritten")
        else:
            _record(span, "passthrough_text")
        logger.debug(f"Returning {len(body)} characters of {upstream.content_type}")
        response = Response(
            content=body.encode(upstream.encoding, errors="replace"),
            status_code=upstream.status,
        )
        return _apply_headers(response, headers)

    _record(span, "streamed")
    response = StreamingResponse(
        upstream.stream,
        status_code=upstream.status,
        background=BackgroundTask(upstream.aclose),
    )
    return _apply_headers(response, headers)


async def handle_proxy_request(proxy_request: ProxyRequest) -> Response:
    """Run one request through the pipeline and always return a response."""
    target = proxy_request.target
    with tracer.start_as_current_span("proxy_request") as span:
        span.set_attribute("proxy.self_base", proxy_request.self_base)
        if target:
            span.set_attribute("proxy.target_url", redact_url(target))
        logger.info(f"Proxying {redact_url(target) if target else '<no target>'}")

        try:
            target = proxy_request.require_target()
        except MissingTargetError as e:
            logger.info(f"Rejected proxy request: {e.message}")
            _record(span, "bad_request")
            return usage_response()

        upstream = None
        try:
            upstream = await fetch_upstream(target, disguise_headers(target))
            span.set_attribute("proxy.status_code", upstream.status)
            span.set_attribute("proxy.content_type", upstream.content_type)
            return await _respond(upstream, target, proxy_request.self_base, span)
        except FetchError as e:
            logger.error(f"Proxy fetch failed for {redact_url(target)}: {e.message}")
            span.set_attribute("proxy.error", e.message)
            _record(span, "error")
            return failure_response(e.message)
        except Exception as e:
            if upstream is not None:
                await upstream.aclose()
            log_exception_with_details(logger, f"[Proxy] {redact_url(target)}", e)
            message = format_exception_message(e)
            span.set_attribute("proxy.error", message)
            _record(span, "error")
            return failure_response(message)
