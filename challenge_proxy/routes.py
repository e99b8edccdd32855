from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse, Response

from challenge_proxy.page_proxy import ProxyRequest, handle_proxy_request
from challenge_proxy.page_proxy.handler import usage_response

router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def usage() -> Response:
    """Stateless usage hint; the proxy lives under /proxy."""
    return usage_response()


@router.get("/proxy")
async def proxy_page(request: Request) -> Response:
    """Fetch the page given by ``?url=`` and return it routed through this proxy."""
    return await handle_proxy_request(ProxyRequest.from_request(request))
