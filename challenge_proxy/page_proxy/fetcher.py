import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

import httpx

from challenge_proxy.vars import PROXY_TIMEOUT

from .errors import FetchError

logger = logging.getLogger("uvicorn.error")


@dataclass
class UpstreamResponse:
    """
    Final upstream response after redirects.

    Exactly one of ``text`` (content-type contains "text", fully decoded) or
    ``stream`` (raw bytes, pulled lazily and only once) is set.
    """

    status: int
    headers: httpx.Headers
    content_type: str
    text: Optional[str] = None
    stream: Optional[AsyncIterator[bytes]] = None
    encoding: str = "utf-8"
    closer: Optional[Callable[[], Awaitable[None]]] = field(default=None, repr=False)

    def __post_init__(self):
        if (self.text is None) == (self.stream is None):
            raise ValueError("UpstreamResponse needs exactly one of text or stream")

    @property
    def is_text(self) -> bool:
        return self.text is not None

    @property
    def is_html(self) -> bool:
        return self.text is not None and "text/html" in self.content_type.lower()

    async def aclose(self) -> None:
        """Release the upstream connection; safe to call more than once."""
        if self.closer is not None:
            await self.closer()


def build_client(timeout: float) -> httpx.AsyncClient:
    """Create the per-request client used for the outbound GET."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        follow_redirects=True,
    )


def _describe(error: BaseException) -> str:
    # httpx timeouts frequently carry an empty message
    return str(error) or type(error).__name__


async def _iter_raw(
    response: httpx.Response, closer: Callable[[], Awaitable[None]]
) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    except httpx.HTTPError as e:
        logger.error(f"Upstream stream from {response.url} broke off: {_describe(e)}")
        raise FetchError(_describe(e), e) from e
    finally:
        await closer()


async def fetch_upstream(
    target: str, headers: Dict[str, str], timeout: Optional[float] = None
) -> UpstreamResponse:
    """
    GET ``target`` following redirects and classify the body.

    Text bodies are read and decoded before returning; everything else is
    handed back as an unbuffered stream that the caller must consume or close.
    Any transport failure (including the timeout) becomes a FetchError.
    """
    client = build_client(PROXY_TIMEOUT if timeout is None else timeout)
    response: Optional[httpx.Response] = None

    async def close() -> None:
        if response is not None:
            await response.aclose()
        await client.aclose()

    try:
        request = client.build_request("GET", target, headers=headers)
        response = await client.send(request, stream=True)
        content_type = response.headers.get("content-type", "")
        logger.debug(
            f"Upstream {target} answered {response.status_code} "
            f"({content_type or 'no content-type'}) after {len(response.history)} redirect(s)"
        )

        if "text" in content_type.lower():
            await response.aread()
            text = response.text
            encoding = response.encoding or "utf-8"
            await close()
            return UpstreamResponse(
                status=response.status_code,
                headers=response.headers,
                content_type=content_type,
                text=text,
                encoding=encoding,
            )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        await close()
        raise FetchError(_describe(e), e) from e
    except BaseException:
        await close()
        raise

    return UpstreamResponse(
        status=response.status_code,
        headers=response.headers,
        content_type=content_type,
        stream=_iter_raw(response, close),
        closer=close,
    )
