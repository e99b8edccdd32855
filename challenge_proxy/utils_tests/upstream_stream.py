import httpx


class ChunkedStream(httpx.AsyncByteStream):
    """
    Response body that is only produced while it is iterated, like a real
    network stream. Records whether the upstream side closed it.
    """

    def __init__(self, body: bytes, chunk_size: int = 1024):
        self.body = body
        self.chunk_size = chunk_size
        self.chunks_sent = 0
        self.closed = False

    async def __aiter__(self):
        for start in range(0, len(self.body), self.chunk_size):
            self.chunks_sent += 1
            yield self.body[start : start + self.chunk_size]

    async def aclose(self) -> None:
        self.closed = True


def as_streamed(response: httpx.Response) -> httpx.Response:
    """Rebuild a mock response built from bytes so its body streams lazily."""
    if not isinstance(response.stream, httpx.ByteStream):
        return response
    return httpx.Response(
        response.status_code,
        headers=response.headers,
        stream=ChunkedStream(response.content),
    )
