import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional

import httpx
from fastapi.responses import StreamingResponse

from ytproxy.config.settings import config
from ytproxy.exceptions import UpstreamFetchFailed
from ytproxy.utils.filename import content_disposition

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def upstream_headers(range_header: Optional[str] = None) -> Dict[str, str]:
    h = {
        "User-Agent": config.proxy.user_agent,
        "Accept": "*/*",
        "Accept-Encoding": "identity",
    }
    # Range transparency (critical for seek)
    if range_header:
        h["Range"] = range_header
    return h


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300 or status_code == 206


@dataclass
class UpstreamStream:
    """An open upstream response ready to be relayed"""
    status_code: int
    headers: Dict[str, str]
    response: httpx.Response = field(repr=False)

    async def body(self, chunk_size: Optional[int] = None) -> AsyncIterator[bytes]:
        """Relay the body chunk by chunk; the upstream is closed however iteration ends"""
        try:
            async for chunk in self.response.aiter_bytes(chunk_size or config.proxy.chunk_size):
                yield chunk
        finally:
            await self.response.aclose()

    async def aclose(self) -> None:
        await self.response.aclose()

    def to_response(self) -> "UpstreamStreamingResponse":
        return UpstreamStreamingResponse(self)


class UpstreamStreamingResponse(StreamingResponse):
    """
    StreamingResponse that releases the upstream connection as soon as the
    ASGI call returns, including when the client disconnects mid-body and
    the body iterator is left suspended.
    """

    def __init__(self, upstream: UpstreamStream):
        super().__init__(upstream.body(), status_code=upstream.status_code, headers=upstream.headers)
        self.upstream = upstream

    async def __call__(self, scope, receive, send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.upstream.aclose()


class StreamProxy:
    """Single pass-through fetch of a direct media URL"""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=httpx.Timeout(config.proxy.read_timeout, connect=config.proxy.connect_timeout),
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def open(
        self,
        direct_url: str,
        filename: str,
        range_header: Optional[str] = None,
    ) -> UpstreamStream:
        """
        GET the media URL (redirects followed, Range forwarded verbatim) and
        build the headers to relay. Raises UpstreamFetchFailed on a non-2xx/206.
        """
        try:
            req = self.client.build_request("GET", direct_url, headers=upstream_headers(range_header))
            r = await self.client.send(req, stream=True)
        except httpx.HTTPError as e:
            logger.error(f"Upstream request error: {e}")
            raise UpstreamFetchFailed(detail=str(e))

        if not is_success(r.status_code):
            await r.aclose()
            logger.warning(f"Upstream responded with {r.status_code}")
            raise UpstreamFetchFailed(upstream_status=r.status_code)

        headers = {
            "Content-Type": r.headers.get("content-type") or DEFAULT_CONTENT_TYPE,
            "Accept-Ranges": r.headers.get("accept-ranges") or "bytes",
            "Content-Disposition": content_disposition(filename),
        }
        for k in ("content-length", "content-range"):
            if r.headers.get(k):
                headers[k.title()] = r.headers[k]

        return UpstreamStream(status_code=r.status_code, headers=headers, response=r)


stream_proxy = StreamProxy()
