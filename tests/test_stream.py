import asyncio

import httpx
import pytest

from ytproxy.exceptions import UpstreamFetchFailed
from ytproxy.services.stream import StreamProxy

CHUNK = b"x" * 65536


class RecordingStream(httpx.AsyncByteStream):
    """Upstream body that counts chunks handed out and records aclose"""

    def __init__(self, chunks):
        self.chunks = chunks
        self.sent = 0
        self.closed = False

    async def __aiter__(self):
        for _ in range(self.chunks):
            self.sent += 1
            await asyncio.sleep(0)
            yield CHUNK

    async def aclose(self):
        self.closed = True


def make_proxy(stream):
    def handler(request):
        return httpx.Response(200, headers={"content-type": "video/mp4"}, stream=stream)

    return StreamProxy(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


def http_scope(spec_version="2.3"):
    return {
        "type": "http",
        "method": "GET",
        "path": "/api/download",
        "headers": [],
        "asgi": {"version": "3.0", "spec_version": spec_version},
    }


def body_chunks(messages):
    return [m["body"] for m in messages if m["type"] == "http.response.body" and m.get("body")]


@pytest.mark.asyncio
async def test_upstream_closed_after_full_relay():
    stream = RecordingStream(3)
    upstream = await make_proxy(stream).open("https://media.example/18", "clip.mp4")
    messages = []
    never = asyncio.Event()
    first = True

    async def receive():
        nonlocal first
        if first:
            first = False
            return {"type": "http.request", "body": b"", "more_body": False}
        await never.wait()

    async def send(message):
        messages.append(message)

    await upstream.to_response()(http_scope(), receive, send)

    assert b"".join(body_chunks(messages)) == CHUNK * 3
    assert messages[0]["status"] == 200
    assert stream.closed is True


@pytest.mark.asyncio
async def test_upstream_closed_when_client_disconnects():
    stream = RecordingStream(1000)
    upstream = await make_proxy(stream).open("https://media.example/18", "clip.mp4")
    messages = []
    enough = asyncio.Event()
    first = True

    async def receive():
        nonlocal first
        if first:
            first = False
            return {"type": "http.request", "body": b"", "more_body": False}
        await enough.wait()
        return {"type": "http.disconnect"}

    async def send(message):
        messages.append(message)
        if len(body_chunks(messages)) >= 3:
            enough.set()

    await upstream.to_response()(http_scope(), receive, send)

    assert stream.closed is True
    assert stream.sent < 1000


@pytest.mark.asyncio
@pytest.mark.parametrize("spec_version", ["2.3", "2.4"])
async def test_upstream_closed_when_send_fails(spec_version):
    stream = RecordingStream(1000)
    upstream = await make_proxy(stream).open("https://media.example/18", "clip.mp4")
    sent = []
    never = asyncio.Event()
    first = True

    async def receive():
        nonlocal first
        if first:
            first = False
            return {"type": "http.request", "body": b"", "more_body": False}
        await never.wait()

    async def send(message):
        sent.append(message)
        if len(body_chunks(sent)) >= 3:
            raise OSError("connection reset by peer")

    with pytest.raises(Exception):
        await upstream.to_response()(http_scope(spec_version), receive, send)

    assert stream.closed is True
    assert stream.sent < 1000


@pytest.mark.asyncio
async def test_open_closes_upstream_on_error_status():
    stream = RecordingStream(1)

    def handler(request):
        return httpx.Response(404, stream=stream)

    proxy = StreamProxy(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

    with pytest.raises(UpstreamFetchFailed) as exc_info:
        await proxy.open("https://media.example/18", "clip.mp4")

    assert exc_info.value.upstream_status == 404
    assert stream.closed is True
