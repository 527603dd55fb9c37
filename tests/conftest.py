import copy

import httpx
import pytest

from ytproxy.main import app
from ytproxy.services.stream import stream_proxy
from ytproxy.services.ytdlp import ExtractionStrategy, StrategyError, extractor

VIDEO_URL = "https://www.youtube.com/watch?v=abc123"
PLAYLIST_URL = "https://www.youtube.com/playlist?list=PL123"

VIDEO_INFO = {
    "id": "abc123",
    "title": "My: Video?",
    "thumbnail": None,
    "thumbnails": [{"url": "https://i.ytimg.com/vi/abc123/default.jpg"}],
    "duration": 120,
    "uploader": "Uploader",
    "channel": "Channel",
    "webpage_url": VIDEO_URL,
    "formats": [
        {"format_id": "sb0", "ext": "mhtml", "vcodec": "none", "acodec": "none", "format_note": "storyboard"},
        {"format_id": "140", "ext": "m4a", "vcodec": "none", "acodec": "mp4a.40.2", "abr": 129.5, "tbr": 129.5,
         "url": "https://media.example/140"},
        {"format_id": "251", "ext": "webm", "vcodec": "none", "acodec": "opus", "abr": 160.0,
         "url": "https://media.example/251"},
        {"format_id": "137", "ext": "mp4", "vcodec": "avc1.640028", "acodec": "none", "width": 1920, "height": 1080,
         "tbr": 4000.0, "url": "https://media.example/137"},
        {"format_id": "18", "ext": "mp4", "vcodec": "avc1.42001E", "acodec": "mp4a.40.2", "width": 640, "height": 360,
         "tbr": 500.0, "format_note": "360p", "url": "https://media.example/18"},
        {"format_id": "95", "ext": "mp4", "vcodec": "avc1.4d401f", "acodec": "mp4a.40.2", "width": 1280, "height": 720,
         "tbr": 1500.0, "url": "https://media.example/95"},
    ],
}

PLAYLIST_INFO = {
    "id": "PL123",
    "title": "Mix",
    "thumbnails": [{"url": "https://i.ytimg.com/pl.jpg"}],
    "uploader": "Uploader",
    "channel": "Channel",
    "webpage_url": PLAYLIST_URL,
    "entries": [
        {"id": "abc123", "title": "One", "url": VIDEO_URL},
        {"id": "", "title": None, "url": ""},
        {"id": "broken1", "title": "Two"},
    ],
}


class FakeStrategy(ExtractionStrategy):
    """Strategy returning canned documents, or failing with a fixed error"""

    def __init__(self, name="fake", result=None, error=None):
        self.name = name
        self.result = result
        self.error = error
        self.jobs = []

    async def try_extract(self, job):
        self.jobs.append(job)
        if self.error:
            raise StrategyError(self.error)
        if callable(self.result):
            return self.result(job)
        return copy.deepcopy(self.result)


def default_documents(job):
    if job.flat:
        return copy.deepcopy(PLAYLIST_INFO)
    if "broken1" in job.url:
        raise StrategyError("ERROR: [youtube] broken1: Video unavailable")
    return copy.deepcopy(VIDEO_INFO)


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def strategies(monkeypatch):
    """Replace the yt-dlp strategy chain; tests may reassign the list contents"""
    chain = [FakeStrategy("library", result=default_documents)]
    monkeypatch.setattr(extractor, "strategies", chain)
    return chain


@pytest.fixture
def upstream(monkeypatch):
    """Fake media host; set .handler to change responses, inspect .requests"""

    class Upstream:
        def __init__(self):
            self.requests = []
            self.handler = lambda request: httpx.Response(
                200,
                headers={"content-type": "video/mp4", "content-length": "11"},
                content=b"hello world",
            )

        def __call__(self, request):
            self.requests.append(request)
            return self.handler(request)

    fake = Upstream()
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake), follow_redirects=True)
    monkeypatch.setattr(stream_proxy, "_client", client)
    return fake


@pytest.fixture
async def client():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
