"""
Playlist fan-out: metadata fetch + format selection for every playlist entry.

Entries run concurrently within a fixed-size batch and batches run one after
another, which bounds the number of yt-dlp processes alive at once. A failing
entry only ever produces an error field on its own result.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from urllib.parse import urlencode

from ytproxy.config.settings import config
from ytproxy.models.internal import MediaKind, SelectionRequest
from ytproxy.models.request import is_valid_url
from ytproxy.models.response import FormatInfo, PlaylistDownloadItem, PlaylistVideo
from ytproxy.services.format import FormatSelector
from ytproxy.services.info import parse_formats
from ytproxy.services.ytdlp import extractor

log = logging.getLogger(__name__)

INVALID_URL_ERROR = "Invalid video URL, skipped"
NO_FORMAT_ERROR = "No matching format found"

FetchVideo = Callable[[str], Awaitable[Dict[str, Any]]]


def build_download_url(download_endpoint: str, video_url: str, format_id: str) -> str:
    """Per-video link against the single download endpoint"""
    return f"{download_endpoint}?{urlencode({'url': video_url, 'format_id': format_id})}"


class PlaylistFanout:
    """Resolve a download format for every playlist entry"""

    def __init__(self, fetch_video: Optional[FetchVideo] = None, batch_size: Optional[int] = None):
        """
        Args:
            fetch_video: Coroutine returning the yt-dlp document for one video URL.
            batch_size: Entries resolved concurrently; defaults to config.playlist.batch_size.
        """
        self.fetch_video = fetch_video or extractor.fetch_video
        self.batch_size = batch_size or config.playlist.batch_size

    async def resolve_entry(
        self,
        entry: PlaylistVideo,
        request: SelectionRequest,
        download_endpoint: str,
    ) -> PlaylistDownloadItem:
        base = {"title": entry.title, "id": entry.id, "url": entry.url}

        if not is_valid_url(entry.url):
            return PlaylistDownloadItem(**base, error=INVALID_URL_ERROR)

        try:
            info = await self.fetch_video(entry.url)
            chosen = FormatSelector.select(parse_formats(info), request)
        except Exception as e:
            log.warning(f"Failed to resolve playlist entry {entry.id or entry.url}: {e}")
            return PlaylistDownloadItem(**base, error=str(e) or type(e).__name__)

        if chosen is None or not chosen.format_id:
            return PlaylistDownloadItem(**base, error=NO_FORMAT_ERROR)

        return PlaylistDownloadItem(
            **base,
            format=FormatInfo.from_descriptor(chosen, request.kind.value),
            download_url=build_download_url(download_endpoint, entry.url, chosen.format_id),
        )

    async def resolve_all(
        self,
        entries: Sequence[PlaylistVideo],
        kind: MediaKind,
        target_height: Optional[int],
        download_endpoint: str,
    ) -> List[PlaylistDownloadItem]:
        """One result per entry, in input order"""
        request = SelectionRequest(
            kind=kind,
            target_height=target_height if kind == MediaKind.VIDEO_AUDIO else None,
        )
        results: List[PlaylistDownloadItem] = []

        log.debug(f"Resolving {len(entries)} playlist entries in batches of {self.batch_size}")

        for start in range(0, len(entries), self.batch_size):
            batch = entries[start:start + self.batch_size]
            results.extend(
                await asyncio.gather(
                    *(self.resolve_entry(e, request, download_endpoint) for e in batch)
                )
            )

        return results
