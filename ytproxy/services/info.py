from typing import Any, Dict, List, Optional

from ytproxy.models.internal import FormatDescriptor
from ytproxy.models.response import (
    FormatInfo,
    PlaylistInfo,
    PlaylistSummary,
    PlaylistVideo,
    VideoInfo,
)
from ytproxy.services.ytdlp import extractor

UNAVAILABLE_TITLE = "<<unavailable or removed video>>"
WATCH_URL = "https://www.youtube.com/watch?v={id}"


def pick_thumbnail(info: Dict[str, Any]) -> Optional[str]:
    """info.thumbnail, else the first entry of info.thumbnails"""
    thumbnail = info.get("thumbnail")
    if thumbnail:
        return thumbnail
    thumbs = info.get("thumbnails")
    if isinstance(thumbs, list) and thumbs and isinstance(thumbs[0], dict):
        return thumbs[0].get("url")
    return None


def parse_formats(info: Dict[str, Any]) -> List[FormatDescriptor]:
    return [
        FormatDescriptor.from_ytdlp(f)
        for f in (info.get("formats") or [])
        if isinstance(f, dict)
    ]


def normalize_entry(entry: Dict[str, Any]) -> PlaylistVideo:
    """Flat playlist entry with title/url fallbacks applied"""
    video_id = str(entry.get("id") or "")
    video_url = entry.get("url") or entry.get("webpage_url") or ""
    if not video_url and video_id:
        video_url = WATCH_URL.format(id=video_id)
    return PlaylistVideo(
        title=entry.get("title") or UNAVAILABLE_TITLE,
        id=video_id,
        url=video_url,
    )


def playlist_summary(info: Dict[str, Any], request_url: str) -> PlaylistSummary:
    return PlaylistSummary(
        id=info.get("id"),
        title=info.get("title"),
        thumbnail=pick_thumbnail(info),
        uploader=info.get("uploader"),
        channel=info.get("channel"),
        webpage_url=info.get("webpage_url") or request_url,
    )


class VideoInfoService:
    """Shape yt-dlp documents into API responses"""

    @staticmethod
    def build_video_info(info: Dict[str, Any], request_url: str) -> VideoInfo:
        formats = [
            FormatInfo.from_descriptor(f)
            for f in parse_formats(info)
            if f.url
        ]
        return VideoInfo(
            id=info.get("id"),
            title=info.get("title") or info.get("fulltitle"),
            thumbnail=pick_thumbnail(info),
            duration=info.get("duration"),
            uploader=info.get("uploader"),
            channel=info.get("channel"),
            webpage_url=info.get("webpage_url") or request_url,
            formats=formats,
        )

    @staticmethod
    def build_playlist_info(info: Dict[str, Any], request_url: str) -> PlaylistInfo:
        videos = [
            normalize_entry(e)
            for e in (info.get("entries") or [])
            if isinstance(e, dict)
        ]
        summary = playlist_summary(info, request_url)
        return PlaylistInfo(video_count=len(videos), videos=videos, **summary.model_dump())

    @staticmethod
    async def fetch(url: str) -> VideoInfo:
        info = await extractor.fetch_video(url)
        return VideoInfoService.build_video_info(info, url)

    @staticmethod
    async def fetch_playlist(url: str) -> PlaylistInfo:
        info = await extractor.fetch_playlist(url)
        return VideoInfoService.build_playlist_info(info, url)
