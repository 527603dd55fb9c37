from typing import List, Optional

from pydantic import BaseModel

from ytproxy.models.internal import FormatDescriptor


class FormatInfo(BaseModel):
    """Format as shown to the client"""
    format_id: Optional[str] = None
    ext: Optional[str] = None
    resolution: Optional[str] = None
    filesize: Optional[float] = None
    fps: Optional[float] = None
    tbr: Optional[float] = None
    vcodec: Optional[str] = None
    acodec: Optional[str] = None
    type: str

    @classmethod
    def from_descriptor(cls, fmt: FormatDescriptor, type_: Optional[str] = None) -> "FormatInfo":
        return cls(
            format_id=fmt.format_id,
            ext=fmt.ext,
            resolution=fmt.resolution,
            filesize=fmt.filesize,
            fps=fmt.fps,
            tbr=fmt.tbr,
            vcodec=fmt.vcodec,
            acodec=fmt.acodec,
            type=type_ or fmt.kind.value,
        )


class VideoInfo(BaseModel):
    """Video information response"""
    id: Optional[str] = None
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[float] = None
    uploader: Optional[str] = None
    channel: Optional[str] = None
    webpage_url: Optional[str] = None
    formats: List[FormatInfo] = []


class PlaylistVideo(BaseModel):
    title: str
    id: str
    url: str


class PlaylistSummary(BaseModel):
    id: Optional[str] = None
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    uploader: Optional[str] = None
    channel: Optional[str] = None
    webpage_url: Optional[str] = None


class PlaylistInfo(PlaylistSummary):
    """Flat playlist listing response"""
    video_count: int
    videos: List[PlaylistVideo]


class PlaylistDownloadItem(BaseModel):
    """Per-entry fan-out result: format + download_url, or error"""
    title: str
    id: str
    url: str
    format: Optional[FormatInfo] = None
    download_url: Optional[str] = None
    error: Optional[str] = None


class PlaylistDownloadResponse(BaseModel):
    playlist: PlaylistSummary
    media_type: str
    quality: Optional[str] = None
    video_count: int
    videos: List[PlaylistDownloadItem]
