from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

NONE_CODEC = "none"


class MediaKind(str, Enum):
    """Media kind, always derived from the codec sentinels"""
    AUDIO = "audio"
    VIDEO = "video"
    VIDEO_AUDIO = "video+audio"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MediaKind":
        """Map a request media_type onto a kind ("both" and unknown values mean video+audio)"""
        v = (value or "").strip().lower()
        if v == "audio":
            return cls.AUDIO
        if v == "video":
            return cls.VIDEO
        return cls.VIDEO_AUDIO


def _has_codec(codec: Optional[str]) -> bool:
    return bool(codec) and codec != NONE_CODEC


class FormatDescriptor(BaseModel):
    """One downloadable media variant as reported by yt-dlp"""
    format_id: str
    ext: Optional[str] = None
    vcodec: Optional[str] = None
    acodec: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    tbr: Optional[float] = None
    abr: Optional[float] = None
    filesize: Optional[float] = None
    fps: Optional[float] = None
    format_note: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_ytdlp(cls, data: Dict[str, Any]) -> "FormatDescriptor":
        format_id = data.get("format_id")
        if format_id is None:
            format_id = data.get("itag")
        return cls(
            format_id="" if format_id is None else str(format_id),
            ext=data.get("ext"),
            vcodec=data.get("vcodec"),
            acodec=data.get("acodec"),
            width=data.get("width"),
            height=data.get("height"),
            tbr=data.get("tbr"),
            abr=data.get("abr"),
            filesize=data.get("filesize") or data.get("filesize_approx"),
            fps=data.get("fps"),
            format_note=data.get("format_note"),
            url=data.get("url"),
        )

    @property
    def is_audio_only(self) -> bool:
        return self.vcodec == NONE_CODEC

    @property
    def is_video_only(self) -> bool:
        return self.acodec == NONE_CODEC and _has_codec(self.vcodec)

    @property
    def is_combined(self) -> bool:
        return _has_codec(self.vcodec) and _has_codec(self.acodec)

    @property
    def kind(self) -> MediaKind:
        if self.vcodec == NONE_CODEC:
            return MediaKind.AUDIO
        if self.acodec == NONE_CODEC:
            return MediaKind.VIDEO
        return MediaKind.VIDEO_AUDIO

    @property
    def bitrate(self) -> float:
        """Total bitrate, falling back to the audio bitrate"""
        if self.tbr is not None:
            return self.tbr
        return self.abr or 0

    @property
    def audio_bitrate(self) -> float:
        """Audio bitrate, falling back to the total bitrate"""
        if self.abr is not None:
            return self.abr
        return self.tbr or 0

    @property
    def resolution(self) -> Optional[str]:
        if self.format_note:
            return self.format_note
        dims = f"{self.width or ''}x{self.height or ''}"
        return dims if dims != "x" else None


class SelectionRequest(BaseModel):
    kind: MediaKind = MediaKind.VIDEO_AUDIO
    target_height: Optional[int] = Field(None, description="Only used for video+audio")


class ExtractionJob(BaseModel):
    """One extractor invocation"""
    url: str
    flat: bool = False
    cookie_file: Optional[str] = None
    timeout: Optional[float] = None


class ExtractionAttempt(BaseModel):
    """A failed invocation strategy"""
    strategy: str
    error: str
