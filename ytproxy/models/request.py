from typing import Any, Dict, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator


def is_valid_url(url: Optional[str]) -> bool:
    """Accept absolute http(s) URLs only"""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _as_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class InfoRequest(BaseModel):
    """Body of /analyze and /playlist. URL checks happen at the endpoint so failures map to 400."""
    url: Optional[str] = Field(None, description="Video or playlist URL")

    @field_validator("url", mode="before")
    @classmethod
    def coerce_url(cls, v):
        return _as_str(v)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "InfoRequest":
        return cls(url=payload.get("url"))


class PlaylistDownloadRequest(InfoRequest):
    media_type: Optional[str] = Field(None, description="audio | video | video+audio")
    quality: Optional[str] = Field(None, description="144p ... 1080p, 1440p, 4k/2160p")

    @field_validator("media_type", "quality", mode="before")
    @classmethod
    def coerce_optional(cls, v):
        return _as_str(v)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PlaylistDownloadRequest":
        return cls(
            url=payload.get("url"),
            media_type=payload.get("media_type"),
            quality=payload.get("quality"),
        )
