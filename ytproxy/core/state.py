from dataclasses import dataclass
from typing import Optional

from redis.asyncio import Redis
from yt_dlp.version import __version__ as ytdlp_version


@dataclass
class RuntimeState:
    """Centralized runtime state"""
    redis: Optional[Redis] = None
    ytdlp_version: str = ytdlp_version


state = RuntimeState()
