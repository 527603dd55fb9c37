from .internal import ExtractionAttempt, ExtractionJob, FormatDescriptor, MediaKind, SelectionRequest
from .request import InfoRequest, PlaylistDownloadRequest
from .response import FormatInfo, PlaylistDownloadItem, PlaylistDownloadResponse, PlaylistInfo, VideoInfo

__all__ = [
    "ExtractionAttempt",
    "ExtractionJob",
    "FormatDescriptor",
    "FormatInfo",
    "InfoRequest",
    "MediaKind",
    "PlaylistDownloadItem",
    "PlaylistDownloadRequest",
    "PlaylistDownloadResponse",
    "PlaylistInfo",
    "SelectionRequest",
    "VideoInfo",
]
