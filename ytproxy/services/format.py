from typing import List, Optional, Sequence

from ytproxy.config.settings import config
from ytproxy.models.internal import FormatDescriptor, MediaKind, SelectionRequest

PREFERRED_AUDIO_EXTS = ("m4a", "mp4")
PREFERRED_AUDIO_BONUS = 10_000_000

QUALITY_HEIGHTS = {
    "144p": 144,
    "240p": 240,
    "360p": 360,
    "480p": 480,
    "720p": 720,
    "1080p": 1080,
    "1440p": 1440,
    "2160p": 2160,
    "4k": 2160,
}


def normalize_format_id(raw: Optional[str]) -> Optional[str]:
    """'95-4' -> '95', '140-drc' -> '140'"""
    if not raw:
        return None
    return raw.split("-", 1)[0]


def quality_to_height(quality: Optional[str]) -> Optional[int]:
    """Map a quality label onto a target pixel height"""
    if not quality:
        return None
    return QUALITY_HEIGHTS.get(quality.strip().lower())


def audio_score(fmt: FormatDescriptor) -> float:
    ext = (fmt.ext or "").lower()
    bonus = PREFERRED_AUDIO_BONUS if ext in PREFERRED_AUDIO_EXTS else 0
    return bonus + fmt.audio_bitrate


class FormatSelector:
    """Pick one format out of a yt-dlp format list"""

    @staticmethod
    def filter_by_kind(
        descriptors: Sequence[FormatDescriptor],
        kind: MediaKind,
        combined_ids: Optional[Sequence[str]] = None,
    ) -> List[FormatDescriptor]:
        if kind == MediaKind.AUDIO:
            return [f for f in descriptors if f.is_audio_only]

        if kind == MediaKind.VIDEO:
            return [f for f in descriptors if f.is_video_only]

        # HLS ids some providers list without codec info
        if combined_ids is None:
            combined_ids = config.ytdlp.combined_format_ids
        allowed = set(combined_ids)
        return [f for f in descriptors if f.is_combined or f.format_id in allowed]

    @staticmethod
    def pick_best(candidates: Sequence[FormatDescriptor]) -> Optional[FormatDescriptor]:
        """Highest bitrate, first occurrence wins ties"""
        if not candidates:
            return None
        return max(candidates, key=lambda f: f.bitrate)

    @staticmethod
    def pick_audio(candidates: Sequence[FormatDescriptor]) -> Optional[FormatDescriptor]:
        if not candidates:
            return None
        return max(candidates, key=audio_score)

    @staticmethod
    def pick_closest_height(
        candidates: Sequence[FormatDescriptor],
        target_height: int,
    ) -> Optional[FormatDescriptor]:
        """Closest height to target, then highest bitrate; unknown heights are ignored"""
        sized = [f for f in candidates if f.height]
        if not sized:
            return FormatSelector.pick_best(candidates)
        return min(sized, key=lambda f: (abs(f.height - target_height), -f.bitrate))

    @staticmethod
    def select(
        descriptors: Sequence[FormatDescriptor],
        request: SelectionRequest,
        combined_ids: Optional[Sequence[str]] = None,
    ) -> Optional[FormatDescriptor]:
        """
        Select a format for the requested kind.
        Returns None when nothing of that kind is available.
        """
        candidates = FormatSelector.filter_by_kind(descriptors, request.kind, combined_ids)
        if not candidates:
            return None

        if request.kind == MediaKind.AUDIO:
            return FormatSelector.pick_audio(candidates)

        if request.kind == MediaKind.VIDEO_AUDIO and request.target_height:
            return FormatSelector.pick_closest_height(candidates, request.target_height)

        return FormatSelector.pick_best(candidates)

    @staticmethod
    def find_by_id(
        descriptors: Sequence[FormatDescriptor],
        raw_id: Optional[str],
    ) -> Optional[FormatDescriptor]:
        """Find a format by id, tolerating suffixes such as '95-4' or '140-drc'"""
        if not raw_id:
            return None
        normalized = normalize_format_id(raw_id)
        for fmt in descriptors:
            fid = fmt.format_id
            if not fid:
                continue
            if fid == raw_id or fid == normalized or raw_id.startswith(fid + "-"):
                return fmt
        return None
