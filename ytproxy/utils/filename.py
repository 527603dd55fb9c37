import re
from typing import Optional
from urllib.parse import quote

from ytproxy.models.internal import FormatDescriptor

ILLEGAL_CHARS = re.compile(r'[\x00-\x1f\x7f-\x9f<>:"/\\|?*\u2028\u2029]')
DEFAULT_BASENAME = "download"


def sanitize_filename(name: str) -> str:
    """Strip control and path-illegal characters, then trim. Idempotent."""
    return ILLEGAL_CHARS.sub("", name or "").strip()


def choose_extension(fmt: Optional[FormatDescriptor]) -> str:
    if fmt is not None and fmt.ext:
        return fmt.ext
    if fmt is not None and fmt.is_audio_only:
        return "mp3"
    return "mp4"


def build_download_filename(
    title: Optional[str],
    fmt: Optional[FormatDescriptor],
    custom_name: Optional[str] = None,
) -> str:
    """Custom name or title, sanitized; the extension is added unless the name already has a dot"""
    base = sanitize_filename(custom_name) if custom_name else ""
    if not base:
        base = sanitize_filename(title or "") or DEFAULT_BASENAME
    if "." in base:
        return base
    return f"{base}.{choose_extension(fmt)}"


def content_disposition(filename: str) -> str:
    """attachment header that stays Latin-1 encodable for non-ASCII names"""
    if filename.isascii():
        return f'attachment; filename="{filename}"'
    fallback = "".join(c if c.isascii() else "_" for c in filename)
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename)}"
