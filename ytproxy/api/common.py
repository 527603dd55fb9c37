from typing import Any, Callable, Dict

from fastapi import Request
from starlette.formparsers import MultiPartException

from ytproxy.exceptions import ExtractionFailed, UpstreamAuthRequired

FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_payload(request: Request) -> Dict[str, Any]:
    """JSON or form body as a dict; unreadable bodies become {} so URL checks answer 400"""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(FORM_TYPES):
        try:
            form = await request.form()
        except MultiPartException:
            return {}
        return {k: v for k, v in form.items() if isinstance(v, str)}

    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def localize_extraction_error(
    exc: ExtractionFailed,
    _: Callable[..., str],
    playlist: bool = False,
) -> ExtractionFailed:
    """Fill in the user-facing message and remediation hint"""
    if isinstance(exc, UpstreamAuthRequired):
        exc.error = _("error.blocked")
        exc.hint = _("hint.cookie_playlist" if playlist else "hint.cookie_video")
    else:
        exc.error = _("error.fetch_playlist_failed" if playlist else "error.fetch_info_failed")
    return exc
