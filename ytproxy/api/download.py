import functools
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from ytproxy.api.common import localize_extraction_error
from ytproxy.core.logging import log_error, log_info, log_warning
from ytproxy.exceptions import (
    ExtractionFailed,
    InternalError,
    InvalidInput,
    MissingDirectUrl,
    NoMatchingFormat,
    UpstreamFetchFailed,
    YtProxyError,
)
from ytproxy.i18n import i18n
from ytproxy.infra.rate_limit import rate_limiter
from ytproxy.models.internal import MediaKind, SelectionRequest
from ytproxy.models.request import is_valid_url
from ytproxy.services.format import FormatSelector
from ytproxy.services.info import parse_formats
from ytproxy.services.stream import stream_proxy
from ytproxy.services.ytdlp import extractor
from ytproxy.utils.filename import build_download_filename
from ytproxy.utils.locale import get_locale, safe_url_for_log

router = APIRouter()


@router.get("/download", name="download_media", dependencies=[Depends(rate_limiter)])
async def download_media(
    request: Request,
    url: Optional[str] = Query(None, description="Video URL"),
    format_id: Optional[str] = Query(None, description="yt-dlp format id, suffixes like '95-4' tolerated"),
    media_type: Optional[str] = Query(None, description="audio | video | both (only used without format_id)"),
    filename: Optional[str] = Query(None, description="Custom download filename"),
):
    """Proxy-stream one format of a video with an attachment filename"""

    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    if not is_valid_url(url):
        raise InvalidInput(_("error.invalid_url"))

    safe_url = safe_url_for_log(url)

    try:
        info = await extractor.fetch_video(url)
        formats = parse_formats(info)

        if format_id:
            selected = FormatSelector.find_by_id(formats, format_id)
            if selected is None:
                log_warning(request, f"Format {format_id} not offered for {safe_url}")
                raise NoMatchingFormat(_("error.format_not_found"))
        else:
            kind = MediaKind.parse(media_type or "both")
            selected = FormatSelector.select(formats, SelectionRequest(kind=kind))
            if selected is None and kind == MediaKind.VIDEO_AUDIO:
                # separate streams only: best of everything offered
                selected = FormatSelector.pick_best(formats)
            if selected is None:
                log_warning(request, f"No {kind.value} format for {safe_url}")
                raise NoMatchingFormat(_("error.no_suitable_format"))

        if not selected.url:
            raise MissingDirectUrl(_("error.no_direct_url"))

        log_info(request, _("log.download_selected", format_id=selected.format_id, url=safe_url))

        name = build_download_filename(info.get("title"), selected, filename)
        upstream = await stream_proxy.open(selected.url, name, request.headers.get("range"))

    except ExtractionFailed as e:
        log_error(request, f"Extraction failed: {e.detail}")
        raise localize_extraction_error(e, _)
    except UpstreamFetchFailed as e:
        log_error(request, f"Upstream fetch failed for {safe_url}: {e.upstream_status or e.detail}")
        e.error = _("error.upstream_failed")
        raise
    except YtProxyError:
        raise
    except Exception as e:
        log_error(request, f"Download error: {str(e)}")
        raise InternalError(_("error.internal"), detail=str(e))

    log_info(request, _("log.streaming", filename=name, status=upstream.status_code))

    return upstream.to_response()
