import functools

from fastapi import APIRouter, Depends, Request

from ytproxy.api.common import localize_extraction_error, read_payload
from ytproxy.core.logging import log_error, log_info
from ytproxy.exceptions import ExtractionFailed, InternalError, InvalidInput, YtProxyError
from ytproxy.i18n import i18n
from ytproxy.infra.rate_limit import rate_limiter
from ytproxy.models.request import InfoRequest, is_valid_url
from ytproxy.models.response import VideoInfo
from ytproxy.services.info import VideoInfoService
from ytproxy.utils.locale import get_locale, safe_url_for_log

router = APIRouter()


@router.post("/analyze", response_model=VideoInfo, dependencies=[Depends(rate_limiter)])
async def analyze_video(request: Request):
    """Video metadata with the formats that carry a direct URL"""

    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    body = InfoRequest.from_payload(await read_payload(request))
    if not is_valid_url(body.url):
        raise InvalidInput(_("error.invalid_url"))

    log_info(request, _("log.analyzing", url=safe_url_for_log(body.url)))

    try:
        video_info = await VideoInfoService.fetch(body.url)
    except ExtractionFailed as e:
        log_error(request, f"Extraction failed: {e.detail}")
        raise localize_extraction_error(e, _)
    except YtProxyError:
        raise
    except Exception as e:
        log_error(request, f"Analyze error: {str(e)}")
        raise InternalError(_("error.internal"), detail=str(e))

    log_info(request, _("log.analyzed", title=video_info.title, count=len(video_info.formats)))
    return video_info
