import functools

from fastapi import APIRouter, Depends, Request

from ytproxy.api.common import localize_extraction_error, read_payload
from ytproxy.core.logging import log_error, log_info
from ytproxy.exceptions import ExtractionFailed, InternalError, InvalidInput, YtProxyError
from ytproxy.i18n import i18n
from ytproxy.infra.rate_limit import rate_limiter
from ytproxy.models.internal import MediaKind
from ytproxy.models.request import InfoRequest, PlaylistDownloadRequest, is_valid_url
from ytproxy.models.response import PlaylistDownloadResponse, PlaylistInfo
from ytproxy.services.format import quality_to_height
from ytproxy.services.info import VideoInfoService, playlist_summary
from ytproxy.services.playlist import PlaylistFanout
from ytproxy.services.ytdlp import extractor
from ytproxy.utils.locale import get_locale, safe_url_for_log

router = APIRouter()


@router.post("/playlist", response_model=PlaylistInfo, dependencies=[Depends(rate_limiter)])
async def list_playlist(request: Request):
    """Flat playlist listing (JSON or form body)"""

    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    body = InfoRequest.from_payload(await read_payload(request))
    if not is_valid_url(body.url):
        raise InvalidInput(_("error.invalid_playlist_url"))

    log_info(request, _("log.playlist_listing", url=safe_url_for_log(body.url)))

    try:
        return await VideoInfoService.fetch_playlist(body.url)
    except ExtractionFailed as e:
        log_error(request, f"Playlist extraction failed: {e.detail}")
        raise localize_extraction_error(e, _, playlist=True)
    except YtProxyError:
        raise
    except Exception as e:
        log_error(request, f"Playlist error: {str(e)}")
        raise InternalError(_("error.internal"), detail=str(e))


@router.post("/playlist/download", response_model=PlaylistDownloadResponse, dependencies=[Depends(rate_limiter)])
async def download_playlist(request: Request):
    """Resolve a download link for every playlist entry"""

    locale = get_locale(request.headers.get("accept-language"))
    _ = functools.partial(i18n.get, locale=locale)

    body = PlaylistDownloadRequest.from_payload(await read_payload(request))
    if not is_valid_url(body.url):
        raise InvalidInput(_("error.invalid_playlist_url"))

    media_type = (body.media_type or MediaKind.VIDEO_AUDIO.value).lower()
    kind = MediaKind.parse(media_type)
    target_height = quality_to_height(body.quality) if kind == MediaKind.VIDEO_AUDIO else None

    try:
        playlist_info = await extractor.fetch_playlist(body.url)
        playlist = VideoInfoService.build_playlist_info(playlist_info, body.url)

        log_info(request, _("log.playlist_resolving", count=playlist.video_count, url=safe_url_for_log(body.url)))

        videos = await PlaylistFanout().resolve_all(
            playlist.videos,
            kind,
            target_height,
            str(request.url_for("download_media")),
        )
    except ExtractionFailed as e:
        log_error(request, f"Playlist extraction failed: {e.detail}")
        raise localize_extraction_error(e, _, playlist=True)
    except YtProxyError:
        raise
    except Exception as e:
        log_error(request, f"Playlist download error: {str(e)}")
        raise InternalError(_("error.internal"), detail=str(e))

    return PlaylistDownloadResponse(
        playlist=playlist_summary(playlist_info, body.url),
        media_type=media_type,
        quality=body.quality,
        video_count=len(videos),
        videos=videos,
    )
