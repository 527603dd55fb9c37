from fastapi import APIRouter

from ytproxy.config.settings import config
from ytproxy.core.state import state
from ytproxy.i18n import i18n
from ytproxy.services.ytdlp import resolve_cookie_file

router = APIRouter()


async def redis_status() -> str:
    if not state.redis:
        return i18n.get("response.redis_disabled")
    try:
        await state.redis.ping()
        return i18n.get("response.redis_connected")
    except Exception:
        return i18n.get("response.redis_disconnected")


@router.get("/")
async def root():
    """Root endpoint"""
    return {
        "status": i18n.get("response.status_running"),
        "service": config.api.title,
        "version": config.api.version,
        "ytdlp_version": state.ytdlp_version,
        "redis_enabled": state.redis is not None,
    }


@router.get("/health")
async def health_check():
    """Lightweight health check"""
    return {
        "status": i18n.get("health.status"),
        "ytdlp_version": state.ytdlp_version,
        "strategies": config.ytdlp.strategies,
        "cookie_file_configured": resolve_cookie_file(config.ytdlp.cookie_file) is not None,
        "redis": await redis_status(),
    }
