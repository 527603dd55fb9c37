import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ytproxy.api import analyze, download, health, playlist
from ytproxy.config.settings import config
from ytproxy.core.logging import setup_logging
from ytproxy.core.state import state
from ytproxy.exceptions import YtProxyError
from ytproxy.infra.redis import close_redis, init_redis
from ytproxy.services.stream import stream_proxy

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title=config.api.title,
    description=config.api.description,
    version=config.api.version,
    docs_url="/docs" if config.api.debug else None,
    redoc_url=None
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.api.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Length", "Content-Range", "Accept-Ranges"],
)


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    request.state.request_id = uuid.uuid4().hex[:8]
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


@app.exception_handler(YtProxyError)
async def ytproxy_error_handler(request: Request, exc: YtProxyError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error")
    return JSONResponse(status_code=500, content={"error": "Internal server error", "detail": str(exc)})


# Routes
app.include_router(health.router, tags=["Health"])
app.include_router(analyze.router, prefix="/api", tags=["Analyze"])
app.include_router(download.router, prefix="/api", tags=["Download"])
app.include_router(playlist.router, prefix="/api", tags=["Playlist"])


@app.on_event("startup")
async def startup_event():
    state.redis = await init_redis()
    logger.info(f"yt-dlp {state.ytdlp_version}, strategies: {', '.join(config.ytdlp.strategies)}")


@app.on_event("shutdown")
async def shutdown_event():
    await stream_proxy.aclose()
    await close_redis()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
