import logging
from typing import Any

from fastapi import Request
from rich.logging import RichHandler

from ytproxy.config.settings import config

logger = logging.getLogger("ytproxy")


def setup_logging() -> None:
    """Install the root handler once: rich console output unless disabled"""
    root = logging.getLogger()
    if getattr(root, "_ytproxy_configured", False):
        return

    if config.logging.enable_rich:
        handler: logging.Handler = RichHandler(rich_tracebacks=True, show_path=False)
    else:
        handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(config.logging.format))

    root.addHandler(handler)
    root.setLevel(config.logging.level)
    root._ytproxy_configured = True


def log_with_context(
    request: Request,
    level: int,
    message: str,
    **kwargs: Any
) -> None:
    """
    Log with request context.
    Automatically includes request_id for tracing.
    """
    request_id = getattr(request.state, "request_id", "unknown")
    extra = {
        "request_id": request_id,
        **kwargs
    }
    logger.log(level, f"[{request_id}] {message}", extra=extra)


def log_info(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.INFO, message, **kwargs)


def log_error(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.ERROR, message, **kwargs)


def log_warning(request: Request, message: str, **kwargs: Any) -> None:
    log_with_context(request, logging.WARNING, message, **kwargs)
