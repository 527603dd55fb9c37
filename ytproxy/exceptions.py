"""
Application errors. Each carries the HTTP status it is rendered with, so
route handlers can let them propagate to the handler registered in main.
"""
from typing import Any, List, Optional


class YtProxyError(Exception):
    """Base exception for all application-specific errors."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        error: Optional[str] = None,
        detail: Any = None,
        hint: Optional[str] = None,
    ):
        self.error = error or self.default_message
        self.detail = detail
        self.hint = hint
        super().__init__(self.error)

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.detail is not None:
            body["detail"] = self.detail
        if self.hint is not None:
            body["hint"] = self.hint
        return body


class InvalidInput(YtProxyError):
    """Raised when the request URL is missing or not http(s)."""

    status_code = 400
    default_message = "Invalid or missing URL"


class ExtractionFailed(YtProxyError):
    """Raised when every yt-dlp invocation strategy failed."""

    status_code = 502
    default_message = "Failed to retrieve video information"

    def __init__(self, attempts: Optional[List[Any]] = None, error: Optional[str] = None, hint: Optional[str] = None):
        self.attempts = list(attempts or [])
        super().__init__(error=error, detail=format_attempts(self.attempts), hint=hint)


class UpstreamAuthRequired(ExtractionFailed):
    """Raised when yt-dlp reports a bot or sign-in check."""

    status_code = 403
    default_message = "YouTube is blocking this request"


class NoMatchingFormat(YtProxyError):
    """Raised when no format satisfies the requested media type or id."""

    status_code = 400
    default_message = "Could not determine a suitable format to download"


class MissingDirectUrl(YtProxyError):
    """Raised when the selected format carries no direct media URL."""

    status_code = 500
    default_message = "No direct URL available for the requested format."


class UpstreamFetchFailed(YtProxyError):
    """Raised when the media host answers with anything but 2xx/206."""

    status_code = 502
    default_message = "Upstream responded with error"

    def __init__(self, upstream_status: Optional[int] = None, error: Optional[str] = None, detail: Any = None):
        self.upstream_status = upstream_status
        super().__init__(error=error, detail=detail)

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.upstream_status is not None:
            body["status_code"] = self.upstream_status
        return body


class InternalError(YtProxyError):
    """Raised for unexpected failures inside a route handler."""


def format_attempts(attempts: List[Any]) -> Optional[str]:
    """Join every failed attempt as '<strategy>: <error>' lines."""
    if not attempts:
        return None
    return "\n".join(f"{a.strategy}: {a.error}" for a in attempts)
