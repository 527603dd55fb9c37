from .filename import build_download_filename, choose_extension, sanitize_filename
from .locale import get_locale, safe_url_for_log

__all__ = ["build_download_filename", "choose_extension", "get_locale", "safe_url_for_log", "sanitize_filename"]
