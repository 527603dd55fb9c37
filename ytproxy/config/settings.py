import json
import logging
import os
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_PATH = os.getenv("CONFIG_PATH", "config.json")


class ApiConfig(BaseModel):
    title: str = Field(default="ytproxy", description="API title")
    description: str = Field(default="yt-dlp metadata and download proxy", description="API description")
    version: str = Field(default="1.0.0", description="API version")
    cors_origins: list = Field(default=["*"], description="CORS allowed origins")
    debug: bool = Field(default=False, description="Enable debug mode")


class YtDlpConfig(BaseModel):
    strategies: List[str] = Field(
        default=["library", "local", "system", "python"],
        description="Invocation strategies, tried in order",
    )
    cookie_file: Optional[str] = Field(default=None, description="cookies.txt for authenticated extraction")
    timeout_seconds: Optional[float] = Field(default=None, gt=0, description="Per-invocation timeout (None = no limit)")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout for yt-dlp")
    combined_format_ids: List[str] = Field(
        default=["91", "92", "93", "94", "95", "96"],
        description="Format ids always treated as combined audio+video streams",
    )

    @field_validator("strategies")
    @classmethod
    def validate_strategies(cls, v):
        valid = {"library", "local", "system", "python"}
        unknown = [s for s in v if s not in valid]
        if unknown:
            raise ValueError(f"Unknown strategies {unknown}, expected any of {sorted(valid)}")
        if not v:
            raise ValueError("At least one strategy is required")
        return v


class PlaylistConfig(BaseModel):
    batch_size: int = Field(default=3, ge=1, le=20, description="Concurrent extractions per batch")


class ProxyConfig(BaseModel):
    chunk_size: int = Field(default=64 * 1024, ge=1024, description="Relay chunk size in bytes")
    connect_timeout: float = Field(default=10.0, gt=0, description="Upstream connect timeout")
    read_timeout: Optional[float] = Field(default=60.0, description="Upstream read timeout")
    user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/122.0.0.0 Safari/537.36"
        ),
        description="User-Agent sent to the media host",
    )


class RedisConfig(BaseModel):
    enabled: bool = Field(default=False, description="Connect to Redis on startup")
    url: str = Field(default="redis://redis:6379", description="Redis connection URL")
    socket_timeout: int = Field(default=5, description="Redis socket timeout in seconds")


class RateLimitConfig(BaseModel):
    enabled: bool = Field(default=True, description="Enable rate limiting (requires Redis)")
    max_requests: int = Field(default=30, ge=1, description="Max requests per window")
    window_seconds: int = Field(default=60, ge=1, description="Rate limit window in seconds")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: list = Field(default=["en", "ja"], description="Supported locales")


class Config(BaseSettings):
    """Main configuration model"""

    model_config = SettingsConfigDict(env_prefix="YTPROXY_", env_nested_delimiter="__")

    api: ApiConfig = Field(default_factory=ApiConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    playlist: PlaylistConfig = Field(default_factory=PlaylistConfig)
    proxy: ProxyConfig = Field(default_factory=ProxyConfig)
    redis: RedisConfig = Field(default_factory=RedisConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)

    @classmethod
    def load_from_file(cls, config_path: str = "config.json") -> "Config":
        """Load configuration from JSON file"""
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = json.load(f)
            logger.info(f"Configuration loaded from {config_path}")
            return cls(**config_data)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load config from {config_path}: {str(e)}")
            logger.info("Using default configuration")
        return cls()

    @classmethod
    def load_from_env(cls) -> "Config":
        """Load configuration from the legacy environment variables"""
        config_data = {}

        ytdlp = {}
        if os.getenv("YTDLP_COOKIE_FILE"):
            ytdlp["cookie_file"] = os.getenv("YTDLP_COOKIE_FILE")
        if os.getenv("YTDLP_TIMEOUT"):
            ytdlp["timeout_seconds"] = float(os.getenv("YTDLP_TIMEOUT"))
        if ytdlp:
            config_data["ytdlp"] = ytdlp

        if os.getenv("PLAYLIST_BATCH_SIZE"):
            config_data["playlist"] = {"batch_size": int(os.getenv("PLAYLIST_BATCH_SIZE"))}

        if os.getenv("REDIS_URL"):
            config_data["redis"] = {"enabled": True, "url": os.getenv("REDIS_URL")}

        rate_limit = {}
        if os.getenv("RATE_LIMIT_REQUESTS"):
            rate_limit["max_requests"] = int(os.getenv("RATE_LIMIT_REQUESTS"))
        if os.getenv("RATE_LIMIT_WINDOW"):
            rate_limit["window_seconds"] = int(os.getenv("RATE_LIMIT_WINDOW"))
        if rate_limit:
            config_data["rate_limit"] = rate_limit

        if os.getenv("LOG_LEVEL"):
            config_data["logging"] = {"level": os.getenv("LOG_LEVEL")}

        if os.getenv("DEFAULT_LOCALE"):
            config_data["i18n"] = {"default_locale": os.getenv("DEFAULT_LOCALE")}

        return cls(**config_data) if config_data else cls()


def load_config() -> Config:
    """Load configuration with priority: config.json > env vars > defaults"""
    if os.path.exists(CONFIG_PATH):
        return Config.load_from_file(CONFIG_PATH)
    logger.info(f"Config file not found at {CONFIG_PATH}, checking environment variables")
    return Config.load_from_env()


config = load_config()
