"""Configuration settings for yugipedia-fetch."""

from functools import lru_cache
from typing import Literal

import httpx
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from yugipedia_fetch import __version__


class WikiConfig(BaseModel):
    """Configuration for talking to the wiki API.

    Controls the target host, request timing, retries, and the
    page size used for progress estimation.
    """

    # Target
    base_url: str = Field(
        default="https://yugipedia.com/",
        description="Base address of the wiki (also stripped from user-supplied URLs)",
    )
    api_path: str = Field(
        default="api.php",
        description="Path of the MediaWiki API relative to base_url",
    )
    app_name: str = Field(
        default="yugipedia-fetch",
        description="Application name sent in the User-Agent header",
    )

    # Timing
    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Seconds after which a single request is aborted",
    )
    request_interval_ms: int = Field(
        default=1000,
        ge=0,
        description="Politeness delay before each transmitted request (1 request/second)",
    )

    # Retries
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum attempts for one logical request",
    )
    retry_delay_ms: int = Field(
        default=500,
        ge=0,
        description="Initial backoff in milliseconds, doubled after every failed attempt",
    )

    # Pagination
    page_size: int = Field(
        default=500,
        ge=1,
        description="Maximum members the API returns per listing request (cmlimit=max)",
    )

    def url_for(self, endpoint: str) -> str:
        """Absolute URL for an endpoint relative to base_url."""
        return self.base_url.rstrip("/") + "/" + endpoint.lstrip("/")

    def page_url(self, title: str) -> str:
        """Human-facing wiki URL of a page, for log messages."""
        return self.url_for(f"wiki/{title}")

    def user_agent(self, contact: str = "") -> str:
        """Build a descriptive User-Agent as asked for by the MediaWiki API etiquette."""
        contact_part = f" ({contact})" if contact else ""
        return f"{self.app_name}/{__version__}{contact_part} httpx/{httpx.__version__}"


class LoggingConfig(BaseModel):
    """Configuration for logging behavior.

    Controls file logging, rotation, and output format.
    """

    log_file: str | None = Field(
        default=None,
        description="Optional path for file logging (enables rotation)",
    )
    rotation: str = Field(
        default="10 MB",
        description="When to rotate log file (e.g., '10 MB', '1 day')",
    )
    retention: str = Field(
        default="7 days",
        description="How long to keep rotated logs",
    )
    serialize: bool = Field(
        default=False,
        description="If True, output JSON format to file",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # --------------------------------------------------------------------------
    # Wiki API
    # --------------------------------------------------------------------------
    wiki: WikiConfig = Field(
        default_factory=WikiConfig,
        description="Wiki API target, pacing and retry configuration",
    )
    contact_email: str = Field(
        default="",
        description="Contact address included in the User-Agent header",
    )

    # --------------------------------------------------------------------------
    # Application
    # --------------------------------------------------------------------------
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    raw_response_path: str | None = Field(
        default=None,
        description="Debug only: file that receives every raw response body before decoding",
    )

    # --------------------------------------------------------------------------
    # Logging Configuration
    # --------------------------------------------------------------------------
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration (file output, rotation)",
    )

    @property
    def user_agent(self) -> str:
        """User-Agent header value for every API call."""
        return self.wiki.user_agent(self.contact_email)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
