"""
Application configuration via environment variables.

Uses Pydantic BaseSettings to load and validate all config from env vars
or a .env.local file. Every setting has a sensible default for local
development so the relay can start with only an OpenAI key.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Central configuration for the MediReader relay.

    Values are loaded from environment variables first, falling back
    to a `.env.local` file in the project root. Secrets should NEVER
    be committed; use `.env.example` as the template.
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT
    service_name: str = Field(default="medireader-relay", description="Name reported by /health")

    # ── Vision Model ─────────────────────────────────────────────
    openai_api_key: str = Field(default="", description="OpenAI API key for the vision model")
    openai_base_url: str = Field(default="https://api.openai.com/v1", description="OpenAI API base URL")
    vision_model: str = Field(default="gpt-4o", description="Chat-completions model used for extraction")
    vision_timeout_seconds: float = Field(default=60.0, gt=0, description="Timeout per vision call")
    vision_max_tokens: int = Field(default=2000, ge=50, le=8000, description="Max tokens per extraction reply")
    vision_temperature: float = Field(default=0.1, ge=0.0, le=2.0, description="Sampling temperature")

    # ── Redis ────────────────────────────────────────────────────
    redis_url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL")
    detection_cache_ttl_seconds: int = Field(default=1800, ge=0, description="Device detection cache TTL")

    # ── Device Registry ──────────────────────────────────────────
    fallback_device_key: str = Field(
        default="nipro-surdialx",
        description="Device key used whenever detection cannot decide",
    )

    # ── Backend Gateway ──────────────────────────────────────────
    gateway_base_url: str = Field(
        default="http://localhost:8080/hdimsAdapterWeb",
        description="Base URL of the clinical backend gateway",
    )
    gateway_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for gateway auth calls")
    enterprise_timeout_seconds: float = Field(default=30.0, gt=0, description="Timeout for enterprise lookups")
    enterprise_max_retries: int = Field(default=3, ge=1, le=10, description="Attempts per enterprise lookup")
    backend_extraction_url: str = Field(
        default="http://localhost:8080/hdimsAdapterWeb/extract",
        description="Remote endpoint used when extraction is forwarded to the backend",
    )

    # ── Auth ─────────────────────────────────────────────────────
    jwt_secret: str = Field(default="medireader-dev-secret-change-me", description="Access token signing key")
    jwt_refresh_secret: str = Field(
        default="medireader-dev-refresh-secret-change-me",
        description="Refresh token signing key",
    )
    access_token_ttl_hours: int = Field(default=24, ge=1, description="Access token lifetime")
    refresh_token_ttl_days: int = Field(default=7, ge=1, description="Refresh token lifetime")

    # ── Feature Flags ────────────────────────────────────────────
    feature_use_backend_extraction: bool = Field(
        default=False,
        description="Forward images to the backend instead of calling the vision model directly",
    )
    feature_detection_cache: bool = Field(default=True, description="Cache device detection results in Redis")

    # ── Operational Limits ───────────────────────────────────────
    rate_limit_max_requests: int = Field(default=100, ge=1, description="Requests per window per client IP")
    rate_limit_window_seconds: int = Field(default=60, ge=1, description="Rate limit window length")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1024, description="Largest accepted image upload")

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached Settings instance.

    Using lru_cache ensures we read env vars exactly once, and every
    module that calls ``get_settings()`` gets the same object.
    """
    return Settings()
