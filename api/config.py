"""
API configuration settings.
"""

from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """API configuration settings."""

    # API Settings
    api_title: str = "Library API"
    api_version: str = "1.0.0"
    api_description: str = "A REST API for browsing and managing authors and their books"
    api_prefix: str = "/api"

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Rate Limiting, "limit/period" pairs applied per client IP to every endpoint
    rate_limit_enabled: bool = True
    rate_limit_rules: str = "1000/5m,200/10s"

    # HTTP cache headers
    cache_enabled: bool = True
    cache_max_age: int = 600
    cache_must_revalidate: bool = True
    cache_max_entries: int = 1000

    # CORS Settings
    cors_origins: List[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    @field_validator('cache_max_age')
    @classmethod
    def validate_cache_max_age(cls, v):
        """Ensure max-age is not negative."""
        if v < 0:
            raise ValueError('cache_max_age must not be negative')
        return v

    @field_validator('cache_max_entries')
    @classmethod
    def validate_cache_max_entries(cls, v):
        if v < 1:
            raise ValueError('cache_max_entries must be at least 1')
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="API_",
        extra="ignore",  # Ignore extra fields from .env
    )


# Global config instance
config = APIConfig()
