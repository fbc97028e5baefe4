"""
Application settings using Pydantic.

Provides environment-based configuration loading with TAILPOLICY_ prefix.
"""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Tailscale API
    tailscale_api_key: SecretStr | None = None
    tailnet: str = "-"
    tailscale_base_url: str = "https://api.tailscale.com/api/v2"

    # HTTP client settings
    http_timeout: int = 30
    http_max_retries: int = 3

    # Logging
    log_level: str = "WARNING"
    log_json: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "TAILPOLICY_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
