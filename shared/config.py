"""
Shared configuration management for the NASA access layer.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NasaAccessConfig(BaseSettings):
    """Access layer settings, read from NASA_ACCESS_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="NASA_ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Logging
    log_level: str = "info"

    # Upstream API
    api_base_url: str = "http://localhost:3001/api/nasa"
    api_key: str = "DEMO_KEY"
    api_key_param: str = "api_key"
    request_timeout: float = Field(default=10.0, gt=0)
    max_redirects: int = Field(default=3, ge=0)

    # Response cache
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_sweep_threshold: int = Field(default=100, ge=0)

    # Diagnostics
    slow_request_threshold_ms: float = Field(default=2000.0, ge=0)

    # Retry defaults
    default_max_retries: int = Field(default=2, ge=0)
    default_retry_delay_ms: int = Field(default=1000, ge=0)

    # Fan-out
    batch_max_concurrency: Optional[int] = Field(default=None, ge=1)
    smoke_concurrency: int = Field(default=5, ge=1)


def get_config(**overrides) -> NasaAccessConfig:
    """Build configuration from the environment, with explicit overrides."""
    return NasaAccessConfig(**overrides)
