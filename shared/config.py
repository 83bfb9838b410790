"""
Shared configuration management for the token cache.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="TOKEN_CACHE_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")


class TokenCacheConfig(BaseConfig):
    """Token cache configuration."""

    # Storage backend
    cache_backend: str = Field(default="memory")
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_socket_timeout: float = Field(default=5.0, gt=0)

    # Expiry policy
    default_expiry_adjustment_seconds: int = Field(default=0, ge=0)


def get_config(**overrides) -> TokenCacheConfig:
    """Get token cache configuration."""
    return TokenCacheConfig(**overrides)
