"""
Unit tests for configuration and cache manager construction.
"""

import pytest
from unittest.mock import patch

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_token_cache.app.cache.redis_cache import RedisCache, ScanningRedisCache
from service_token_cache.app.cache.storage import InMemoryCache
from service_token_cache.app.factory import create_cache_manager, create_cache_store
from shared.config import TokenCacheConfig, get_config
from shared.errors import ConfigurationError
from shared.metrics import CacheMetrics


class TestTokenCacheConfig:
    """Test cases for TokenCacheConfig."""

    def test_defaults(self, monkeypatch):
        """Test default settings."""
        monkeypatch.delenv("TOKEN_CACHE_CACHE_BACKEND", raising=False)
        config = get_config()

        assert config.cache_backend == "memory"
        assert config.default_expiry_adjustment_seconds == 0

    def test_env_overrides(self, monkeypatch):
        """Test settings are read from prefixed environment variables."""
        monkeypatch.setenv("TOKEN_CACHE_CACHE_BACKEND", "redis-scan")
        monkeypatch.setenv("TOKEN_CACHE_REDIS_URL", "redis://cache:6379/1")
        monkeypatch.setenv("TOKEN_CACHE_DEFAULT_EXPIRY_ADJUSTMENT_SECONDS", "60")

        config = TokenCacheConfig()

        assert config.cache_backend == "redis-scan"
        assert config.redis_url == "redis://cache:6379/1"
        assert config.default_expiry_adjustment_seconds == 60


class TestFactory:
    """Test cases for cache manager construction."""

    @pytest.mark.parametrize("backend,store_type,uses_manifest", [
        ("memory", InMemoryCache, False),
        ("redis", RedisCache, True),
        ("redis-scan", ScanningRedisCache, False),
    ])
    def test_backend_selection(self, backend, store_type, uses_manifest):
        """Test each backend name builds the matching store."""
        config = TokenCacheConfig(cache_backend=backend)

        manager = create_cache_manager("c1", config)

        assert type(manager.cache) is store_type
        assert manager.uses_manifest is uses_manifest

    def test_redis_settings_forwarded(self):
        """Test Redis URL and timeout reach the backend."""
        config = TokenCacheConfig(cache_backend="redis", redis_url="redis://cache:6379/2", redis_socket_timeout=1.5)

        store = create_cache_store(config)

        assert store.redis_url == "redis://cache:6379/2"
        assert store.socket_timeout == 1.5

    def test_unknown_backend(self):
        """Test unknown backends are rejected."""
        with pytest.raises(ConfigurationError):
            create_cache_store(TokenCacheConfig(cache_backend="memcached"))

    def test_missing_client_id(self):
        """Test a client id is required."""
        with pytest.raises(ConfigurationError):
            create_cache_manager("", TokenCacheConfig())

    def test_manager_settings(self):
        """Test expiry adjustment and metrics are passed through."""
        metrics = CacheMetrics("c1")
        config = TokenCacheConfig(default_expiry_adjustment_seconds=30)

        manager = create_cache_manager("c1", config, metrics=metrics)

        assert manager.client_id == "c1"
        assert manager.default_expiry_adjustment_seconds == 30
        assert manager.metrics is metrics

    def test_logging_configured_from_config(self):
        """Test the configured log level is applied at construction."""
        config = TokenCacheConfig(log_level="debug")

        with patch("service_token_cache.app.factory.configure_logging") as mock_configure:
            create_cache_manager("c1", config)

        mock_configure.assert_called_once_with("token_cache", "debug")
