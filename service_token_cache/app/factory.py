"""
Cache manager construction from configuration.
"""

from typing import Optional

from shared.config import TokenCacheConfig, get_config
from shared.errors import ConfigurationError
from shared.logging import configure_logging, get_logger, set_client_context
from shared.metrics import CacheMetrics
from .cache.cache_manager import CacheManager
from .cache.redis_cache import RedisCache, ScanningRedisCache
from .cache.storage import CacheStore, InMemoryCache


logger = get_logger("token_cache.factory")


def create_cache_store(config: TokenCacheConfig) -> CacheStore:
    """Create the storage backend named by the configuration."""
    if config.cache_backend == "memory":
        return InMemoryCache()
    if config.cache_backend == "redis":
        return RedisCache(config.redis_url, socket_timeout=config.redis_socket_timeout)
    if config.cache_backend == "redis-scan":
        return ScanningRedisCache(config.redis_url, socket_timeout=config.redis_socket_timeout)

    raise ConfigurationError(
        f"Unknown cache backend: {config.cache_backend}",
        details={"cache_backend": config.cache_backend}
    )


def create_cache_manager(
    client_id: str,
    config: Optional[TokenCacheConfig] = None,
    *,
    metrics: Optional[CacheMetrics] = None,
) -> CacheManager:
    """Create a cache manager for a client."""
    if not client_id:
        raise ConfigurationError("client_id is required")

    config = config or get_config()
    configure_logging("token_cache", config.log_level)

    store = create_cache_store(config)
    manager = CacheManager(
        store,
        client_id,
        metrics=metrics,
        default_expiry_adjustment_seconds=config.default_expiry_adjustment_seconds,
    )
    set_client_context(client_id)

    logger.info(
        "Cache manager created",
        client_id=client_id,
        env=config.env,
        backend=config.cache_backend,
        uses_manifest=manager.uses_manifest,
    )
    return manager
