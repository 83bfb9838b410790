"""
Token cache package.

Credentials are stored under ``prefix::client_id::audience::scope`` keys
wrapped with an absolute expiry. Backends that cannot list their keys are
paired with a key manifest.
"""

from .cache_manager import CacheManager
from .key_manifest import CacheKeyManifest
from .models import (
    CACHE_KEY_PREFIX,
    CacheEntry,
    CacheKey,
    CredentialBody,
    DecodedToken,
    RefreshOnlyEntry,
    TokenClaims,
    WrappedCacheEntry,
)
from .redis_cache import RedisCache, ScanningRedisCache
from .storage import CacheStore, InMemoryCache, KeyEnumerableCacheStore

__all__ = [
    "CACHE_KEY_PREFIX",
    "CacheEntry",
    "CacheKey",
    "CacheKeyManifest",
    "CacheManager",
    "CacheStore",
    "CredentialBody",
    "DecodedToken",
    "InMemoryCache",
    "KeyEnumerableCacheStore",
    "RedisCache",
    "RefreshOnlyEntry",
    "ScanningRedisCache",
    "TokenClaims",
    "WrappedCacheEntry",
]
