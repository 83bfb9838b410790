"""
Fallback key index for backends that cannot enumerate their keys.
"""

from typing import Optional

from shared.logging import get_logger
from .models import CACHE_KEY_PREFIX, CACHE_KEY_DELIMITER, KeyManifestEntry
from .storage import CacheStore, resolve


class CacheKeyManifest:
    """Single persisted record listing every key a manager has written."""

    def __init__(self, cache: CacheStore, client_id: str):
        self.cache = cache
        self.client_id = client_id
        self.manifest_key = self._create_manifest_key(client_id)
        self.logger = get_logger("token_cache.key_manifest")

    async def get(self) -> Optional[KeyManifestEntry]:
        """Get the manifest record, if any."""
        record = await resolve(self.cache.get(self.manifest_key))
        if record is None:
            return None
        return KeyManifestEntry.from_record(self.manifest_key, record)

    async def add(self, key: str) -> None:
        """Track a key."""
        entry = await self.get()
        keys = list(entry.keys) if entry else []
        if key in keys:
            return

        keys.append(key)
        await resolve(self.cache.set(self.manifest_key, KeyManifestEntry(keys=keys).model_dump()))
        self.logger.debug("Key added to manifest", key=key, tracked=len(keys))

    async def remove(self, key: str) -> None:
        """Stop tracking a key."""
        entry = await self.get()
        if entry is None:
            return

        keys = [existing for existing in entry.keys if existing != key]
        if entry.keys and len(keys) == len(entry.keys):
            return

        if keys:
            await resolve(self.cache.set(self.manifest_key, KeyManifestEntry(keys=keys).model_dump()))
        else:
            await resolve(self.cache.remove(self.manifest_key))
        self.logger.debug("Key removed from manifest", key=key, tracked=len(keys))

    async def clear(self) -> None:
        """Remove the manifest record."""
        await resolve(self.cache.remove(self.manifest_key))
        self.logger.debug("Manifest cleared", manifest_key=self.manifest_key)

    @staticmethod
    def _create_manifest_key(client_id: str) -> str:
        return f"{CACHE_KEY_PREFIX}{CACHE_KEY_DELIMITER}{client_id}"
