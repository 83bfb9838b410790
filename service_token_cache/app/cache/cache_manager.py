"""
Token cache manager.

Finds stored credentials for a (client, audience, scope) request, applies the
expiry policy and keeps the key index consistent for backends that cannot
list their own keys.
"""

import asyncio
import inspect
import time
from typing import Any, List, Optional, Set

from shared.logging import get_logger
from shared.errors import CacheBackendError
from shared.metrics import CacheMetrics
from .key_manifest import CacheKeyManifest
from .models import (
    CACHE_KEY_PREFIX,
    CacheEntry,
    CacheKey,
    CredentialBody,
    WrappedCacheEntry,
)
from .storage import CacheStore, resolve, supports_key_enumeration


DEFAULT_EXPIRY_ADJUSTMENT_SECONDS = 0


def _now_seconds() -> int:
    return int(time.time())


class CacheManager:
    """Cache façade over a pluggable storage backend."""

    def __init__(
        self,
        cache: CacheStore,
        client_id: str,
        *,
        metrics: Optional[CacheMetrics] = None,
        default_expiry_adjustment_seconds: int = DEFAULT_EXPIRY_ADJUSTMENT_SECONDS,
    ):
        self.cache = cache
        self.client_id = client_id
        self.metrics = metrics
        self.default_expiry_adjustment_seconds = default_expiry_adjustment_seconds
        self.logger = get_logger("token_cache.manager")
        self._pending_removals: Set[asyncio.Future] = set()

        # Backends without native enumeration get a key manifest.
        self.key_manifest: Optional[CacheKeyManifest] = None
        if not supports_key_enumeration(cache):
            self.key_manifest = CacheKeyManifest(cache, client_id)

    @property
    def uses_manifest(self) -> bool:
        return self.key_manifest is not None

    async def get(
        self,
        cache_key: CacheKey,
        expiry_adjustment_seconds: Optional[int] = None,
    ) -> Optional[CredentialBody]:
        """Get the cached credential body for a key.

        On an exact miss, the first stored key for the same client and
        audience whose scope covers the requested scope is used instead.
        Expired entries are narrowed to their refresh token when they carry
        one and purged otherwise.

        Returns:
            The full credential, a refresh-only body, or None on any miss.
        """
        if expiry_adjustment_seconds is None:
            expiry_adjustment_seconds = self.default_expiry_adjustment_seconds

        requested_key = cache_key.to_key()
        resolved_key = requested_key
        outcome = "hit"

        record = await resolve(self.cache.get(requested_key))

        if record is None:
            keys = await self._get_cache_keys()
            self.logger.debug("Exact cache miss", key=requested_key, known_keys=len(keys or []))

            if not keys:
                self._record_lookup("miss")
                return None

            matched_key = self.match_existing_cache_key(cache_key, keys)
            self.logger.debug("Cache key match", key=requested_key, matched_key=matched_key)

            if matched_key is not None:
                record = await resolve(self.cache.get(matched_key))
                resolved_key = matched_key
                outcome = "matched"

        if record is None:
            self._record_lookup("miss")
            return None

        wrapped_entry = WrappedCacheEntry.from_record(resolved_key, record)
        now = _now_seconds()

        if wrapped_entry.expires_at - expiry_adjustment_seconds < now:
            if wrapped_entry.body.refresh_token:
                narrowed_entry = wrapped_entry.narrowed()
                await resolve(self.cache.set(requested_key, narrowed_entry.to_record()))
                if self.key_manifest is not None and requested_key != resolved_key:
                    await self.key_manifest.add(requested_key)
                self.logger.debug(
                    "Expired entry narrowed to refresh token",
                    key=requested_key,
                    expires_at=wrapped_entry.expires_at,
                    now=now,
                )
                self._record_lookup("refreshed")
                return narrowed_entry.body

            await resolve(self.cache.remove(resolved_key))
            if self.key_manifest is not None:
                await self.key_manifest.remove(resolved_key)

            self.logger.info(
                "Expired entry purged",
                key=resolved_key,
                expires_at=wrapped_entry.expires_at,
                now=now,
            )
            self._record_lookup("purged")
            return None

        self._record_lookup(outcome)
        return wrapped_entry.body

    async def set(self, entry: CacheEntry) -> None:
        """Store a credential under the key derived from its attributes."""
        cache_key = entry.cache_key()
        wrapped_entry = self._wrap_cache_entry(entry)

        await resolve(self.cache.set(cache_key.to_key(), wrapped_entry.to_record()))
        if self.key_manifest is not None:
            await self.key_manifest.add(cache_key.to_key())

        self.logger.debug("Cache entry written", key=cache_key.to_key(), expires_at=wrapped_entry.expires_at)
        if self.metrics:
            self.metrics.record_write()

    async def clear(self) -> None:
        """Remove every known entry, then the manifest.

        Removals are started independently and not awaited; use
        ``wait_for_pending_removals`` to wait for them.
        """
        keys = await self._get_cache_keys()

        for key in keys or []:
            self._spawn_removal(key)

        if self.key_manifest is not None:
            await self.key_manifest.clear()

        self.logger.info("Cache cleared", keys=len(keys or []))
        if self.metrics:
            self.metrics.record_clear("async")

    def clear_sync(self) -> None:
        """Remove every entry in-line.

        Only valid for backends that enumerate and remove synchronously,
        such as ``InMemoryCache``.
        """
        if self.key_manifest is not None:
            raise CacheBackendError(
                "clear_sync requires a backend with native key enumeration",
                details={"backend": type(self.cache).__name__}
            )

        keys = self._require_sync(self.cache.all_keys())
        for key in keys or []:
            self._require_sync(self.cache.remove(key))

        self.logger.info("Cache cleared synchronously", keys=len(keys or []))
        if self.metrics:
            self.metrics.record_clear("sync")

    async def wait_for_pending_removals(self) -> None:
        """Wait for removals started by ``clear``."""
        if self._pending_removals:
            await asyncio.gather(*self._pending_removals, return_exceptions=True)

    def match_existing_cache_key(self, key_to_match: CacheKey, all_keys: List[str]) -> Optional[str]:
        """Find the first stored key usable for ``key_to_match``.

        A key matches when its prefix is ``CACHE_KEY_PREFIX``, its client
        and audience equal the requested ones, and its (non-empty) scope
        contains every requested scope token.
        """
        scopes_to_match = key_to_match.scopes()

        for key in all_keys:
            cache_key = CacheKey.from_key(key)
            if not cache_key.scope:
                continue

            scope_set = set(cache_key.scopes())
            if (
                cache_key.prefix == CACHE_KEY_PREFIX
                and cache_key.client_id == key_to_match.client_id
                and cache_key.audience == key_to_match.audience
                and all(scope in scope_set for scope in scopes_to_match)
            ):
                return key

        return None

    def _wrap_cache_entry(self, entry: CacheEntry) -> WrappedCacheEntry:
        expires_in_time = _now_seconds() + entry.expires_in
        expiry_seconds = min(expires_in_time, entry.decoded_token.claims.exp)

        return WrappedCacheEntry(body=entry, expires_at=expiry_seconds)

    async def _get_cache_keys(self) -> Optional[List[str]]:
        if self.key_manifest is not None:
            manifest = await self.key_manifest.get()
            return manifest.keys if manifest else None
        return await resolve(self.cache.all_keys())

    def _spawn_removal(self, key: str) -> None:
        try:
            result = self.cache.remove(key)
        except Exception as e:
            self.logger.error("Cache removal failed", key=key, error=str(e))
            return

        if not inspect.isawaitable(result):
            return

        task = asyncio.ensure_future(result)
        self._pending_removals.add(task)
        task.add_done_callback(self._removal_done(key))

    def _removal_done(self, key: str):
        def callback(task: asyncio.Future):
            self._pending_removals.discard(task)
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                self.logger.error("Cache removal failed", key=key, error=str(error))
        return callback

    def _require_sync(self, value: Any) -> Any:
        if inspect.isawaitable(value):
            if inspect.iscoroutine(value):
                value.close()
            raise CacheBackendError(
                "clear_sync requires a synchronous backend",
                details={"backend": type(self.cache).__name__}
            )
        return value

    def _record_lookup(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.record_lookup(outcome)
