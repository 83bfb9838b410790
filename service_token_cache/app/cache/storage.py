"""
Storage backend contract for the token cache.

Backends store plain JSON-compatible records by opaque string key. Each
method may either return its result directly (synchronous backends) or
return an awaitable (asynchronous backends); callers resolve both with
``resolve``. Key enumeration is optional and detected with
``supports_key_enumeration``.
"""

import inspect
from typing import Any, Awaitable, Dict, List, Optional, Protocol, TypeVar, Union, runtime_checkable


T = TypeVar("T")
MaybeAwaitable = Union[T, Awaitable[T]]


@runtime_checkable
class CacheStore(Protocol):
    """Minimal key/value contract consumed by the cache manager."""

    def get(self, key: str) -> MaybeAwaitable[Optional[Dict[str, Any]]]:
        ...

    def set(self, key: str, record: Dict[str, Any]) -> MaybeAwaitable[None]:
        ...

    def remove(self, key: str) -> MaybeAwaitable[None]:
        ...


@runtime_checkable
class KeyEnumerableCacheStore(CacheStore, Protocol):
    """Backend that can list its own keys."""

    def all_keys(self) -> MaybeAwaitable[List[str]]:
        ...


def supports_key_enumeration(cache: Any) -> bool:
    """Whether the backend exposes native key enumeration."""
    return callable(getattr(cache, "all_keys", None))


async def resolve(value: MaybeAwaitable[T]) -> T:
    """Await ``value`` if the backend returned an awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


class InMemoryCache:
    """Synchronous dict-backed backend with key enumeration."""

    def __init__(self):
        self._store: Dict[str, Dict[str, Any]] = {}

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return self._store.get(key)

    def set(self, key: str, record: Dict[str, Any]) -> None:
        self._store[key] = record

    def remove(self, key: str) -> None:
        self._store.pop(key, None)

    def all_keys(self) -> List[str]:
        return list(self._store.keys())

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store
