"""
Read-Through Cache
==================

Process-local TTL cache used to accelerate ticket reads.

Keys are colon-separated namespaces. Invalidating a key also drops every
key nested beneath it, so ``invalidate("tickets:list:<org>")`` clears all
cached list pages of that organization.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from helpdesk.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ICache(ABC):
    """Interface for the cache collaborator."""

    @abstractmethod
    async def get_or_populate(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: int
    ) -> T:
        """Return the cached value for key, loading and storing it on a miss."""

    @abstractmethod
    async def invalidate(self, key: str) -> None:
        """Drop key and every key nested under it."""


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float


class InMemoryTTLCache(ICache):
    """
    Dictionary-backed TTL cache.

    Loader exceptions propagate and nothing is stored, so a NotFound is
    never cached. A load that overlaps an invalidation is returned but not
    stored. A TTL of zero disables caching.
    """

    def __init__(self, max_entries: int = 10000, timer: Callable[[], float] = time.monotonic):
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = asyncio.Lock()
        self._max_entries = max_entries
        self._timer = timer
        self._generation = 0
        self.hits = 0
        self.misses = 0

    async def get_or_populate(
        self,
        key: str,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: int
    ) -> T:
        entry = self._get_live(key)
        if entry is not None:
            self.hits += 1
            return entry.value

        self.misses += 1
        generation = self._generation
        value = await loader()

        if ttl_seconds > 0:
            async with self._lock:
                if self._generation != generation:
                    # Invalidated while loading; the value may predate the write
                    return value
                if len(self._entries) >= self._max_entries:
                    self._evict_expired()
                if len(self._entries) >= self._max_entries:
                    # Oldest insertion goes first
                    self._entries.pop(next(iter(self._entries)))
                self._entries[key] = _CacheEntry(value, self._timer() + ttl_seconds)

        return value

    async def invalidate(self, key: str) -> None:
        prefix = f"{key}:"
        async with self._lock:
            self._generation += 1
            stale = [k for k in self._entries if k == key or k.startswith(prefix)]
            for k in stale:
                del self._entries[k]
        if stale:
            logger.debug("Cache invalidated", extra={"cache_key": key, "entries": len(stale)})

    async def clear(self) -> None:
        async with self._lock:
            self._generation += 1
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def _get_live(self, key: str) -> Optional[_CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._timer():
            self._entries.pop(key, None)
            return None
        return entry

    def _evict_expired(self) -> None:
        now = self._timer()
        for k in [k for k, e in self._entries.items() if e.expires_at <= now]:
            del self._entries[k]
