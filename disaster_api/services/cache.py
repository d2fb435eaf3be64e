"""Cache-aside policy layer over a CacheStore, with per-key TTL."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable

from disaster_api.services.cache_store import CacheStore
from disaster_api.services.errors import StorageError

log = logging.getLogger(__name__)

DEFAULT_TTL = 3600


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WriteResult:
    """Outcome of a best-effort cache write or delete."""

    ok: bool
    error: StorageError | None = None


class CacheManager:
    """Best-effort cache in front of expensive or rate-limited calls.

    Storage failures never reach the caller: reads degrade to a miss and
    writes come back as a failed WriteResult. Expired entries are never
    served; they are deleted when read and by `sweep()`.
    """

    def __init__(
        self,
        store: CacheStore,
        default_ttl: int = DEFAULT_TTL,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self.store = store
        self.default_ttl = default_ttl
        self._clock = clock

    async def _lookup(self, key: str) -> tuple[bool, Any]:
        """Return (hit, value) so a cached None still counts as a hit."""
        try:
            entry = await self.store.get(key)
        except StorageError as e:
            log.warning("Cache read failed, treating as miss: %s", e)
            return False, None
        if entry is None:
            return False, None
        if entry.is_expired(self._clock()):
            log.debug("Cache entry expired for key: %s", key)
            await self.delete(key)
            return False, None
        log.debug("Cache hit for key: %s", key)
        return True, entry.value

    async def get(self, key: str, default: Any = None) -> Any:
        hit, value = await self._lookup(key)
        return value if hit else default

    def _resolve_ttl(self, ttl: int | None) -> int:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        return ttl

    async def set(self, key: str, value: Any, ttl: int | None = None) -> WriteResult:
        ttl = self._resolve_ttl(ttl)
        expires_at = self._clock() + timedelta(seconds=ttl)
        try:
            await self.store.put(key, value, expires_at)
        except StorageError as e:
            log.warning("Cache write failed: %s", e)
            return WriteResult(ok=False, error=e)
        log.debug("Cache set for key: %s, expires: %s", key, expires_at.isoformat())
        return WriteResult(ok=True)

    async def delete(self, key: str) -> WriteResult:
        try:
            await self.store.delete(key)
        except StorageError as e:
            log.warning("Cache delete failed: %s", e)
            return WriteResult(ok=False, error=e)
        log.debug("Cache deleted for key: %s", key)
        return WriteResult(ok=True)

    async def compute_if_absent(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any]],
        ttl: int | None = None,
    ) -> Any:
        """Return the cached value for `key`, or await `producer()` and cache it.

        Exceptions from `producer` propagate and nothing is cached. There is no
        per-key locking: concurrent misses may both run the producer, and the
        last write wins.
        """
        ttl = self._resolve_ttl(ttl)
        hit, value = await self._lookup(key)
        if hit:
            return value

        result = await producer()
        # Persistence is best-effort; the caller gets the result either way.
        _ = await self.set(key, result, ttl)
        return result

    async def sweep(self) -> int | None:
        """Remove every expired entry from the store."""
        try:
            removed = await self.store.delete_expired(self._clock())
        except StorageError as e:
            log.warning("Cache sweep failed: %s", e)
            return None
        log.info("Expired cache entries cleared: %d", removed)
        return removed
