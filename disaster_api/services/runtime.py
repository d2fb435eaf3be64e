"""Process-wide wiring: store, cache, sweeper and the cached services."""

from __future__ import annotations

import logging

import httpx

from disaster_api.api.client import SupabaseClient
from disaster_api.config import Settings
from disaster_api.services.cache import CacheManager
from disaster_api.services.cache_store import CacheStore, MemoryCacheStore, SQLiteCacheStore
from disaster_api.services.gemini import GeminiService
from disaster_api.services.geocoding import GeocodingService
from disaster_api.services.social_media import SocialMediaService
from disaster_api.services.supabase_store import SupabaseCacheStore
from disaster_api.services.sweeper import CacheSweeper

log = logging.getLogger(__name__)


def build_store(settings: Settings) -> CacheStore:
    """Create the cache store selected by `settings.cache_backend`."""
    if settings.cache_backend == "memory":
        return MemoryCacheStore()
    if settings.cache_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_key:
            raise ValueError(
                "Missing Supabase configuration. Set SUPABASE_URL and SUPABASE_ANON_KEY."
            )
        return SupabaseCacheStore(SupabaseClient(settings.supabase_url, settings.supabase_key))
    return SQLiteCacheStore(settings.cache_db_path)


class ServiceRuntime:
    """Constructed once at process start; owns the sweeper's lifetime."""

    def __init__(
        self,
        settings: Settings,
        store: CacheStore | None = None,
        cache: CacheManager | None = None,
        gemini_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings
        if store is None:
            store = cache.store if cache is not None else build_store(settings)
        self.store = store
        self.cache = cache or CacheManager(store, default_ttl=settings.cache_default_ttl)
        self.sweeper = CacheSweeper(self.cache, interval=settings.cache_sweep_interval)
        self.geocoding = GeocodingService(self.cache, ttl=settings.geocode_cache_ttl)
        self.gemini = GeminiService(settings, self.cache, transport=gemini_transport)
        self.social_media = SocialMediaService(self.cache, ttl=settings.social_media_cache_ttl)

    async def start(self) -> None:
        self.sweeper.start()
        log.info("Service runtime started (cache backend: %s)", self.settings.cache_backend)

    async def close(self) -> None:
        await self.sweeper.stop()
        await self.gemini.close()
        await self.store.close()
        log.info("Service runtime closed")

    async def __aenter__(self) -> ServiceRuntime:
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()
