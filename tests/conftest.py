"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from disaster_api.config import Settings
from disaster_api.services.cache import CacheManager
from disaster_api.services.cache_store import MemoryCacheStore


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryCacheStore:
    return MemoryCacheStore()


@pytest.fixture
def cache(store, clock) -> CacheManager:
    return CacheManager(store, default_ttl=3600, clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(cache_backend="memory")


class Counter:
    """Async producer that records how often it ran."""

    def __init__(self, value) -> None:
        self.value = value
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return self.value


@pytest.fixture
def counter_factory():
    return Counter
