"""Cache store backed by a `cache` table in Supabase."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import httpx

from disaster_api.api.client import SupabaseClient
from disaster_api.api.models import CacheEntry
from disaster_api.services.cache_store import CacheStore, format_timestamp, parse_timestamp
from disaster_api.services.errors import StorageError

TABLE = "cache"


class SupabaseCacheStore(CacheStore):
    """Stores entries as `{key, value (jsonb), expires_at (timestamptz)}` rows."""

    def __init__(self, client: SupabaseClient, table: str = TABLE) -> None:
        self._client = client
        self._table = table

    async def get(self, key: str) -> CacheEntry | None:
        try:
            rows = await self._client.select(
                self._table, {"key": f"eq.{key}"}, columns="value,expires_at",
            )
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError("get", key, str(e)) from e
        if not rows:
            return None
        row = rows[0]
        try:
            return CacheEntry(
                key=key, value=row.get("value"), expires_at=parse_timestamp(row["expires_at"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StorageError("get", key, f"malformed row: {e}") from e

    async def put(self, key: str, value: Any, expires_at: datetime) -> None:
        # Round-trip through json so unserializable payloads fail here,
        # not inside httpx.
        try:
            payload = json.loads(json.dumps(value))
        except (TypeError, ValueError) as e:
            raise StorageError("put", key, f"value is not JSON-serializable: {e}") from e
        row = {"key": key, "value": payload, "expires_at": format_timestamp(expires_at)}
        try:
            await self._client.upsert(self._table, row)
        except httpx.HTTPError as e:
            raise StorageError("put", key, str(e)) from e

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(self._table, {"key": f"eq.{key}"})
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError("delete", key, str(e)) from e

    async def delete_expired(self, now: datetime) -> int:
        try:
            removed = await self._client.delete(
                self._table, {"expires_at": f"lt.{format_timestamp(now)}"},
            )
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError("delete_expired", None, str(e)) from e
        return len(removed)

    async def close(self) -> None:
        await self._client.close()
