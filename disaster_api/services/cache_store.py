"""Backing stores for the cache: key -> (JSON value, expiry)."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from disaster_api.api.models import CacheEntry
from disaster_api.services.errors import StorageError

DB_PATH = Path(__file__).resolve().parent.parent.parent / "cache.db"

_DATETIME = TypeAdapter(datetime)


def format_timestamp(dt: datetime) -> str:
    """ISO-8601 in UTC with fixed precision so stored values sort lexically."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(raw: str) -> datetime:
    """Parse ISO-8601 with any fractional-second width, as PostgREST emits it."""
    dt = _DATETIME.validate_python(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def dump_value(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise StorageError("put", key, f"value is not JSON-serializable: {e}") from e


def load_value(key: str, raw: str) -> Any:
    try:
        return json.loads(raw)
    except ValueError as e:
        raise StorageError("get", key, f"stored value is not valid JSON: {e}") from e


class CacheStore:
    """Store contract consumed by CacheManager.

    Stores never enforce expiry on reads; `get` returns an entry even when it
    is past `expires_at`. All failures surface as StorageError.
    """

    async def get(self, key: str) -> CacheEntry | None:
        raise NotImplementedError

    async def put(self, key: str, value: Any, expires_at: datetime) -> None:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def delete_expired(self, now: datetime) -> int:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryCacheStore(CacheStore):
    """In-process store. Values are kept as JSON text, like the durable stores."""

    def __init__(self) -> None:
        self._store: dict[str, tuple[str, datetime]] = {}

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    async def get(self, key: str) -> CacheEntry | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        return CacheEntry(key=key, value=load_value(key, raw), expires_at=expires_at)

    async def put(self, key: str, value: Any, expires_at: datetime) -> None:
        self._store[key] = (dump_value(key, value), expires_at)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def delete_expired(self, now: datetime) -> int:
        expired = [k for k, (_, expires_at) in self._store.items() if expires_at < now]
        for key in expired:
            del self._store[key]
        return len(expired)


class SQLiteCacheStore(CacheStore):
    """Durable cache table in SQLite.

    sqlite3 is blocking, so each statement runs in a worker thread. A lock
    serializes access to the shared connection.
    """

    def __init__(self, db_path: Path | str = DB_PATH) -> None:
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._create_tables()

    def _create_tables(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS cache (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                expires_at TEXT NOT NULL
            )
        """)
        self._conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_cache_expires_at ON cache(expires_at)"
        )
        self._conn.commit()

    async def _run(self, operation: str, key: str | None, fn, *args):
        def call():
            with self._lock:
                return fn(*args)

        try:
            return await asyncio.to_thread(call)
        except sqlite3.Error as e:
            raise StorageError(operation, key, str(e)) from e

    async def get(self, key: str) -> CacheEntry | None:
        row = await self._run("get", key, self._select, key)
        if row is None:
            return None
        try:
            expires_at = parse_timestamp(row["expires_at"])
        except ValueError as e:
            raise StorageError("get", key, f"malformed expiry: {e}") from e
        return CacheEntry(key=key, value=load_value(key, row["value"]), expires_at=expires_at)

    def _select(self, key: str) -> sqlite3.Row | None:
        return self._conn.execute(
            "SELECT value, expires_at FROM cache WHERE key = ?", (key,)
        ).fetchone()

    async def put(self, key: str, value: Any, expires_at: datetime) -> None:
        raw = dump_value(key, value)
        await self._run("put", key, self._upsert, key, raw, format_timestamp(expires_at))

    def _upsert(self, key: str, raw: str, expires_at: str) -> None:
        self._conn.execute("""
            INSERT INTO cache (key, value, expires_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                expires_at = excluded.expires_at
        """, (key, raw, expires_at))
        self._conn.commit()

    async def delete(self, key: str) -> None:
        await self._run("delete", key, self._delete, key)

    def _delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM cache WHERE key = ?", (key,))
        self._conn.commit()

    async def delete_expired(self, now: datetime) -> int:
        return await self._run("delete_expired", None, self._delete_expired, format_timestamp(now))

    def _delete_expired(self, now: str) -> int:
        cur = self._conn.execute("DELETE FROM cache WHERE expires_at < ?", (now,))
        self._conn.commit()
        return cur.rowcount

    async def close(self) -> None:
        def call():
            with self._lock:
                self._conn.close()

        await asyncio.to_thread(call)
