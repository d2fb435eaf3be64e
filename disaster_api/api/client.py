"""Async httpx wrapper for the Supabase PostgREST interface."""

from __future__ import annotations

from typing import Any

import httpx


class SupabaseClient:
    """Async HTTP client for table operations on a Supabase project."""

    def __init__(
        self,
        url: str,
        api_key: str,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        kwargs: dict[str, Any] = {
            "base_url": url.rstrip("/") + "/rest/v1",
            "timeout": timeout,
            "headers": {
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            },
        }
        if transport is not None:
            kwargs["transport"] = transport
        self._client = httpx.AsyncClient(**kwargs)

    async def close(self) -> None:
        await self._client.aclose()

    async def select(
        self, table: str, filters: dict[str, str], columns: str = "*",
    ) -> list[dict[str, Any]]:
        """Return rows matching PostgREST filters, e.g. {"key": "eq.abc"}."""
        params = {"select": columns, **filters}
        response = await self._client.get(f"/{table}", params=params)
        response.raise_for_status()
        return response.json()

    async def upsert(self, table: str, row: dict[str, Any]) -> None:
        """Insert a row, replacing any existing row with the same primary key."""
        response = await self._client.post(
            f"/{table}",
            json=row,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )
        response.raise_for_status()

    async def delete(self, table: str, filters: dict[str, str]) -> list[dict[str, Any]]:
        """Delete matching rows and return them."""
        response = await self._client.delete(
            f"/{table}",
            params=filters,
            headers={"Prefer": "return=representation"},
        )
        response.raise_for_status()
        if not response.content:
            return []
        return response.json()
