"""HTTP helpers for interacting with the crowdpointer server."""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx


class ServerClient:
    def __init__(self, base_url: str, *, client: Optional[httpx.AsyncClient] = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(base_url=self._base_url, timeout=10.0)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def health(self) -> Dict[str, Any]:
        response = await self._client.get("/health")
        response.raise_for_status()
        return response.json()

    async def start_info(self) -> Dict[str, Any]:
        response = await self._client.get("/start")
        response.raise_for_status()
        return response.json()

    async def connection_count(self) -> int:
        response = await self._client.get("/count")
        response.raise_for_status()
        return int(response.json()["count"])

    async def __aenter__(self) -> "ServerClient":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()
