"""WebSocket clients for the producer, display and session roles."""
from __future__ import annotations

import asyncio
import json
from contextlib import suppress
from typing import AsyncIterator, List, Optional

import websockets

from server.position import clamp

SEND_INTERVAL = 0.2


def _socket_url(base_ws_url: str, path: str) -> str:
    return f"{base_ws_url.rstrip('/')}/ws/{path}"


class PointerClient:
    """Reports a normalized pointer position at a fixed rate, like the phone page."""

    def __init__(self, base_ws_url: str, *, interval: float = SEND_INTERVAL) -> None:
        self._url = _socket_url(base_ws_url, "interact")
        self._interval = interval
        self._x = 0.0
        self._y = 0.0
        self._stopped = asyncio.Event()

    @property
    def position(self) -> tuple[float, float]:
        return (self._x, self._y)

    def set_position(self, x: float, y: float) -> None:
        self._x = clamp(x)
        self._y = clamp(y)

    def stop(self) -> None:
        self._stopped.set()

    async def run(self) -> None:
        async with websockets.connect(self._url) as websocket:
            await self._send_loop(websocket)

    async def _send_loop(self, websocket) -> None:
        while not self._stopped.is_set():
            payload = {"action": "update_position", "x": self._x, "y": self._y}
            await websocket.send(json.dumps(payload))
            with suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._stopped.wait(), timeout=self._interval)


async def _stream(base_ws_url: str, path: str, message_type: str) -> AsyncIterator[dict]:
    async with websockets.connect(_socket_url(base_ws_url, path)) as websocket:
        async for raw in websocket:
            data = json.loads(raw)
            if data.get("type") == message_type:
                yield data


async def display_frames(base_ws_url: str) -> AsyncIterator[List[List[float]]]:
    """Yield the ``params`` list of every display broadcast."""

    async for data in _stream(base_ws_url, "show", "params"):
        yield data.get("params", [])


async def count_updates(base_ws_url: str, *, limit: Optional[int] = None) -> AsyncIterator[int]:
    received = 0
    async for data in _stream(base_ws_url, "session", "count_update"):
        yield int(data["count"])
        received += 1
        if limit is not None and received >= limit:
            return
