"""Background task sampling the registry onto the display topic."""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from app.core.events import DISPLAY_TOPIC, LocalPubSub
from app.schemas import ParamsMessage

from .registry import PositionRegistry

LOGGER = logging.getLogger("crowdpointer.broadcaster")

BROADCAST_INTERVAL = 0.2


class PeriodicBroadcaster:
    """Publish a snapshot of every position once per interval.

    ``start`` and ``stop`` are both idempotent; at most one loop runs per
    instance. A failing publish is logged and the next tick proceeds as usual.
    """

    def __init__(
        self,
        registry: PositionRegistry,
        pubsub: LocalPubSub,
        *,
        interval: float = BROADCAST_INTERVAL,
    ) -> None:
        self._registry = registry
        self._pubsub = pubsub
        self._interval = max(1e-3, float(interval))
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        LOGGER.info("position broadcaster started (interval=%.3fs)", self._interval)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        LOGGER.info("position broadcaster stopped")

    def tick(self) -> bool:
        """Run one sample-and-publish cycle; return whether it succeeded."""

        params = self._registry.params()
        try:
            self._pubsub.publish(DISPLAY_TOPIC, ParamsMessage(params=params).model_dump())
        except Exception:
            LOGGER.exception("position broadcast failed")
            return False
        return True

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self._interval)
