"""In-process publish/subscribe fan-out used for the realtime topics."""
from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List

LOGGER = logging.getLogger("crowdpointer.events")

# Producers stream from this topic while connected; nothing is ever published on it.
INTERACTION_TOPIC = "interact"
DISPLAY_TOPIC = "show"
COUNT_TOPIC = "session_count"

TOPICS = (INTERACTION_TOPIC, DISPLAY_TOPIC, COUNT_TOPIC)

# Per-subscriber backlog; a reader that falls further behind loses its oldest messages.
MAX_BACKLOG = 32


@dataclass(eq=False)
class Subscription:
    """A single subscriber's view of one topic."""

    topic: str
    queue: asyncio.Queue[Any]
    loop: asyncio.AbstractEventLoop

    def offer(self, message: Any) -> None:
        if self.queue.full():
            self.queue.get_nowait()
        self.queue.put_nowait(message)

    async def get(self) -> Any:
        return await self.queue.get()

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Any:
        return await self.queue.get()


class LocalPubSub:
    """A lightweight, in-memory pub/sub hub with asyncio-friendly APIs.

    The hub keeps an independent subscriber list per topic. Subscribers
    register from an asyncio event loop and receive messages through a
    bounded ``asyncio.Queue`` that drops its oldest entry when full.
    ``publish`` never blocks: it can be called from any thread and hands the
    payload to each subscriber's loop with ``loop.call_soon_threadsafe``.
    Late subscribers get no replay.
    """

    def __init__(self, *, max_backlog: int = MAX_BACKLOG) -> None:
        self._max_backlog = max(1, max_backlog)
        self._subscribers: Dict[str, List[Subscription]] = {}
        self._lock = threading.Lock()

    @asynccontextmanager
    async def subscribe(self, topic: str) -> AsyncIterator[Subscription]:
        """Subscribe to *topic* for the duration of the context.

        The subscription is removed when the context manager exits, whatever
        the reason.
        """

        subscription = Subscription(
            topic=topic,
            queue=asyncio.Queue(maxsize=self._max_backlog),
            loop=asyncio.get_running_loop(),
        )
        with self._lock:
            self._subscribers.setdefault(topic, []).append(subscription)
        try:
            yield subscription
        finally:
            self._discard(subscription)

    async def iterator(self, topic: str) -> AsyncIterator[Any]:
        """Convenience wrapper yielding messages from a topic."""

        async with self.subscribe(topic) as subscription:
            async for message in subscription:
                yield message

    def publish(self, topic: str, message: Any) -> int:
        """Publish *message* to every current subscriber of *topic*.

        Returns the number of subscribers the message was handed to.
        """

        with self._lock:
            subscribers = list(self._subscribers.get(topic, []))
        delivered = 0
        for subscription in subscribers:
            try:
                subscription.loop.call_soon_threadsafe(subscription.offer, message)
            except RuntimeError:
                # The subscriber's event loop is closed.
                LOGGER.debug("dropping subscriber on %s with a closed loop", topic)
                self._discard(subscription)
                continue
            delivered += 1
        return delivered

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, []))

    def _discard(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.topic, [])
            remaining = [s for s in subscribers if s is not subscription]
            if remaining:
                self._subscribers[subscription.topic] = remaining
            else:
                self._subscribers.pop(subscription.topic, None)
