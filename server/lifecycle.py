"""Binds producer connections to registry entries and announces the count."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from app.core.events import COUNT_TOPIC, LocalPubSub
from app.schemas import CountUpdate, PositionUpdate

from .registry import ConnectionId, PositionRegistry

LOGGER = logging.getLogger("crowdpointer.lifecycle")


class ConnectionLifecycleManager:
    """Translate producer connect/move/disconnect events into registry calls."""

    def __init__(self, registry: PositionRegistry, pubsub: LocalPubSub) -> None:
        self._registry = registry
        self._pubsub = pubsub

    def connect(self, connection_id: Optional[ConnectionId] = None) -> ConnectionId:
        connection_id = connection_id or uuid4().hex
        count = self._registry.join(connection_id)
        LOGGER.debug("producer %s connected", connection_id)
        self._broadcast_count(count)
        return connection_id

    def disconnect(self, connection_id: ConnectionId) -> None:
        removed, count = self._registry.leave(connection_id)
        if removed:
            LOGGER.debug("producer %s disconnected", connection_id)
        self._broadcast_count(count)

    def update_position(self, connection_id: ConnectionId, x: float, y: float) -> bool:
        return self._registry.move(connection_id, x, y)

    def handle_message(self, connection_id: ConnectionId, raw: Union[str, bytes, Mapping[str, Any]]) -> bool:
        """Decode an interaction frame and apply it.

        Frames whose coordinates are not numbers are dropped and the previous
        position is kept.
        """

        try:
            if isinstance(raw, (str, bytes)):
                update = PositionUpdate.model_validate_json(raw)
            else:
                update = PositionUpdate.model_validate(raw)
        except ValidationError as exc:
            LOGGER.debug("dropping malformed update from %s: %s", connection_id, exc.errors())
            return False
        return self.update_position(connection_id, update.x, update.y)

    def count(self) -> int:
        return self._registry.count()

    def _broadcast_count(self, count: int) -> None:
        message = CountUpdate(count=count)
        self._pubsub.publish(COUNT_TOPIC, message.model_dump())
