"""Shared registry of the last position reported by each producer."""
from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

from .position import Position

ConnectionId = str
Snapshot = Tuple[Position, ...]


class PositionRegistry:
    """Thread-safe map from connection id to its last reported position.

    A single lock guards the whole map. Positions are immutable, so every
    write swaps a complete ``Position`` in and readers never observe one
    coordinate of an update without the other. Nothing here does I/O while
    the lock is held.
    """

    def __init__(self) -> None:
        self._positions: Dict[ConnectionId, Position] = {}
        self._lock = threading.Lock()

    def upsert(self, connection_id: ConnectionId, x: float, y: float) -> Position:
        position = Position.clamped(x, y)
        with self._lock:
            self._positions[connection_id] = position
        return position

    def join(self, connection_id: ConnectionId) -> int:
        """Place *connection_id* at the origin and return the resulting size."""

        with self._lock:
            self._positions[connection_id] = Position()
            return len(self._positions)

    def leave(self, connection_id: ConnectionId) -> Tuple[bool, int]:
        """Drop *connection_id*; return whether it was present and the resulting size."""

        with self._lock:
            removed = self._positions.pop(connection_id, None) is not None
            return removed, len(self._positions)

    def move(self, connection_id: ConnectionId, x: float, y: float) -> bool:
        """Update *connection_id* only if it is still registered."""

        position = Position.clamped(x, y)
        with self._lock:
            if connection_id not in self._positions:
                return False
            self._positions[connection_id] = position
            return True

    def remove(self, connection_id: ConnectionId) -> Optional[Position]:
        with self._lock:
            return self._positions.pop(connection_id, None)

    def get(self, connection_id: ConnectionId) -> Optional[Position]:
        with self._lock:
            return self._positions.get(connection_id)

    def snapshot(self) -> Snapshot:
        with self._lock:
            return tuple(self._positions.values())

    def params(self) -> List[List[float]]:
        return [position.to_pair() for position in self.snapshot()]

    def count(self) -> int:
        with self._lock:
            return len(self._positions)

    def reset(self) -> None:
        with self._lock:
            self._positions.clear()

    def __len__(self) -> int:
        return self.count()

    def __contains__(self, connection_id: object) -> bool:
        with self._lock:
            return connection_id in self._positions
