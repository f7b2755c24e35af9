"""Realtime aggregation core: registry, connection lifecycle, broadcaster and app factory."""

from .broadcaster import PeriodicBroadcaster
from .lifecycle import ConnectionLifecycleManager
from .network import create_app
from .registry import PositionRegistry

__all__ = [
    "ConnectionLifecycleManager",
    "PeriodicBroadcaster",
    "PositionRegistry",
    "create_app",
]
