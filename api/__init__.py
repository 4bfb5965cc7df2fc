"""Observer API - event history, websocket push and Redis mirror."""

from .event_bus import EventBus
from .server import ObserverServer
from .publisher import RedisAlertPublisher

__all__ = [
    "EventBus",
    "ObserverServer",
    "RedisAlertPublisher",
]
