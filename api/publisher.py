"""Redis mirror for alerts and pipeline errors."""

import json
import logging
from dataclasses import dataclass
from typing import Optional

from ingestion.events import AlertEvent

logger = logging.getLogger(__name__)


class RedisClientProtocol:
    """Protocol for async Redis client."""
    async def publish(self, channel: str, message: str) -> int: ...


@dataclass
class RedisChannels:
    """Redis Pub/Sub channel names."""

    ALERTS: str = "pump:alerts"
    ERRORS: str = "pump:errors"


class RedisAlertPublisher:
    """
    Mirrors observer frames and absorbed failures onto Redis Pub/Sub.

    The mirror is best-effort: publish failures are logged and swallowed
    so the observer socket is never affected by Redis being down.
    """

    def __init__(self, redis_client: RedisClientProtocol, channels: Optional[RedisChannels] = None):
        """
        Initialize the publisher.

        Args:
            redis_client: Async Redis client instance
            channels: Channel names (defaults to RedisChannels())
        """
        self.redis = redis_client
        self.channels = channels or RedisChannels()

    async def publish_event(self, event: AlertEvent) -> None:
        try:
            await self.redis.publish(self.channels.ALERTS, event.to_frame())
            logger.debug(f"Mirrored alert: {event.event_type.value}")
        except Exception as e:
            logger.error(f"Failed to mirror alert: {e}")

    async def publish_error(self, source: str, message: str) -> None:
        try:
            await self.redis.publish(
                self.channels.ERRORS,
                json.dumps({"source": source, "error": message}),
            )
        except Exception as e:
            logger.error(f"Failed to mirror pipeline error: {e}")
