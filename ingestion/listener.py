"""Live transaction feed listener for the pump program."""

import json
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional, Union

import backoff
from websockets import connect

from .config import MonitorConfig, DEFAULT_CONFIG
from .events import FeedNotification
from logic.stats import PipelineStats

logger = logging.getLogger(__name__)


class FeedDisconnected(Exception):
    """The feed closed the connection while the listener was running."""


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    RECEIVING = "receiving"


def build_subscription_request(program_address: str) -> dict:
    """Subscription for confirmed, successful transactions touching the program."""
    return {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "transactionSubscribe",
        "params": [
            {"failed": False, "accountInclude": [program_address]},
            {
                "commitment": "confirmed",
                "encoding": "jsonParsed",
                "transactionDetails": "full",
                "maxSupportedTransactionVersion": 0,
            },
        ],
    }


class PumpFeedListener:
    """
    WebSocket listener for the enhanced transaction feed.

    Connects, subscribes once per connection and hands every notification
    to `handler`. Any transport failure or server-side close leads to a
    reconnect after a fixed delay, forever, until `stop()` is called.
    A notification that cannot be parsed or handled is reported and
    dropped; it never ends the connection.
    """

    def __init__(
        self,
        handler: Callable[[FeedNotification], Awaitable[None]],
        stats: Optional[PipelineStats] = None,
        config: MonitorConfig = DEFAULT_CONFIG,
    ):
        """
        Initialize the listener.

        Args:
            handler: Coroutine receiving each parsed notification
            stats: Pipeline counters / failure channel
            config: Monitor configuration (endpoint, program, reconnect delay)
        """
        self.handler = handler
        self.stats = stats or PipelineStats()
        self.config = config

        self.state = ConnectionState.DISCONNECTED
        self.connection_attempts = 0
        self._ws = None
        self._running = False

    @property
    def subscription_request(self) -> dict:
        return build_subscription_request(self.config.program_address)

    async def start(self) -> None:
        """Run the feed session, reconnecting until stopped."""
        self._running = True
        logger.info("Starting pump program transaction monitor...")

        run_session = backoff.on_exception(
            backoff.constant,
            Exception,
            interval=self.config.reconnect_delay_seconds,
            jitter=None,
            max_tries=None,
            giveup=lambda e: not self._running,
            raise_on_giveup=False,
            on_backoff=lambda details: logger.warning(
                f"Feed connection lost, reconnecting in "
                f"{self.config.reconnect_delay_seconds}s (attempt {details['tries']})"
            ),
        )(self._run_session)

        await run_session()

    async def stop(self) -> None:
        """Stop the listener and close the live connection."""
        self._running = False
        if self._ws is not None:
            await self._ws.close()
            logger.info("Feed connection closed")

    async def _run_session(self) -> None:
        if not self._running:
            return

        self.state = ConnectionState.CONNECTING
        self.connection_attempts += 1
        url = self.config.feed_ws_url
        logger.info(f"Connecting to transaction feed: {url[:50]}...")

        try:
            async with connect(url, ping_interval=30, ping_timeout=10) as ws:
                self._ws = ws
                await ws.send(json.dumps(self.subscription_request))
                self.state = ConnectionState.SUBSCRIBED
                logger.info(f"Subscribed to program transactions: {self.config.program_address}")

                await self._message_loop(ws)
        except Exception as e:
            logger.error(f"Feed connection error: {e}")
            raise
        finally:
            self._ws = None
            self.state = ConnectionState.DISCONNECTED

        if self._running:
            raise FeedDisconnected("feed closed the connection")

    async def _message_loop(self, ws) -> None:
        async for message in ws:
            if not self._running:
                break
            self.state = ConnectionState.RECEIVING
            await self.handle_message(message)

    async def handle_message(self, message: Union[str, bytes]) -> None:
        """Decode one raw feed message and pass it on; failures are dropped."""
        self.stats.incr("messages")
        try:
            if isinstance(message, bytes):
                message = message.decode("utf-8")
            notification = FeedNotification.from_message(json.loads(message))
            if notification is None:
                return
            self.stats.incr("notifications")
            await self.handler(notification)
        except Exception as e:
            await self.stats.record_error("feed_message", e)

    @property
    def is_connected(self) -> bool:
        return self._ws is not None
