"""Observer socket - pushes anomaly frames to connected websocket clients."""

import logging

from websockets import serve

from .event_bus import EventBus

logger = logging.getLogger(__name__)


class ObserverServer:
    """
    Websocket endpoint for observers.

    Each client gets the `connect` snapshot on arrival and every new event
    afterwards; anything the client sends is ignored.
    """

    def __init__(self, bus: EventBus, host: str = "0.0.0.0", port: int = 8080):
        self.bus = bus
        self.host = host
        self.port = port
        self._server = None

    async def handler(self, websocket) -> None:
        await self.bus.register(websocket)
        try:
            await websocket.wait_closed()
        finally:
            self.bus.unregister(websocket)

    async def start(self) -> None:
        self._server = await serve(self.handler, self.host, self.port)
        logger.info(f"📡 Observer socket listening on ws://{self.host}:{self.port}")

    async def stop(self) -> None:
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
            logger.info("Observer socket closed")

    @property
    def is_serving(self) -> bool:
        return self._server is not None
