"""Event bus - recent-event history and fan-out to observers."""

import json
import logging
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Protocol, Set

from websockets.exceptions import ConnectionClosed
from websockets.protocol import State

from ingestion.events import AlertEvent, EventType
from logic.stats import PipelineStats

logger = logging.getLogger(__name__)


class Observer(Protocol):
    """Protocol for a connected push-channel client."""
    state: State
    async def send(self, message: str) -> None: ...


class AlertMirror(Protocol):
    """Protocol for a secondary alert sink (e.g. Redis)."""
    async def publish_event(self, event: AlertEvent) -> None: ...


class EventBus:
    """
    Keeps the latest events per category and pushes new ones to observers.

    History is newest-first and capped at `history_size` per category.
    Observers that are not open are skipped; observers whose send fails
    because the connection closed are dropped.
    """

    def __init__(
        self,
        history_size: int = 10,
        stats: Optional[PipelineStats] = None,
        mirror: Optional[AlertMirror] = None,
    ):
        self.history_size = history_size
        self.stats = stats or PipelineStats()
        self.mirror = mirror
        self._history: Dict[EventType, Deque[Dict[str, Any]]] = {
            event_type: deque(maxlen=history_size) for event_type in EventType
        }
        self._observers: Set[Observer] = set()

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def history(self, event_type: EventType) -> List[Dict[str, Any]]:
        return list(self._history[event_type])

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Current history of every category, keyed by type name."""
        return {
            event_type.value: list(events)
            for event_type, events in self._history.items()
        }

    async def register(self, observer: Observer) -> None:
        """Add an observer and send it the current history."""
        self._observers.add(observer)
        logger.info(f"Observer connected ({len(self._observers)} total)")
        frame = json.dumps({"type": "connect", "data": self.snapshot()})
        try:
            await observer.send(frame)
        except ConnectionClosed:
            self.unregister(observer)

    def unregister(self, observer: Observer) -> None:
        if observer in self._observers:
            self._observers.discard(observer)
            logger.info(f"Observer disconnected ({len(self._observers)} total)")

    async def publish(self, event: AlertEvent) -> None:
        """Record an event and push it to every open observer."""
        # deque(maxlen) evicts from the right when appending on the left
        self._history[event.event_type].appendleft(event.data)
        self.stats.incr(f"events:{event.event_type.value}")

        frame = event.to_frame()
        for observer in list(self._observers):
            if observer.state is not State.OPEN:
                continue
            try:
                await observer.send(frame)
            except ConnectionClosed:
                self.unregister(observer)

        if self.mirror is not None:
            await self.mirror.publish_event(event)
