"""Pipeline counters and the failure reporting channel."""

import logging
from collections import Counter
from typing import Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class ErrorSink(Protocol):
    """Anything that can receive pipeline failure reports."""
    async def publish_error(self, source: str, message: str) -> None: ...


class PipelineStats:
    """
    Counters for every stage of the monitor.

    Failures that the pipeline absorbs (dropped notifications, failed RPC
    checks, failed batch items) are routed through `record_error` so they
    show up in the counters and, when a sink is attached, on the error
    channel rather than only in the log.
    """

    def __init__(self, error_sink: Optional[ErrorSink] = None):
        self.error_sink = error_sink
        self.counters: Counter = Counter()
        self.errors: Counter = Counter()

    def incr(self, name: str, amount: int = 1) -> None:
        self.counters[name] += amount

    async def record_error(self, source: str, exc: BaseException) -> None:
        """Log, count and forward an absorbed failure."""
        self.errors[source] += 1
        message = f"{type(exc).__name__}: {exc}"
        logger.error(f"[{source}] {message}")

        if self.error_sink is None:
            return
        try:
            await self.error_sink.publish_error(source, message)
        except Exception as e:
            logger.warning(f"Error sink unavailable: {e}")

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        return {
            "counters": dict(self.counters),
            "errors": dict(self.errors),
        }
