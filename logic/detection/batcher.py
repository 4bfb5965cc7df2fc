"""Periodic drain of the work queue into the detection engine."""

import asyncio
import logging
from typing import List

from ingestion.events import QueuedBuy
from ingestion.work_queue import WorkQueue
from logic.stats import PipelineStats

from .engine import DetectionEngine

logger = logging.getLogger(__name__)


class QueueBatchProcessor:
    """
    Every `interval` seconds, takes up to `batch_size` buys off the queue
    and evaluates them all concurrently.

    Items that fail are logged and dropped; nothing is put back.
    """

    def __init__(
        self,
        queue: WorkQueue,
        engine: DetectionEngine,
        stats: PipelineStats,
        batch_size: int = 50,
        interval: float = 1.0,
    ):
        self.queue = queue
        self.engine = engine
        self.stats = stats
        self.batch_size = batch_size
        self.interval = interval
        self._running = False

    async def process_queue_batch(self) -> int:
        """Drain and evaluate one batch. Returns the number of items taken."""
        if not self.queue:
            return 0

        batch: List[QueuedBuy] = self.queue.take(self.batch_size)
        results = await asyncio.gather(
            *(self.engine.process_transaction(item) for item in batch),
            return_exceptions=True,
        )

        for item, result in zip(batch, results):
            if isinstance(result, Exception):
                logger.error(f"Dropped queued buy {item.signature} ({item.buyer_address})")
                await self.stats.record_error("batch_item", result)

        self.stats.incr("batches")
        self.stats.incr("buys_processed", len(batch))
        logger.info(f"Queue size: {len(self.queue)}")
        return len(batch)

    async def run(self) -> None:
        """Tick until stopped or cancelled."""
        self._running = True
        logger.info(
            f"Batch processor started (every {self.interval}s, up to {self.batch_size} items)"
        )
        loop = asyncio.get_running_loop()
        while self._running:
            started = loop.time()
            await self.process_queue_batch()
            # Fixed-rate ticks; an overrunning batch is followed immediately
            elapsed = loop.time() - started
            await asyncio.sleep(max(0.0, self.interval - elapsed))

    def stop(self) -> None:
        self._running = False
