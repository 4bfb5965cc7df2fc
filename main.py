#!/usr/bin/env python3
"""
Pump Anomaly Monitor

Main entry point that wires the pipeline:
- Ingestion: live transaction feed for the pump program
- Parsing: buyer/token extraction, same-slot bundling detection
- Detection: fresh and dormant buyer heuristics on a 1s batch timer
- Broadcast: last-10 history per category pushed to websocket observers

Usage:
    python main.py                        # Run against the live feed
    python main.py --port 9000            # Observer socket on another port
    python main.py --replay capture.jsonl # Replay recorded feed messages
"""

import asyncio
import logging
import os
import signal
import sys
from typing import Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Configure logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("pump-monitor")

from api import EventBus, ObserverServer, RedisAlertPublisher
from ingestion import (
    LedgerQueryClient,
    MonitorConfig,
    PumpFeedListener,
    TransactionParser,
    WorkQueue,
    replay_notifications,
)
from logic.detection import DetectionEngine, QueueBatchProcessor
from logic.stats import PipelineStats


class PumpMonitor:
    """
    Owns every pipeline component and their background tasks.

    All mutable state (processed wallets, token indices, queue, history)
    lives on components created here and is only touched from the event
    loop running `run()`.
    """

    def __init__(self, config: Optional[MonitorConfig] = None):
        self.config = config or MonitorConfig()
        self._tasks: list[asyncio.Task] = []
        self.redis = None

        self.stats = PipelineStats()
        self.bus = EventBus(history_size=self.config.history_size, stats=self.stats)
        self.queue = WorkQueue()
        self.parser = TransactionParser(
            queue=self.queue,
            on_bundled=self.bus.publish,
            config=self.config,
            stats=self.stats,
        )
        self.ledger = LedgerQueryClient(config=self.config)
        self.engine = DetectionEngine(
            ledger=self.ledger,
            publish=self.bus.publish,
            stats=self.stats,
        )
        self.batcher = QueueBatchProcessor(
            queue=self.queue,
            engine=self.engine,
            stats=self.stats,
            batch_size=self.config.batch_size,
            interval=self.config.batch_interval_seconds,
        )
        self.listener = PumpFeedListener(
            handler=self.parser.handle,
            stats=self.stats,
            config=self.config,
        )
        self.server = ObserverServer(self.bus, self.config.host, self.config.port)

    async def setup(self) -> None:
        """Open the HTTP session and the optional Redis mirror."""
        await self.ledger.open()
        logger.info("✅ HTTP client ready")

        if self.config.redis_url:
            try:
                import redis.asyncio as redis
                self.redis = redis.from_url(self.config.redis_url, decode_responses=True)
                await self.redis.ping()
                publisher = RedisAlertPublisher(self.redis)
                self.bus.mirror = publisher
                self.stats.error_sink = publisher
                logger.info("✅ Redis mirror connected")
            except Exception as e:
                logger.warning(f"⚠️ Redis connection failed (optional): {e}")
                self.redis = None

    async def run(self) -> None:
        """Serve observers, drain the queue and follow the live feed."""
        await self.server.start()
        self._tasks.append(asyncio.create_task(self.batcher.run(), name="batcher"))
        self._tasks.append(asyncio.create_task(self.listener.start(), name="listener"))
        await asyncio.gather(*self._tasks)

    async def replay(self, path: str) -> None:
        """Run a recorded capture through the pipeline and drain the queue."""
        await replay_notifications(path, self.listener.handle_message)
        while self.queue:
            await self.batcher.process_queue_batch()
        logger.info(f"Replay finished: {self.stats.snapshot()}")

    async def shutdown(self) -> None:
        """Close the feed and observer socket; in-flight batch work is abandoned."""
        logger.info("Shutting down...")
        self.batcher.stop()
        await self.listener.stop()
        await self.server.stop()

        for task in self._tasks:
            task.cancel()

        await self.ledger.close()
        if self.redis:
            await self.redis.close()

        logger.info("👋 Shutdown complete")


def main():
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Real-time anomaly monitor for pump program buys"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Observer websocket port (default: $PORT or 8080)",
    )
    parser.add_argument(
        "--replay",
        metavar="FILE",
        help="Replay a JSON-lines capture of feed messages instead of connecting",
    )

    args = parser.parse_args()

    config = MonitorConfig()
    if args.port is not None:
        config.port = args.port

    if not args.replay and not config.helius_api_key and not config.feed_ws_url_override:
        logger.error("HELIUS_API_KEY (or FEED_WS_URL) must be set")
        sys.exit(1)

    monitor = PumpMonitor(config)

    async def run():
        await monitor.setup()

        if args.replay:
            try:
                await monitor.replay(args.replay)
            finally:
                await monitor.shutdown()
            return

        loop = asyncio.get_running_loop()
        stop_event = asyncio.Event()

        def signal_handler():
            logger.info("Interrupt received, shutting down...")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler)

        run_task = asyncio.create_task(monitor.run(), name="monitor")
        stop_task = asyncio.create_task(stop_event.wait(), name="stop")
        await asyncio.wait({run_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

        exit_code = 0
        if run_task.done() and not run_task.cancelled() and run_task.exception():
            logger.error(f"Monitor stopped unexpectedly: {run_task.exception()}")
            exit_code = 1

        await monitor.shutdown()
        run_task.cancel()
        stop_task.cancel()
        return exit_code

    exit_code = 0
    try:
        exit_code = asyncio.run(run()) or 0
    except KeyboardInterrupt:
        pass
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
