"""Wallet heuristics for queued buys.

Two independent checks run for every buyer:

- Fresh wallet: the wallet has at most three confirmed signatures and its
  earliest transaction started from a zero lamport balance.
- Dormant wallet: the transaction before the current buy is older than
  the dormancy threshold.

A wallet can be both fresh and dormant; both events are emitted.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, Protocol, List, Dict, Any

from ingestion.events import AlertEvent, EventType, QueuedBuy
from ingestion.rpc_client import account_pre_balance
from logic.stats import PipelineStats

from .config import DetectionConfig, DEFAULT_CONFIG

logger = logging.getLogger(__name__)


class LedgerClient(Protocol):
    """Protocol for the historical query client."""
    async def get_signatures_for_address(
        self, address: str, limit: int, commitment: str = "confirmed"
    ) -> List[Dict[str, Any]]: ...
    async def get_transaction(
        self, signature: str, commitment: str = "confirmed"
    ) -> Optional[Dict[str, Any]]: ...


class DetectionEngine:
    """
    Runs the fresh and dormant checks for queued buys and publishes hits.

    RPC failures never escape a check: they are reported to the stats
    channel and the check answers False.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        publish: Callable[[AlertEvent], Awaitable[None]],
        stats: Optional[PipelineStats] = None,
        config: DetectionConfig = DEFAULT_CONFIG,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the engine.

        Args:
            ledger: Client answering signature and transaction queries
            publish: Coroutine receiving each detected event
            stats: Pipeline counters / failure channel
            config: Heuristic thresholds
            clock: Source of the current unix time in seconds
        """
        self.ledger = ledger
        self.publish = publish
        self.stats = stats or PipelineStats()
        self.config = config
        self.clock = clock

    async def process_transaction(self, item: QueuedBuy) -> None:
        """Run both checks for one buyer and publish whatever they flag."""
        is_fresh, is_dormant = await asyncio.gather(
            self.check_fresh_wallet(item.buyer_address),
            self.check_dormant_wallet(item.buyer_address),
        )

        if is_fresh:
            logger.warning(f"⚠️ Fresh wallet detected: {item.buyer_address}")
            await self.publish(AlertEvent.wallet(EventType.FRESH_WALLET, item))

        if is_dormant:
            logger.warning(f"⚠️ Dormant wallet detected: {item.buyer_address}")
            await self.publish(AlertEvent.wallet(EventType.DORMANT_WALLET, item))

    async def check_fresh_wallet(self, address: str) -> bool:
        try:
            signatures = await self.ledger.get_signatures_for_address(
                address,
                limit=self.config.FRESH_SIGNATURE_LIMIT,
                commitment=self.config.COMMITMENT,
            )
            if not signatures or len(signatures) > self.config.FRESH_MAX_SIGNATURES:
                return False

            # Signatures come newest first; the last one is the earliest known
            first_tx = await self.ledger.get_transaction(
                signatures[-1]["signature"],
                commitment=self.config.COMMITMENT,
            )
            if not first_tx:
                return False

            return account_pre_balance(first_tx, address) == 0

        except Exception as e:
            await self.stats.record_error("fresh_wallet_check", e)
            return False

    async def check_dormant_wallet(self, address: str) -> bool:
        try:
            signatures = await self.ledger.get_signatures_for_address(
                address,
                limit=self.config.DORMANT_SIGNATURE_LIMIT,
                commitment=self.config.COMMITMENT,
            )
            if len(signatures) < 2:
                return False

            previous_block_time = signatures[1].get("blockTime")
            if not previous_block_time:
                return False

            now = int(self.clock())
            return now - previous_block_time > self.config.DORMANT_THRESHOLD_SECONDS

        except Exception as e:
            await self.stats.record_error("dormant_wallet_check", e)
            return False
