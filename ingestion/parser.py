"""Transaction parser - turns feed notifications into queued buys and bundling alerts."""

import logging
from typing import Awaitable, Callable, List, Optional

from .config import MonitorConfig, DEFAULT_CONFIG
from .events import (
    AccountKey,
    AlertEvent,
    FeedNotification,
    InstructionKind,
    QueuedBuy,
    TokenBalance,
    USER_LOG,
)
from .registry import BoundedMap, BoundedSet
from .work_queue import WorkQueue
from logic.stats import PipelineStats

logger = logging.getLogger(__name__)


def find_pool_outflow(
    pre_balances: List[TokenBalance],
    post_balances: List[TokenBalance],
) -> Optional[TokenBalance]:
    """
    Find the pre-balance entry whose account's token amount went down.

    On a buy the bonding-curve pool is the account that loses tokens, so
    its mint is the token being purchased.
    """
    post_by_index = {}
    for post in post_balances:
        post_by_index.setdefault(post.account_index, post)

    for pre in pre_balances:
        post = post_by_index.get(pre.account_index)
        if post is not None and post.amount < pre.amount:
            return pre
    return None


def find_buyer_address(
    account_keys: List[AccountKey],
    log_messages: List[str],
) -> Optional[str]:
    """
    Resolve the buyer of a transaction.

    The program's "User:" log line wins; otherwise the first account that
    both signed and is writable.
    """
    for line in log_messages:
        if USER_LOG in line:
            return line.split("User:", 1)[1].strip() or None

    for key in account_keys:
        if key.signer and key.writable:
            return key.pubkey
    return None


class TransactionParser:
    """
    Applies one feed notification to the monitor's ingestion state.

    Owns the processed-wallet set, the token creation index and the
    per-token same-slot buy counters. All three are only touched from the
    event loop that delivers notifications.
    """

    def __init__(
        self,
        queue: WorkQueue,
        on_bundled: Callable[[AlertEvent], Awaitable[None]],
        config: MonitorConfig = DEFAULT_CONFIG,
        stats: Optional[PipelineStats] = None,
    ):
        """
        Args:
            queue: Queue that receives buys from unseen wallets
            on_bundled: Coroutine called with each bundled-token alert
            config: Monitor configuration (registry capacities, bundling threshold)
            stats: Pipeline counters
        """
        self.queue = queue
        self.on_bundled = on_bundled
        self.stats = stats or PipelineStats()
        self.bundle_threshold = config.bundle_threshold

        self.processed_wallets: BoundedSet[str] = BoundedSet(
            config.max_processed_wallets, "processed_wallets"
        )
        self.token_creation_slots: BoundedMap[str, str] = BoundedMap(
            config.max_tracked_tokens, "token_creation_slots"
        )
        self.token_buy_counts: BoundedMap[str, int] = BoundedMap(
            config.max_tracked_tokens, "token_buy_counts"
        )

    async def handle(self, notification: FeedNotification) -> None:
        kinds = notification.instruction_kinds

        if InstructionKind.INITIALIZE_MINT in kinds:
            self._record_mint(notification)

        if InstructionKind.BUY in kinds:
            await self._handle_buy(notification)

    def _record_mint(self, notification: FeedNotification) -> None:
        # The mint account sits at index 1 of this program's create instruction
        token_address = notification.account_keys[1].pubkey
        self.token_creation_slots[token_address] = notification.slot
        self.token_buy_counts[token_address] = 0
        logger.debug(f"Token created: {token_address} in slot {notification.slot}")

    async def _handle_buy(self, notification: FeedNotification) -> None:
        pool_transfer = find_pool_outflow(
            notification.pre_token_balances,
            notification.post_token_balances,
        )
        if pool_transfer is None:
            return

        token_address = pool_transfer.mint
        buyer_address = find_buyer_address(
            notification.account_keys,
            notification.log_messages,
        )

        if buyer_address and buyer_address not in self.processed_wallets:
            self.processed_wallets.add(buyer_address)
            self.queue.enqueue(QueuedBuy(
                signature=notification.signature,
                buyer_address=buyer_address,
                token_address=token_address,
            ))
            self.stats.incr("buys_queued")

        if self.token_creation_slots.get(token_address) != notification.slot:
            return

        buy_count = self.token_buy_counts.get(token_address, 0) + 1
        self.token_buy_counts[token_address] = buy_count

        if buy_count > self.bundle_threshold:
            logger.warning(
                f"🚨 Bundled token detected: {token_address} "
                f"({buy_count} buys in creation slot {notification.slot})"
            )
            await self.on_bundled(AlertEvent.bundled(
                signature=notification.signature,
                buy_count=buy_count,
                token_address=token_address,
            ))
