"""Event types for the ingestion layer."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import json


class EventType(str, Enum):
    """Categories of anomaly broadcast to observers."""

    FRESH_WALLET = "fresh_wallet"
    DORMANT_WALLET = "dormant_wallet"
    BUNDLED_TOKEN = "bundled_token"


class InstructionKind(str, Enum):
    """Program instructions recognised from transaction logs."""

    INITIALIZE_MINT = "initialize_mint"
    BUY = "buy"


# Program log markers (substring matched against logMessages)
INITIALIZE_MINT_LOG = "Instruction: InitializeMint2"
BUY_LOG = "Instruction: Buy"
USER_LOG = "Program log: User:"


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class AccountKey:
    """One entry of a parsed transaction's account list."""

    pubkey: str
    signer: bool = False
    writable: bool = False

    @classmethod
    def from_dict(cls, data: Any) -> "AccountKey":
        # jsonParsed encoding gives objects; plain encodings give bare strings
        if isinstance(data, str):
            return cls(pubkey=data)
        return cls(
            pubkey=data["pubkey"],
            signer=bool(data.get("signer", False)),
            writable=bool(data.get("writable", False)),
        )


@dataclass
class TokenBalance:
    """Token balance of one account before or after a transaction."""

    account_index: int
    mint: str
    amount: int

    @classmethod
    def from_dict(cls, data: dict) -> "TokenBalance":
        return cls(
            account_index=data["accountIndex"],
            mint=data["mint"],
            amount=int(data["uiTokenAmount"]["amount"]),
        )


@dataclass
class FeedNotification:
    """
    The fields of one live-feed transaction notification used downstream.

    Built from the raw JSON-RPC message and discarded after parsing.
    """

    signature: str
    slot: str
    account_keys: List[AccountKey]
    log_messages: List[str]
    pre_token_balances: List[TokenBalance] = field(default_factory=list)
    post_token_balances: List[TokenBalance] = field(default_factory=list)

    @classmethod
    def from_message(cls, message: dict) -> Optional["FeedNotification"]:
        """
        Extract a notification from a decoded feed message.

        Returns None for messages without a result payload (subscription
        acks and the like). Raises KeyError/TypeError/ValueError when a
        notification is missing the fields the parser needs. Token balances
        are only parsed when the logs carry a buy.
        """
        params = message.get("params")
        if not params:
            return None
        result = params.get("result")
        if not result:
            return None

        tx = result["transaction"]
        meta = tx["meta"]
        log_messages = list(meta.get("logMessages") or [])

        # Balances are only read for buys; a create stays usable without them
        pre_balances, post_balances = [], []
        if any(BUY_LOG in line for line in log_messages):
            pre_balances = [
                TokenBalance.from_dict(b) for b in meta.get("preTokenBalances") or []
            ]
            post_balances = [
                TokenBalance.from_dict(b) for b in meta.get("postTokenBalances") or []
            ]

        return cls(
            signature=result["signature"],
            # Slots are compared as strings throughout
            slot=str(result["slot"]),
            account_keys=[
                AccountKey.from_dict(k) for k in tx["transaction"]["message"]["accountKeys"]
            ],
            log_messages=log_messages,
            pre_token_balances=pre_balances,
            post_token_balances=post_balances,
        )

    def has_log(self, marker: str) -> bool:
        """True if any log line contains the marker."""
        return any(marker in line for line in self.log_messages)

    @property
    def instruction_kinds(self) -> List[InstructionKind]:
        kinds = []
        if self.has_log(INITIALIZE_MINT_LOG):
            kinds.append(InstructionKind.INITIALIZE_MINT)
        if self.has_log(BUY_LOG):
            kinds.append(InstructionKind.BUY)
        return kinds


@dataclass(frozen=True)
class QueuedBuy:
    """A buy awaiting wallet heuristics."""

    signature: str
    buyer_address: str
    token_address: str


@dataclass
class AlertEvent:
    """An anomaly published to observers."""

    event_type: EventType
    data: Dict[str, Any]
    timestamp: str = field(default_factory=utc_timestamp)

    def to_frame(self) -> str:
        """Serialize as an observer push frame."""
        return json.dumps({
            "type": self.event_type.value,
            "data": self.data,
        })

    @classmethod
    def wallet(
        cls,
        event_type: EventType,
        item: QueuedBuy,
    ) -> "AlertEvent":
        """Build a fresh/dormant wallet event for a queued buy."""
        timestamp = utc_timestamp()
        return cls(
            event_type=event_type,
            data={
                "signature": item.signature,
                "address": item.buyer_address,
                "timestamp": timestamp,
                "tokenAddress": item.token_address,
            },
            timestamp=timestamp,
        )

    @classmethod
    def bundled(cls, signature: str, buy_count: int, token_address: str) -> "AlertEvent":
        """Build a bundled-token event."""
        timestamp = utc_timestamp()
        return cls(
            event_type=EventType.BUNDLED_TOKEN,
            data={
                "signature": signature,
                "buyCount": buy_count,
                "timestamp": timestamp,
                "tokenAddress": token_address,
            },
            timestamp=timestamp,
        )
