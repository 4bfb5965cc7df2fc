"""Ingestion Layer - live pump program transaction feed."""

from .listener import PumpFeedListener, build_subscription_request
from .parser import TransactionParser
from .work_queue import WorkQueue
from .rpc_client import LedgerQueryClient, RpcError
from .events import FeedNotification, QueuedBuy, AlertEvent, EventType
from .config import MonitorConfig
from .replay import replay_notifications

__all__ = [
    "PumpFeedListener",
    "build_subscription_request",
    "TransactionParser",
    "WorkQueue",
    "LedgerQueryClient",
    "RpcError",
    "FeedNotification",
    "QueuedBuy",
    "AlertEvent",
    "EventType",
    "MonitorConfig",
    "replay_notifications",
]
