"""Wallet Heuristics - fresh and dormant buyer detection."""

from .config import DetectionConfig
from .engine import DetectionEngine
from .batcher import QueueBatchProcessor

__all__ = [
    "DetectionConfig",
    "DetectionEngine",
    "QueueBatchProcessor",
]
