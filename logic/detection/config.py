"""Configuration for the wallet heuristics."""

from dataclasses import dataclass


@dataclass
class DetectionConfig:
    """Thresholds for fresh and dormant wallet detection."""

    # Fresh wallet: fetch this many signatures...
    FRESH_SIGNATURE_LIMIT: int = 4
    # ...and only wallets with at most this many are candidates
    FRESH_MAX_SIGNATURES: int = 3

    # Dormant wallet: current buy plus the transaction before it
    DORMANT_SIGNATURE_LIMIT: int = 2

    # Gap before the current buy that counts as dormant (60 days)
    DORMANT_THRESHOLD_SECONDS: int = 60 * 24 * 60 * 60

    COMMITMENT: str = "confirmed"


# Default configuration
DEFAULT_CONFIG = DetectionConfig()
