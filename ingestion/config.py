"""Configuration for the pump monitor."""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

load_dotenv()


PUMP_PROGRAM_ADDRESS = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"


@dataclass
class MonitorConfig:
    """Configuration for feed ingestion, queue draining and the observer socket."""

    # Observer socket
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "8080")))

    # Provider credentials / endpoints
    helius_api_key: str = field(
        default_factory=lambda: os.getenv("HELIUS_API_KEY", "")
    )
    feed_ws_url_override: str = field(
        default_factory=lambda: os.getenv("FEED_WS_URL", "")
    )
    rpc_http_url_override: str = field(
        default_factory=lambda: os.getenv("RPC_HTTP_URL", "")
    )

    # Program whose transactions are streamed
    program_address: str = field(
        default_factory=lambda: os.getenv("PUMP_PROGRAM_ADDRESS", PUMP_PROGRAM_ADDRESS)
    )

    # Optional Redis mirror for alerts and pipeline errors
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", ""))

    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Reconnection settings (fixed delay, no attempt limit)
    reconnect_delay_seconds: float = 5.0

    # Queue draining
    batch_size: int = 50
    batch_interval_seconds: float = 1.0

    # Buys in a token's creation slot beyond this count are flagged
    bundle_threshold: int = 3

    # Event history per category
    history_size: int = 10

    # RPC
    rpc_timeout_seconds: float = 10.0

    # Registry capacities (LRU eviction beyond these)
    max_processed_wallets: int = 100_000
    max_tracked_tokens: int = 10_000

    @property
    def feed_ws_url(self) -> str:
        """Live transaction feed endpoint."""
        if self.feed_ws_url_override:
            return self.feed_ws_url_override
        return f"wss://atlas-mainnet.helius-rpc.com/?api-key={self.helius_api_key}"

    @property
    def rpc_http_url(self) -> str:
        """Historical query endpoint."""
        if self.rpc_http_url_override:
            return self.rpc_http_url_override
        return f"https://rpc.helius.xyz/?api-key={self.helius_api_key}"


# Default configuration
DEFAULT_CONFIG = MonitorConfig()
