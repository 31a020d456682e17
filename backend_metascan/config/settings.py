"""
Application settings and environment configuration.

Loads configuration from environment variables (and .env), validates numeric
ranges, and exposes one typed Settings object for the source client, the live
monitor, and the API server.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_metascan.config import env

DEFAULT_REQUEST_TIMEOUT_SEC = 15.0
DEFAULT_SYNTHETIC_SEED = 42
DEFAULT_FEED_BACKLOG = 1000
DEFAULT_MEMPOOL_SCAN_INTERVAL_SEC = 10.0
DEFAULT_BLOCK_SCAN_INTERVAL_SEC = 30.0
DEFAULT_FETCH_DELAY_SEC = 0.2
DEFAULT_SEEN_CAPACITY = 10_000
DEFAULT_API_HOST = "0.0.0.0"
DEFAULT_API_PORT = 8000


@dataclass
class Settings:
    """
    Runtime settings for MetaScan.

    live_scan: True samples the real source; False runs the synthetic generator.
    monitor_enabled: False keeps the API up without any background feed (tests, one-shot use).
    """

    bitcoin_api_url: str = env.DEFAULT_BITCOIN_API_URL
    request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC
    live_scan: bool = False
    monitor_enabled: bool = True
    synthetic_seed: int = DEFAULT_SYNTHETIC_SEED
    feed_backlog: int = DEFAULT_FEED_BACKLOG
    mempool_scan_interval_sec: float = DEFAULT_MEMPOOL_SCAN_INTERVAL_SEC
    block_scan_interval_sec: float = DEFAULT_BLOCK_SCAN_INTERVAL_SEC
    fetch_delay_sec: float = DEFAULT_FETCH_DELAY_SEC
    seen_capacity: int = DEFAULT_SEEN_CAPACITY
    api_host: str = DEFAULT_API_HOST
    api_port: int = DEFAULT_API_PORT

    def __post_init__(self) -> None:
        if not self.bitcoin_api_url.strip():
            raise ValueError("bitcoin_api_url must be non-empty")
        if self.request_timeout_sec <= 0:
            raise ValueError("request_timeout_sec must be positive")
        if self.feed_backlog < 1:
            raise ValueError("feed_backlog must be at least 1")
        if self.mempool_scan_interval_sec <= 0 or self.block_scan_interval_sec <= 0:
            raise ValueError("scan intervals must be positive")
        if self.fetch_delay_sec < 0:
            raise ValueError("fetch_delay_sec must be non-negative")
        if self.seen_capacity < 0:
            raise ValueError("seen_capacity must be non-negative")
        if not (0 < self.api_port < 65536):
            raise ValueError("api_port must be between 1 and 65535")
        self.bitcoin_api_url = self.bitcoin_api_url.rstrip("/")


def get_settings() -> Settings:
    """Build Settings from the environment (after loading .env)."""
    return Settings(
        bitcoin_api_url=env.get_bitcoin_api_url(),
        request_timeout_sec=env.get_float("REQUEST_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC),
        live_scan=env.use_live_scanning(),
        monitor_enabled=env.get_bool("METASCAN_MONITOR_ENABLED", True),
        synthetic_seed=env.get_int("SYNTHETIC_SEED", DEFAULT_SYNTHETIC_SEED),
        feed_backlog=env.get_int("FEED_BACKLOG", DEFAULT_FEED_BACKLOG),
        mempool_scan_interval_sec=env.get_float(
            "MEMPOOL_SCAN_INTERVAL_SEC", DEFAULT_MEMPOOL_SCAN_INTERVAL_SEC
        ),
        block_scan_interval_sec=env.get_float(
            "BLOCK_SCAN_INTERVAL_SEC", DEFAULT_BLOCK_SCAN_INTERVAL_SEC
        ),
        fetch_delay_sec=env.get_float("FETCH_DELAY_SEC", DEFAULT_FETCH_DELAY_SEC),
        seen_capacity=env.get_int("SEEN_CAPACITY", DEFAULT_SEEN_CAPACITY),
        api_host=env.get_str("API_HOST", DEFAULT_API_HOST),
        api_port=env.get_int("API_PORT", DEFAULT_API_PORT),
    )
