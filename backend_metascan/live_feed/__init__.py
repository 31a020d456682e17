"""
Live feed package: broadcast hub, stats aggregation, scan loops, and the
synthetic demo generator, all owned by one Monitor.
"""

from backend_metascan.live_feed.hub import LiveFeedHub, Subscription, SubscriptionClosed
from backend_metascan.live_feed.models import LiveTransaction, ProtocolStats
from backend_metascan.live_feed.monitor import Monitor, MonitorConfig, log_feed
from backend_metascan.live_feed.scanner import BlockScanner, MempoolScanner
from backend_metascan.live_feed.stats import StatsAggregator
from backend_metascan.live_feed.synthetic import SyntheticGenerator

__all__ = [
    "BlockScanner",
    "LiveFeedHub",
    "LiveTransaction",
    "MempoolScanner",
    "Monitor",
    "MonitorConfig",
    "ProtocolStats",
    "StatsAggregator",
    "Subscription",
    "SubscriptionClosed",
    "SyntheticGenerator",
    "log_feed",
]
