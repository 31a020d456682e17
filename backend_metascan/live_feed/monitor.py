"""
Live monitor: explicitly owned hub + stats + classifier, and the tasks feeding them.

One Monitor is constructed at startup and passed to every task that needs it
(scan loops, synthetic generator, WebSocket handlers); there is no global
instance. start(live) picks real scanning or synthetic generation, once.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable

from backend_metascan.analysis_engine.classifier import ActivityClassifier, Classification
from backend_metascan.bitcoin_source.client import TransactionSource
from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.live_feed.hub import DEFAULT_BACKLOG_CAPACITY, LiveFeedHub, Subscription
from backend_metascan.live_feed.models import LiveTransaction, ProtocolStats
from backend_metascan.live_feed.scanner import (
    DEFAULT_BLOCK_INTERVAL_SEC,
    DEFAULT_FETCH_DELAY_SEC,
    DEFAULT_MEMPOOL_INTERVAL_SEC,
    DEFAULT_SEEN_CAPACITY,
    BlockScanner,
    MempoolScanner,
)
from backend_metascan.live_feed.stats import StatsAggregator
from backend_metascan.live_feed.synthetic import DEFAULT_SEED, SyntheticGenerator
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)


@dataclass
class MonitorConfig:
    """
    Config for the live monitor.

    capacity: Hub backlog size (messages a slow subscriber may fall behind).
    synthetic_seed: Starting LCG seed for demo mode.
    """

    capacity: int = DEFAULT_BACKLOG_CAPACITY
    mempool_interval_sec: float = DEFAULT_MEMPOOL_INTERVAL_SEC
    block_interval_sec: float = DEFAULT_BLOCK_INTERVAL_SEC
    fetch_delay_sec: float = DEFAULT_FETCH_DELAY_SEC
    seen_capacity: int = DEFAULT_SEEN_CAPACITY
    synthetic_seed: int = DEFAULT_SEED

    @classmethod
    def from_settings(cls, settings: Any) -> "MonitorConfig":
        return cls(
            capacity=settings.feed_backlog,
            mempool_interval_sec=settings.mempool_scan_interval_sec,
            block_interval_sec=settings.block_scan_interval_sec,
            fetch_delay_sec=settings.fetch_delay_sec,
            seen_capacity=settings.seen_capacity,
            synthetic_seed=settings.synthetic_seed,
        )


class Monitor:
    def __init__(
        self,
        source: TransactionSource | None = None,
        config: MonitorConfig | None = None,
        *,
        classifier: ActivityClassifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or MonitorConfig()
        self._source = source
        self._classifier = classifier or ActivityClassifier()
        self._clock = clock
        self._hub = LiveFeedHub(self._config.capacity)
        self._stats = StatsAggregator()
        self._tasks: list[asyncio.Task[None]] = []
        self._mode: str | None = None

    @classmethod
    def create(
        cls,
        source: TransactionSource | None = None,
        config: MonitorConfig | None = None,
        **kwargs: Any,
    ) -> tuple["Monitor", Subscription]:
        """Construct a monitor plus its initial subscription."""
        monitor = cls(source, config, **kwargs)
        return monitor, monitor.subscribe()

    @property
    def hub(self) -> LiveFeedHub:
        return self._hub

    @property
    def stats(self) -> StatsAggregator:
        return self._stats

    @property
    def classifier(self) -> ActivityClassifier:
        return self._classifier

    @property
    def source(self) -> TransactionSource | None:
        return self._source

    @property
    def mode(self) -> str | None:
        """Current mode: live, synthetic, or None before start()."""
        return self._mode

    def subscribe(self) -> Subscription:
        return self._hub.subscribe()

    def get_stats(self) -> dict[str, ProtocolStats]:
        return self._stats.snapshot()

    def publish(self, live_tx: LiveTransaction) -> int:
        """Fold into stats, then fan out to subscribers."""
        self._stats.update(live_tx)
        return self._hub.publish(live_tx)

    def ingest(self, tx: Transaction, result: Classification) -> LiveTransaction | None:
        """Publish a classified transaction; transactions with no protocol are dropped."""
        if not result.protocols:
            return None
        live_tx = LiveTransaction.from_classification(tx, result, int(self._clock()))
        delivered = self.publish(live_tx)
        logger.info(
            "live_tx_published",
            txid=tx.txid,
            protocols=sorted(result.protocols),
            activity_count=len(result.activities),
            subscribers=delivered,
        )
        return live_tx

    def start(self, live: bool) -> list[asyncio.Task[None]]:
        """
        Launch background tasks on the running loop: both scan loops when
        live, else the synthetic generator. May be called once.
        """
        if self._mode is not None:
            raise RuntimeError(f"monitor already started in {self._mode} mode")
        cfg = self._config
        if live:
            if self._source is None:
                raise ValueError("live scanning needs a transaction source")
            scanners = [
                MempoolScanner(
                    self._source,
                    self._classifier,
                    self.ingest,
                    interval_sec=cfg.mempool_interval_sec,
                    fetch_delay_sec=cfg.fetch_delay_sec,
                    seen_capacity=cfg.seen_capacity,
                ),
                BlockScanner(
                    self._source,
                    self._classifier,
                    self.ingest,
                    interval_sec=cfg.block_interval_sec,
                    fetch_delay_sec=cfg.fetch_delay_sec,
                    seen_capacity=cfg.seen_capacity,
                ),
            ]
            self._tasks = [
                asyncio.create_task(s.run_forever(), name=f"scan-{s.name}") for s in scanners
            ]
            self._mode = "live"
        else:
            generator = SyntheticGenerator(cfg.synthetic_seed, clock=self._clock)
            self._tasks = [
                asyncio.create_task(generator.run(self.publish), name="synthetic-feed")
            ]
            self._mode = "synthetic"
        logger.info("monitor_started", mode=self._mode, task_count=len(self._tasks))
        return list(self._tasks)

    async def stop(self) -> None:
        """Cancel feed tasks; in-flight fetches are abandoned."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        if tasks:
            logger.info("monitor_stopped", mode=self._mode)


async def log_feed(subscription: Subscription) -> None:
    """Drain a subscription into debug logs (keeps the initial handle consumed)."""
    async for live_tx in subscription:
        logger.debug(
            "feed_message",
            txid=live_tx.txid,
            protocols=sorted(live_tx.protocols),
            missed=subscription.missed,
        )
