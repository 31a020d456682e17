"""
Mempool and recent-block scan loops.

Each cycle: list candidate ids from the source → fetch each transaction
(politeness delay between fetches) → classify → hand matches to the monitor.
A failing fetch skips that id; a failing listing skips the cycle. Neither
ends the loop. Ids already classified are remembered in a bounded seen-set
so one mempool transaction is not re-published every cycle.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Callable

from backend_metascan.analysis_engine.classifier import ActivityClassifier, Classification
from backend_metascan.bitcoin_source.client import TransactionSource
from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.core.exceptions import TransactionNotFound
from backend_metascan.live_feed.models import LiveTransaction
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)

DEFAULT_MEMPOOL_INTERVAL_SEC = 10.0
DEFAULT_BLOCK_INTERVAL_SEC = 30.0
DEFAULT_FETCH_DELAY_SEC = 0.2
DEFAULT_SEEN_CAPACITY = 10_000

IngestFn = Callable[[Transaction, Classification], LiveTransaction | None]


class _ScanLoop:
    name = "scan"

    def __init__(
        self,
        source: TransactionSource,
        classifier: ActivityClassifier,
        ingest: IngestFn,
        *,
        interval_sec: float,
        fetch_delay_sec: float = DEFAULT_FETCH_DELAY_SEC,
        seen_capacity: int = DEFAULT_SEEN_CAPACITY,
    ) -> None:
        """
        Args:
            source: Transaction source to list and fetch from.
            classifier: Classifier applied to each fetched transaction.
            ingest: Called with (tx, classification); returns the published
                LiveTransaction or None when nothing matched.
            interval_sec: Sleep between full scan cycles.
            fetch_delay_sec: Sleep after each per-id fetch.
            seen_capacity: Ids remembered for dedup (0 disables dedup).
        """
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        self._source = source
        self._classifier = classifier
        self._ingest = ingest
        self._interval_sec = interval_sec
        self._fetch_delay_sec = fetch_delay_sec
        self._seen_capacity = seen_capacity
        # set for O(1) dedup + deque for FIFO eviction when over capacity
        self._seen: set[str] = set()
        self._seen_order: deque[str] = deque()

    @property
    def interval_sec(self) -> float:
        return self._interval_sec

    async def list_candidates(self) -> list[str]:
        raise NotImplementedError

    def _mark_seen(self, txid: str) -> None:
        """Mark txid as seen; evict oldest if over capacity."""
        if self._seen_capacity <= 0 or txid in self._seen:
            return
        if len(self._seen) >= self._seen_capacity:
            oldest = self._seen_order.popleft()
            self._seen.discard(oldest)
        self._seen.add(txid)
        self._seen_order.append(txid)

    async def run_once(self) -> int:
        """One scan cycle; returns how many transactions were published."""
        try:
            txids = await self.list_candidates()
        except Exception as e:
            logger.warning("scan_list_failed", scanner=self.name, error=str(e))
            return 0

        published = 0
        for txid in txids:
            if txid in self._seen:
                continue
            try:
                tx = await self._source.fetch_transaction(txid)
            except TransactionNotFound as e:
                logger.debug("scan_tx_not_found", scanner=self.name, txid=txid, error=str(e))
            except Exception as e:
                logger.warning("scan_tx_fetch_failed", scanner=self.name, txid=txid, error=str(e))
            else:
                self._mark_seen(txid)
                result = self._classifier.classify(tx)
                if result.protocols and self._ingest(tx, result) is not None:
                    published += 1
            await asyncio.sleep(self._fetch_delay_sec)
        return published

    async def run_forever(self) -> None:
        logger.info("scan_loop_started", scanner=self.name, interval_sec=self._interval_sec)
        cycle = 0
        while True:
            cycle += 1
            try:
                published = await self.run_once()
                logger.info("scan_cycle_done", scanner=self.name, cycle=cycle, published=published)
            except Exception as e:
                logger.exception("scan_cycle_failed", scanner=self.name, cycle=cycle, error=str(e))
            await asyncio.sleep(self._interval_sec)


class MempoolScanner(_ScanLoop):
    name = "mempool"

    def __init__(self, *args, interval_sec: float = DEFAULT_MEMPOOL_INTERVAL_SEC, **kwargs) -> None:
        super().__init__(*args, interval_sec=interval_sec, **kwargs)

    async def list_candidates(self) -> list[str]:
        return await self._source.list_recent_mempool_ids()


class BlockScanner(_ScanLoop):
    name = "blocks"

    def __init__(self, *args, interval_sec: float = DEFAULT_BLOCK_INTERVAL_SEC, **kwargs) -> None:
        super().__init__(*args, interval_sec=interval_sec, **kwargs)

    async def list_candidates(self) -> list[str]:
        return await self._source.list_recent_block_txids()
