"""
Synthetic activity generator for demo mode (no transaction source needed).

Deterministic given a seed: a 64-bit linear congruential generator
(Knuth MMIX constants) drives every derived field by indexing fixed tables.
Two generators started from the same seed produce identical protocol,
operation, token and amount sequences; only the publish timestamp comes from
the clock.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Sequence, TypeVar

from backend_metascan.detectors.base import TokenFields, build_token_activity
from backend_metascan.detectors.brc20 import LABEL as BRC20_LABEL
from backend_metascan.detectors.models import SOURCE_OUTPUT, Activity
from backend_metascan.detectors.runes import build_rune_activity
from backend_metascan.detectors.src20 import IMPORTANCE as SRC20_IMPORTANCE
from backend_metascan.detectors.src20 import LABEL as SRC20_LABEL
from backend_metascan.live_feed.models import LiveTransaction
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

LCG_MULTIPLIER = 6364136223846793005
LCG_INCREMENT = 1442695040888963407
_MASK64 = (1 << 64) - 1
# Low LCG bits cycle with short periods; tables are indexed with the high half
_INDEX_SHIFT = 32

DEFAULT_SEED = 42
SYNTHETIC_TXID_PREFIX = "demo_"

PROTOCOLS = ("brc20", "runes", "src20")
TOKEN_OPERATIONS = ("deploy", "mint", "transfer")
RUNE_OPERATIONS = ("etch", "mint", "transfer")
BRC20_TICKERS = ("ORDI", "SATS", "PEPE", "MEME", "RATS", "PIZA")
SRC20_TICKERS = ("STAMP", "KEVIN", "PEPE", "WOJAK")
RUNE_NAMES = (
    "UNCOMMON•GOODS",
    "DOG•GO•TO•THE•MOON",
    "RSIC•GENESIS•RUNE",
    "SATOSHI•NAKAMOTO",
    "PUPS•WORLD•PEACE",
)
MAX_SUPPLIES = ("21000000", "100000000", "1000000000", "2100000000000000")
MINT_LIMITS = ("1000", "500", "100000", "4200")

AMOUNT_RANGE = (1, 100_000)
RUNE_AMOUNT_RANGE = (1, 1_000_000)
SIZE_RANGE = (150, 800)
FEE_RATE_RANGE = (2, 60)
VALUE_RANGE = (546, 100_000)
BATCH_SIZE_RANGE = (1, 3)
DELAY_MS_RANGE = (500, 3000)


class SyntheticGenerator:
    def __init__(
        self,
        seed: int = DEFAULT_SEED,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._initial_seed = seed & _MASK64
        self._seed = self._initial_seed
        self._clock = clock

    @property
    def initial_seed(self) -> int:
        return self._initial_seed

    @property
    def seed(self) -> int:
        return self._seed

    def next_value(self) -> int:
        """Advance the LCG and return the new 64-bit seed."""
        self._seed = (self._seed * LCG_MULTIPLIER + LCG_INCREMENT) & _MASK64
        return self._seed

    def _next_index_value(self) -> int:
        return self.next_value() >> _INDEX_SHIFT

    def choose(self, table: Sequence[T]) -> T:
        return table[self._next_index_value() % len(table)]

    def next_in_range(self, low: int, high: int) -> int:
        """Inclusive range."""
        return low + self._next_index_value() % (high - low + 1)

    def next_batch_size(self) -> int:
        return self.next_in_range(*BATCH_SIZE_RANGE)

    def next_delay(self) -> float:
        """Seconds to wait before the next tick."""
        return self.next_in_range(*DELAY_MS_RANGE) / 1000.0

    def _token_activity(self, protocol: str) -> Activity:
        operation = self.choose(TOKEN_OPERATIONS)
        tick = self.choose(SRC20_TICKERS if protocol == "src20" else BRC20_TICKERS)
        if operation == "deploy":
            fields = TokenFields(
                op=operation,
                tick=tick,
                max_supply=self.choose(MAX_SUPPLIES),
                limit=self.choose(MINT_LIMITS),
            )
        else:
            fields = TokenFields(
                op=operation, tick=tick, amount=str(self.next_in_range(*AMOUNT_RANGE))
            )
        if protocol == "src20":
            return build_token_activity(
                protocol,
                SRC20_LABEL,
                fields,
                index=0,
                source=SOURCE_OUTPUT,
                importance=SRC20_IMPORTANCE,
            )
        return build_token_activity(protocol, BRC20_LABEL, fields, index=0, source=SOURCE_OUTPUT)

    def _rune_activity(self) -> Activity:
        operation = self.choose(RUNE_OPERATIONS)
        rune = self.choose(RUNE_NAMES)
        amount = str(self.next_in_range(*RUNE_AMOUNT_RANGE))
        return build_rune_activity(operation, index=0, rune=rune, amount=amount)

    def generate(self) -> LiveTransaction:
        """One synthetic LiveTransaction carrying exactly one Activity."""
        txid = f"{SYNTHETIC_TXID_PREFIX}{self.next_value():016x}"
        protocol = self.choose(PROTOCOLS)
        if protocol == "runes":
            activity = self._rune_activity()
        else:
            activity = self._token_activity(protocol)
        size = self.next_in_range(*SIZE_RANGE)
        fee_rate = self.next_in_range(*FEE_RATE_RANGE)
        return LiveTransaction(
            txid=txid,
            timestamp=int(self._clock()),
            protocols=frozenset({protocol}),
            total_value=self.next_in_range(*VALUE_RANGE),
            activities=(activity,),
            fee_rate=float(fee_rate),
            size=size,
        )

    async def run(self, publish: Callable[[LiveTransaction], Any]) -> None:
        """Publish a pseudo-random batch (1–3) per tick, forever, with pseudo-random delays."""
        logger.info("synthetic_feed_started", seed=self._initial_seed)
        tick = 0
        while True:
            tick += 1
            batch = self.next_batch_size()
            for _ in range(batch):
                live_tx = self.generate()
                try:
                    publish(live_tx)
                except Exception as e:
                    logger.exception("synthetic_publish_failed", txid=live_tx.txid, error=str(e))
            logger.debug("synthetic_tick", tick=tick, batch_size=batch)
            await asyncio.sleep(self.next_delay())
