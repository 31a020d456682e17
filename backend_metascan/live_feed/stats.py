"""
Per-protocol running statistics for the live feed.

The counters map is owned by the aggregator and only mutated under its lock;
the lock is never held across an await. Readers get frozen copies.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from backend_metascan.live_feed.models import LiveTransaction, ProtocolStats

_TOKEN_DATA_KEYS = ("tick", "rune")


@dataclass
class _Counters:
    tx_count: int = 0
    total_volume: int = 0
    tokens: set[str] = field(default_factory=set)
    last_activity: int | None = None


class StatsAggregator:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, _Counters] = {}

    def update(self, live_tx: LiveTransaction) -> None:
        """
        Fold one published transaction into every protocol it carries.

        last_activity is last-write-wins: racing scans may move it backwards.
        """
        tokens_by_protocol: dict[str, set[str]] = {}
        for activity in live_tx.activities:
            for key in _TOKEN_DATA_KEYS:
                name = activity.data.get(key)
                if isinstance(name, str) and name:
                    tokens_by_protocol.setdefault(activity.protocol, set()).add(name)
        with self._lock:
            for protocol in live_tx.protocols:
                counters = self._counters.setdefault(protocol, _Counters())
                counters.tx_count += 1
                counters.total_volume += live_tx.total_value
                counters.tokens.update(tokens_by_protocol.get(protocol, ()))
                counters.last_activity = live_tx.timestamp

    def get(self, protocol: str) -> ProtocolStats | None:
        with self._lock:
            counters = self._counters.get(protocol)
            return _freeze(protocol, counters) if counters is not None else None

    def snapshot(self) -> dict[str, ProtocolStats]:
        """Point-in-time copy of all protocols."""
        with self._lock:
            return {p: _freeze(p, c) for p, c in self._counters.items()}


def _freeze(protocol: str, counters: _Counters) -> ProtocolStats:
    return ProtocolStats(
        protocol=protocol,
        tx_count=counters.tx_count,
        total_volume=counters.total_volume,
        unique_tokens=len(counters.tokens),
        last_activity=counters.last_activity,
    )
