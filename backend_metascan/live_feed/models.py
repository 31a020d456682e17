"""
Live feed models: classified transactions as published, and per-protocol stats.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from backend_metascan.analysis_engine.classifier import Classification
from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.detectors.models import Activity


@dataclass(frozen=True)
class LiveTransaction:
    """
    A classified transaction as delivered to subscribers.

    Immutable and shared read-only by every subscriber. The live path only
    builds one when at least one protocol matched.
    """

    txid: str
    timestamp: int
    """Unix seconds when the transaction was published."""
    protocols: frozenset[str]
    total_value: int
    """Sum of output values in satoshis."""
    activities: tuple[Activity, ...]
    fee_rate: float
    size: int

    @classmethod
    def from_classification(
        cls,
        tx: Transaction,
        result: Classification,
        timestamp: int,
    ) -> "LiveTransaction":
        return cls(
            txid=tx.txid,
            timestamp=timestamp,
            protocols=result.protocols,
            total_value=tx.total_output_value,
            activities=result.activities,
            fee_rate=tx.fee_rate,
            size=tx.size,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "timestamp": self.timestamp,
            "protocols": sorted(self.protocols),
            "total_value": self.total_value,
            "activities": [a.to_dict() for a in self.activities],
            "fee_rate": self.fee_rate,
            "size": self.size,
        }


@dataclass(frozen=True)
class ProtocolStats:
    """Point-in-time copy of one protocol's running counters."""

    protocol: str
    tx_count: int = 0
    total_volume: int = 0
    unique_tokens: int = 0
    """Distinct token/rune names seen (best-effort: only activities that name one)."""
    last_activity: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol": self.protocol,
            "tx_count": self.tx_count,
            "total_volume": self.total_volume,
            "unique_tokens": self.unique_tokens,
            "last_activity": self.last_activity,
        }
