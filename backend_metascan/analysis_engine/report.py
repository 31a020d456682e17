"""
One-shot transaction reports (bypass the live feed and stats).

analyze(): metaprotocol summary used by POST /api/analyze/{txid}.
debug(): detailed debugger view used by POST /api/debug/{txid} and the CLI.
Both raise TransactionNotFound when the source does not know the txid.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from backend_metascan.analysis_engine.classifier import ActivityClassifier, Classification
from backend_metascan.bitcoin_source.client import TransactionSource
from backend_metascan.bitcoin_source.models import SATS_PER_BTC, Transaction
from backend_metascan.detectors.models import Activity
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AnalysisReport:
    txid: str
    size: int
    fee: int | None
    fee_rate: float
    total_value: int
    total_value_btc: float
    protocols: tuple[str, ...]
    activities: tuple[Activity, ...]
    activity_count: int
    is_metaprotocol: bool
    max_importance: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "size": self.size,
            "fee": self.fee,
            "fee_rate": self.fee_rate,
            "total_value": self.total_value,
            "total_value_btc": self.total_value_btc,
            "protocols": list(self.protocols),
            "activities": [a.to_dict() for a in self.activities],
            "activity_count": self.activity_count,
            "is_metaprotocol": self.is_metaprotocol,
            "max_importance": self.max_importance,
        }


@dataclass(frozen=True)
class DebugSummary:
    total_activities: int
    protocols: tuple[str, ...]
    operations: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_activities": self.total_activities,
            "protocols": list(self.protocols),
            "operations": list(self.operations),
        }


@dataclass(frozen=True)
class DebugReport:
    txid: str
    size: int
    fee: int | None
    confirmations: int
    protocols_detected: tuple[str, ...]
    activities: tuple[Activity, ...]
    total_state_changes: int
    summary: DebugSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "size": self.size,
            "fee": self.fee,
            "confirmations": self.confirmations,
            "protocols_detected": list(self.protocols_detected),
            "activities": [a.to_dict() for a in self.activities],
            "total_state_changes": self.total_state_changes,
            "summary": self.summary.to_dict(),
        }


def build_analysis_report(tx: Transaction, result: Classification) -> AnalysisReport:
    total_value = tx.total_output_value
    return AnalysisReport(
        txid=tx.txid,
        size=tx.size,
        fee=tx.fee,
        fee_rate=tx.fee_rate,
        total_value=total_value,
        total_value_btc=round(total_value / SATS_PER_BTC, 8),
        protocols=tuple(sorted(result.protocols)),
        activities=result.activities,
        activity_count=len(result.activities),
        is_metaprotocol=result.is_metaprotocol,
        max_importance=max((a.importance for a in result.activities), default=0),
    )


def build_debug_report(tx: Transaction, result: Classification) -> DebugReport:
    protocols = tuple(sorted(result.protocols))
    return DebugReport(
        txid=tx.txid,
        size=tx.size,
        fee=tx.fee,
        # Esplora reports confirmed/unconfirmed only
        confirmations=1 if tx.status.confirmed else 0,
        protocols_detected=protocols,
        activities=result.activities,
        total_state_changes=sum(len(a.changes) for a in result.activities),
        summary=DebugSummary(
            total_activities=len(result.activities),
            protocols=protocols,
            operations=tuple(f"{a.protocol}:{a.operation}" for a in result.activities),
        ),
    )


async def analyze(
    source: TransactionSource,
    txid: str,
    classifier: ActivityClassifier | None = None,
) -> AnalysisReport:
    """Fetch one transaction and summarise its metaprotocol activity."""
    tx = await source.fetch_transaction(txid)
    result = (classifier or ActivityClassifier()).classify(tx)
    report = build_analysis_report(tx, result)
    logger.info(
        "tx_analyzed",
        txid=txid,
        protocols=list(report.protocols),
        activity_count=report.activity_count,
        max_importance=report.max_importance,
    )
    return report


async def debug(
    source: TransactionSource,
    txid: str,
    classifier: ActivityClassifier | None = None,
) -> DebugReport:
    """Fetch one transaction and return the detailed debugger report."""
    tx = await source.fetch_transaction(txid)
    result = (classifier or ActivityClassifier()).classify(tx)
    return build_debug_report(tx, result)
