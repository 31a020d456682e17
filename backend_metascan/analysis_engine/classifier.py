"""
Activity classifier: run every registered detector over one transaction.

Concatenates detector output in registry order (each detector's own ordering
preserved) and records a protocol iff at least one of its activities fired.
Never raises: an unexpected detector failure is logged and counted as no match.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.detectors.base import Detector
from backend_metascan.detectors.models import Activity
from backend_metascan.detectors.registry import default_detectors
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Classification:
    activities: tuple[Activity, ...] = ()
    protocols: frozenset[str] = frozenset()

    @property
    def is_metaprotocol(self) -> bool:
        return bool(self.protocols)

    def to_dict(self) -> dict[str, Any]:
        return {
            "activities": [a.to_dict() for a in self.activities],
            "protocols": sorted(self.protocols),
        }


class ActivityClassifier:
    """Single extension point for protocol detection."""

    def __init__(self, detectors: Iterable[Detector] | None = None) -> None:
        self._detectors: list[Detector] = (
            list(detectors) if detectors is not None else default_detectors()
        )

    @property
    def detectors(self) -> tuple[Detector, ...]:
        return tuple(self._detectors)

    def register(self, detector: Detector) -> None:
        """Append a detector; it runs after all existing ones."""
        self._detectors.append(detector)

    def classify(self, tx: Transaction) -> Classification:
        activities: list[Activity] = []
        for detector in self._detectors:
            try:
                found = list(detector.detect(tx))
            except Exception as e:
                logger.warning(
                    "detector_failed",
                    txid=tx.txid,
                    protocol=getattr(detector, "protocol", type(detector).__name__),
                    error=str(e),
                    exc_info=True,
                )
                continue
            activities.extend(found)
        protocols = frozenset(a.protocol for a in activities)
        if activities:
            logger.debug(
                "tx_classified",
                txid=tx.txid,
                protocols=sorted(protocols),
                activity_count=len(activities),
            )
        return Classification(activities=tuple(activities), protocols=protocols)
