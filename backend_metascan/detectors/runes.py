"""
Runes presence detection.

A runestone is an OP_RETURN OP_13 output. The detector only checks that the
script hex contains that marker and emits one fixed-shape activity per
qualifying output; the runestone message itself is not decoded.
"""

from __future__ import annotations

from typing import Any, Iterator

from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.detectors.models import SOURCE_OUTPUT, Activity

PROTOCOL = "runes"
# OP_RETURN OP_13
RUNESTONE_MARKER = "6a5d"
RUNESTONE_OPERATION = "runestone"
IMPORTANCE = 6


def build_rune_activity(
    operation: str,
    *,
    index: int,
    rune: str | None = None,
    amount: str | None = None,
    raw_script: str = "",
) -> Activity:
    """Runes activity; rune/amount are only known for synthetic or externally decoded events."""
    data: dict[str, Any] = {}
    if rune is not None:
        data["rune"] = rune
    if amount is not None:
        data["amount"] = amount
    if rune is None:
        description = "Runestone detected"
    else:
        description = f"{operation.capitalize()} {amount or 'N/A'} {rune}"
    return Activity(
        protocol=PROTOCOL,
        operation=operation,
        index=index,
        source=SOURCE_OUTPUT,
        data=data,
        description=description,
        importance=IMPORTANCE,
        raw_script=raw_script,
    )


class RunesDetector:
    protocol = PROTOCOL

    def detect(self, tx: Transaction) -> Iterator[Activity]:
        for idx, out in enumerate(tx.vout):
            script = out.scriptpubkey.lower()
            if RUNESTONE_MARKER in script:
                yield build_rune_activity(RUNESTONE_OPERATION, index=idx, raw_script=out.scriptpubkey)
