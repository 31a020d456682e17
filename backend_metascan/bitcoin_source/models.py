"""
Data models for Bitcoin transactions as returned by an Esplora-style source.

Frozen dataclasses mirroring the REST payload (txid, size, fee, status, vout,
vin). Order of vout/vin is preserved; the position in each tuple is the index
detectors report on their activities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SATS_PER_BTC = 100_000_000


@dataclass(frozen=True)
class TxStatus:
    """Confirmation status of a transaction."""

    confirmed: bool
    block_height: int | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any] | None) -> "TxStatus":
        item = item or {}
        height = item.get("block_height")
        return cls(
            confirmed=bool(item.get("confirmed", False)),
            block_height=int(height) if height is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"confirmed": self.confirmed, "block_height": self.block_height}


@dataclass(frozen=True)
class Output:
    """One transaction output: locking script hex and value in satoshis."""

    scriptpubkey: str
    value: int
    address: str | None = None

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("output value must be non-negative")

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Output":
        return cls(
            scriptpubkey=str(item.get("scriptpubkey") or ""),
            value=int(item.get("value") or 0),
            address=item.get("scriptpubkey_address"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "scriptpubkey": self.scriptpubkey,
            "value": self.value,
            "scriptpubkey_address": self.address,
        }


@dataclass(frozen=True)
class Input:
    """
    One transaction input: the prior output it spends and its witness stack.

    witness is None for non-segwit inputs; witness detectors skip those.
    """

    txid: str
    vout: int
    witness: tuple[str, ...] | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Input":
        witness = item.get("witness")
        return cls(
            txid=str(item.get("txid") or ""),
            vout=int(item.get("vout") or 0),
            witness=tuple(str(w) for w in witness) if witness is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "vout": self.vout,
            "witness": list(self.witness) if self.witness is not None else None,
        }


@dataclass(frozen=True)
class Transaction:
    """
    A ledger transaction as returned by the source.

    Owned by the caller of a fetch and consumed by the classifier; nothing
    retains a Transaction after classification.
    """

    txid: str
    size: int
    fee: int | None
    status: TxStatus
    vout: tuple[Output, ...] = field(default_factory=tuple)
    vin: tuple[Input, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.size <= 0:
            raise ValueError("transaction size must be positive")

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "Transaction":
        """Build from a GET /tx/{txid} payload. Raises KeyError/ValueError/TypeError on bad shape."""
        fee = item.get("fee")
        return cls(
            txid=str(item["txid"]),
            size=int(item["size"]),
            fee=int(fee) if fee is not None else None,
            status=TxStatus.from_api(item.get("status")),
            vout=tuple(Output.from_api(o) for o in item.get("vout") or []),
            vin=tuple(Input.from_api(i) for i in item.get("vin") or []),
        )

    @property
    def total_output_value(self) -> int:
        """Sum of output values in satoshis."""
        return sum(o.value for o in self.vout)

    @property
    def fee_rate(self) -> float:
        """Fee rate in sat/byte; 0.0 when the fee is unknown."""
        if self.fee is None:
            return 0.0
        return round(self.fee / self.size, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "size": self.size,
            "fee": self.fee,
            "status": self.status.to_dict(),
            "vout": [o.to_dict() for o in self.vout],
            "vin": [i.to_dict() for i in self.vin],
        }
