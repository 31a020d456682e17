"""
Transaction and feed builders shared by the test modules.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from backend_metascan.bitcoin_source.models import Input, Output, Transaction, TxStatus
from backend_metascan.core.exceptions import SourceUnavailable, TransactionNotFound
from backend_metascan.detectors.brc20 import LABEL as BRC20_LABEL
from backend_metascan.detectors.base import TokenFields, build_token_activity
from backend_metascan.detectors.models import SOURCE_OUTPUT
from backend_metascan.live_feed.models import LiveTransaction

ORDI_DEPLOY_TXID = "b61b0172d95e266c18aea0c624db987e971a5d6d4ebc2aaed85da4642d635735"
PLAIN_TXID = "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"
UNKNOWN_TXID = "f" * 64

ORDI_DEPLOY = {"p": "brc-20", "op": "deploy", "tick": "ordi", "max": "21000000"}
# P2WPKH locking script; no metaprotocol payload
PLAIN_SCRIPT = "0014" + "ab" * 20


def push(data: bytes) -> str:
    """Direct push (<= 75 bytes) or OP_PUSHDATA1/2, as hex."""
    n = len(data)
    if n <= 75:
        return f"{n:02x}" + data.hex()
    if n <= 0xFF:
        return "4c" + f"{n:02x}" + data.hex()
    return "4d" + n.to_bytes(2, "little").hex() + data.hex()


def token_json(tag: str = "brc-20", **fields: Any) -> bytes:
    return json.dumps({"p": tag, **fields}, separators=(",", ":")).encode()


def op_return(payload: bytes) -> str:
    """OP_RETURN followed by one push of payload, sized like push()."""
    return "6a" + push(payload)


def inscription_witness(content: bytes, content_type: bytes = b"text/plain;charset=utf-8") -> str:
    """Taproot script-path element: <pubkey> OP_CHECKSIG OP_FALSE OP_IF "ord" 1 <type> 0 <content> OP_ENDIF."""
    return (
        push(b"\x11" * 32)
        + "ac"
        + "0063"
        + push(b"ord")
        + "0101"
        + push(content_type)
        + "00"
        + push(content)
        + "68"
    )


def make_tx(
    txid: str = PLAIN_TXID,
    scripts: Iterable[str] = (PLAIN_SCRIPT,),
    *,
    values: Iterable[int] | None = None,
    witnesses: Iterable[tuple[str, ...] | None] = (),
    fee: int | None = 1000,
    size: int = 250,
    confirmed: bool = True,
) -> Transaction:
    scripts = list(scripts)
    values = list(values) if values is not None else [546] * len(scripts)
    return Transaction(
        txid=txid,
        size=size,
        fee=fee,
        status=TxStatus(confirmed=confirmed, block_height=779832 if confirmed else None),
        vout=tuple(Output(scriptpubkey=s, value=v) for s, v in zip(scripts, values)),
        vin=tuple(Input(txid="cd" * 32, vout=i, witness=w) for i, w in enumerate(witnesses)),
    )


def ordi_deploy_tx(txid: str = ORDI_DEPLOY_TXID) -> Transaction:
    return make_tx(
        txid,
        [op_return(token_json(**{k: v for k, v in ORDI_DEPLOY.items() if k != "p"})), PLAIN_SCRIPT],
        values=[0, 10_000],
        fee=2_000,
        size=200,
    )


def make_live_tx(
    txid: str = "demo_0000000000000001",
    *,
    protocols: Iterable[str] = ("brc20",),
    total_value: int = 1_000,
    timestamp: int = 1_700_000_000,
    tick: str | None = "ORDI",
) -> LiveTransaction:
    activities = ()
    if tick is not None:
        fields = TokenFields(op="mint", tick=tick, amount="1000")
        activities = (
            build_token_activity("brc20", BRC20_LABEL, fields, index=0, source=SOURCE_OUTPUT),
        )
    return LiveTransaction(
        txid=txid,
        timestamp=timestamp,
        protocols=frozenset(protocols),
        total_value=total_value,
        activities=activities,
        fee_rate=5.0,
        size=250,
    )


class FakeSource:
    """In-memory TransactionSource; records every fetch."""

    def __init__(
        self,
        txs: Iterable[Transaction] = (),
        *,
        mempool_ids: Iterable[str] = (),
        block_ids: Iterable[str] = (),
        failing_ids: Iterable[str] = (),
        listing_fails: bool = False,
    ) -> None:
        self.txs = {tx.txid: tx for tx in txs}
        self.mempool_ids = list(mempool_ids)
        self.block_ids = list(block_ids)
        self.failing_ids = set(failing_ids)
        self.listing_fails = listing_fails
        self.fetched: list[str] = []

    async def fetch_transaction(self, txid: str) -> Transaction:
        self.fetched.append(txid)
        if txid in self.failing_ids:
            raise RuntimeError(f"connection reset while fetching {txid}")
        tx = self.txs.get(txid)
        if tx is None:
            raise TransactionNotFound(txid)
        return tx

    async def list_recent_mempool_ids(self) -> list[str]:
        if self.listing_fails:
            raise SourceUnavailable("mempool listing failed")
        return list(self.mempool_ids)

    async def list_recent_block_txids(self) -> list[str]:
        if self.listing_fails:
            raise SourceUnavailable("block listing failed")
        return list(self.block_ids)
