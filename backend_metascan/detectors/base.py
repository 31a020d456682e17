"""
Shared detection pipeline for tagged-JSON token protocols (BRC-20, SRC-20).

Each candidate goes through short-circuiting steps: hex decode → text decode →
tagged-object scan → JSON decode → required-field validation. Any failing step
raises DecodeSkip; detectors catch it per candidate, so "malformed" and
"not this protocol" look the same to callers.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Iterator, Protocol, runtime_checkable

from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.core.exceptions import DecodeSkip
from backend_metascan.detectors.models import (
    CHANGE_CREATED,
    CHANGE_UPDATED,
    Activity,
    StateChange,
)

# OP_RETURN; the push opcode after it is parsed to find where the payload starts
DATA_CARRIER_PREFIX = "6a"
# OP_PUSHDATA1/2/4 -> size of the little-endian length field that follows
_PUSHDATA_LENGTH_BYTES = {0x4C: 1, 0x4D: 2, 0x4E: 4}

# Upper bound on payload bytes handed to the tagged-object regex
MAX_SCAN_WINDOW_BYTES = 4096

TOKEN_OPERATIONS = ("deploy", "mint", "transfer")

OPERATION_IMPORTANCE = {
    "deploy": 8,
    "mint": 5,
    "transfer": 3,
}
UNKNOWN_OPERATION_IMPORTANCE = 1


@runtime_checkable
class Detector(Protocol):
    """A protocol detector: given a transaction, lazily yield its activities."""

    protocol: str

    def detect(self, tx: Transaction) -> Iterator[Activity]:
        ...


def importance_for_operation(operation: str) -> int:
    return OPERATION_IMPORTANCE.get(operation, UNKNOWN_OPERATION_IMPORTANCE)


def tagged_object_pattern(tag: str) -> re.Pattern[str]:
    """
    Regex for a flat JSON object carrying "p": "<tag>".

    Non-greedy and brace-bounded: the match never spans nested or adjacent objects.
    """
    return re.compile(r'\{[^{}]*?"p"\s*:\s*"' + re.escape(tag) + r'"[^{}]*?\}')


def data_carrier_payload(script_hex: str) -> str:
    """
    Return payload hex of an OP_RETURN script; DecodeSkip if not a data carrier.

    The first push after OP_RETURN may be a direct push (0x01-0x4b) or
    OP_PUSHDATA1/2/4, whose length field is skipped as well. Any other opcode
    (a Runestone tag, OP_0) is skipped as a single byte. The result is capped
    at MAX_SCAN_WINDOW_BYTES.
    """
    script = script_hex.lower()
    if not script.startswith(DATA_CARRIER_PREFIX):
        raise DecodeSkip("not a data-carrier script")
    try:
        opcode = int(script[2:4], 16)
    except ValueError as e:
        raise DecodeSkip(f"invalid push opcode: {e}") from e
    start = 4 + 2 * _PUSHDATA_LENGTH_BYTES.get(opcode, 0)
    payload = script[start:]
    if not payload:
        raise DecodeSkip("data-carrier script has no payload")
    return payload[: MAX_SCAN_WINDOW_BYTES * 2]


def decode_hex(data_hex: str) -> bytes:
    try:
        return bytes.fromhex(data_hex)
    except ValueError as e:
        raise DecodeSkip(f"invalid hex: {e}") from e


def decode_text(raw: bytes) -> str:
    """UTF-8 with replacement, null bytes stripped; push opcodes around the payload stay harmless."""
    return raw.decode("utf-8", errors="replace").replace("\x00", "")


class _JsonNumber(str):
    """Source text of a JSON number literal, kept as written (1e3 stays "1e3")."""


def find_tagged_object(text: str, pattern: re.Pattern[str]) -> dict[str, Any]:
    """Find the first tagged object in text and JSON-decode it."""
    match = pattern.search(text)
    if match is None:
        raise DecodeSkip("no tagged object")
    try:
        obj = json.loads(match.group(0), parse_int=_JsonNumber, parse_float=_JsonNumber)
    except ValueError as e:
        raise DecodeSkip(f"invalid JSON object: {e}") from e
    if not isinstance(obj, dict):
        raise DecodeSkip("tagged payload is not an object")
    return obj


@dataclass(frozen=True)
class TokenFields:
    """Validated fields of a deploy/mint/transfer object."""

    op: str
    tick: str
    amount: str | None = None
    max_supply: str | None = None
    limit: str | None = None

    def to_data(self) -> dict[str, Any]:
        data: dict[str, Any] = {"tick": self.tick, "operation": self.op}
        if self.amount is not None:
            data["amount"] = self.amount
        if self.max_supply is not None:
            data["max_supply"] = self.max_supply
        if self.limit is not None:
            data["limit"] = self.limit
        return data


def _optional_field(obj: dict[str, Any], key: str) -> str | None:
    """Copy a string or number field as written; anything else counts as absent."""
    value = obj.get(key)
    if isinstance(value, str):
        return str(value)
    return None


def _is_json_string(value: Any) -> bool:
    return isinstance(value, str) and not isinstance(value, _JsonNumber)


def extract_token_fields(obj: dict[str, Any]) -> TokenFields:
    """Validate op/tick (required) and copy amt/max/lim (optional)."""
    op = obj.get("op")
    tick = obj.get("tick")
    if not _is_json_string(op) or not _is_json_string(tick):
        raise DecodeSkip("missing op or tick")
    op = op.lower()
    if op not in TOKEN_OPERATIONS:
        raise DecodeSkip(f"unsupported operation: {op}")
    return TokenFields(
        op=op,
        tick=tick.upper(),
        amount=_optional_field(obj, "amt"),
        max_supply=_optional_field(obj, "max"),
        limit=_optional_field(obj, "lim"),
    )


def derive_state_changes(fields: TokenFields) -> tuple[StateChange, ...]:
    """Symbolic state changes; mint/transfer without an amount produce none."""
    tick = fields.tick
    if fields.op == "deploy":
        changes = [
            StateChange(field=f"token.{tick}.exists", after="true", change_type=CHANGE_CREATED)
        ]
        if fields.max_supply is not None:
            changes.append(
                StateChange(
                    field=f"token.{tick}.max_supply",
                    after=fields.max_supply,
                    change_type=CHANGE_CREATED,
                )
            )
        return tuple(changes)
    amt = fields.amount
    if amt is None:
        return ()
    if fields.op == "mint":
        return (
            StateChange(
                field=f"token.{tick}.total_supply",
                before="prev_supply",
                after=f"prev_supply + {amt}",
                change_type=CHANGE_UPDATED,
            ),
            StateChange(
                field=f"balance.{tick}.minter",
                before="prev_balance",
                after=f"prev_balance + {amt}",
                change_type=CHANGE_UPDATED,
            ),
        )
    if fields.op == "transfer":
        return (
            StateChange(
                field=f"balance.{tick}.sender",
                before="sender_balance",
                after=f"sender_balance - {amt}",
                change_type=CHANGE_UPDATED,
            ),
            StateChange(
                field=f"balance.{tick}.receiver",
                before="receiver_balance",
                after=f"receiver_balance + {amt}",
                change_type=CHANGE_UPDATED,
            ),
        )
    return ()


def describe(label: str, fields: TokenFields) -> str:
    if fields.op == "deploy":
        return f"Deploy {label} token '{fields.tick}' with max supply {fields.max_supply or 'N/A'}"
    if fields.op == "mint":
        return f"Mint {fields.amount or 'N/A'} {fields.tick} tokens"
    if fields.op == "transfer":
        return f"Transfer {fields.amount or 'N/A'} {fields.tick} tokens"
    return f"Unknown {fields.op} operation"


def build_token_activity(
    protocol: str,
    label: str,
    fields: TokenFields,
    *,
    index: int,
    source: str,
    raw_script: str = "",
    importance: int | None = None,
) -> Activity:
    """
    Build the Activity for a validated token object.

    importance defaults to the per-operation table; protocols with a fixed
    score pass it explicitly.
    """
    return Activity(
        protocol=protocol,
        operation=fields.op,
        index=index,
        source=source,
        data=fields.to_data(),
        changes=derive_state_changes(fields),
        description=describe(label, fields),
        importance=importance if importance is not None else importance_for_operation(fields.op),
        raw_script=raw_script,
    )
