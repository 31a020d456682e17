"""
BRC-20 detection from OP_RETURN outputs and ordinals inscription witnesses.

Script path: an output whose script starts with OP_RETURN carries the JSON
object directly. Witness path: an input's witness stack carries an inscription
envelope (OP_FALSE OP_IF "ord" ...); the content window after the "ord" marker
is scanned for the same object. The envelope is located heuristically by a
fixed offset, not by parsing script structure.
"""

from __future__ import annotations

from typing import Iterator

from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.core.exceptions import DecodeSkip
from backend_metascan.detectors.base import (
    MAX_SCAN_WINDOW_BYTES,
    build_token_activity,
    data_carrier_payload,
    decode_hex,
    decode_text,
    extract_token_fields,
    find_tagged_object,
    tagged_object_pattern,
)
from backend_metascan.detectors.models import SOURCE_INPUT, SOURCE_OUTPUT, Activity

PROTOCOL = "brc20"
LABEL = "BRC-20"
TAG = "brc-20"

# "ord" as hex
ENVELOPE_MARKER = "6f7264"
# Content starts this many hex chars past the start of the marker
ENVELOPE_CONTENT_OFFSET = 20
MAX_ENVELOPE_WINDOW_BYTES = MAX_SCAN_WINDOW_BYTES

_PATTERN = tagged_object_pattern(TAG)


class Brc20ScriptDetector:
    """BRC-20 objects embedded in OP_RETURN outputs."""

    protocol = PROTOCOL

    def detect(self, tx: Transaction) -> Iterator[Activity]:
        for idx, out in enumerate(tx.vout):
            try:
                yield self._parse_output(out.scriptpubkey, idx)
            except DecodeSkip:
                continue

    def _parse_output(self, script: str, idx: int) -> Activity:
        payload = decode_hex(data_carrier_payload(script))
        obj = find_tagged_object(decode_text(payload), _PATTERN)
        fields = extract_token_fields(obj)
        return build_token_activity(
            PROTOCOL, LABEL, fields, index=idx, source=SOURCE_OUTPUT, raw_script=script
        )


def envelope_window(witness_hex: str) -> bytes:
    """
    Return the content window after the "ord" marker of one witness element.

    DecodeSkip when the element is not hex or carries no marker.
    """
    # Round-trip through bytes to validate and normalise case
    normalised = decode_hex(witness_hex).hex()
    start = normalised.find(ENVELOPE_MARKER)
    if start < 0:
        raise DecodeSkip("no inscription marker")
    content_hex = normalised[start + ENVELOPE_CONTENT_OFFSET:]
    content_hex = content_hex[: MAX_ENVELOPE_WINDOW_BYTES * 2]
    return decode_hex(content_hex)


class Brc20WitnessDetector:
    """BRC-20 objects inscribed in witness envelopes; one activity per input at most."""

    protocol = PROTOCOL

    def detect(self, tx: Transaction) -> Iterator[Activity]:
        for idx, txin in enumerate(tx.vin):
            if not txin.witness:
                continue
            for element in txin.witness:
                try:
                    activity = self._parse_element(element, idx)
                except DecodeSkip:
                    continue
                yield activity
                break

    def _parse_element(self, witness_hex: str, idx: int) -> Activity:
        window = envelope_window(witness_hex)
        obj = find_tagged_object(decode_text(window), _PATTERN)
        fields = extract_token_fields(obj)
        return build_token_activity(
            PROTOCOL, LABEL, fields, index=idx, source=SOURCE_INPUT, raw_script=witness_hex
        )
