"""
SRC-20 (stamps) detection from OP_RETURN outputs.

The data-carrier payload must begin with the ASCII tag "stamp:"; the rest is
scanned for a {"p": "src-20", ...} object with the same op/tick/amt/max/lim
fields as BRC-20. Every SRC-20 activity has the same fixed importance.
"""

from __future__ import annotations

from typing import Iterator

from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.core.exceptions import DecodeSkip
from backend_metascan.detectors.base import (
    build_token_activity,
    data_carrier_payload,
    decode_hex,
    decode_text,
    extract_token_fields,
    find_tagged_object,
    tagged_object_pattern,
)
from backend_metascan.detectors.models import SOURCE_OUTPUT, Activity

PROTOCOL = "src20"
LABEL = "SRC-20"
TAG = "src-20"
PAYLOAD_PREFIX = b"stamp:"
IMPORTANCE = 7

_PATTERN = tagged_object_pattern(TAG)


class Src20ScriptDetector:
    protocol = PROTOCOL

    def detect(self, tx: Transaction) -> Iterator[Activity]:
        for idx, out in enumerate(tx.vout):
            try:
                yield self._parse_output(out.scriptpubkey, idx)
            except DecodeSkip:
                continue

    def _parse_output(self, script: str, idx: int) -> Activity:
        payload = decode_hex(data_carrier_payload(script))
        if not payload.lower().startswith(PAYLOAD_PREFIX):
            raise DecodeSkip("missing stamp prefix")
        text = decode_text(payload[len(PAYLOAD_PREFIX):])
        fields = extract_token_fields(find_tagged_object(text, _PATTERN))
        return build_token_activity(
            PROTOCOL,
            LABEL,
            fields,
            index=idx,
            source=SOURCE_OUTPUT,
            raw_script=script,
            importance=IMPORTANCE,
        )
