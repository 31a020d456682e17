"""
Activity models produced by protocol detectors.

Schema is stable and transport-agnostic; to_dict() output is what the API,
the CLI and the live feed serialize.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

CHANGE_CREATED = "created"
CHANGE_UPDATED = "updated"

SOURCE_OUTPUT = "output"
SOURCE_INPUT = "input"

MIN_IMPORTANCE = 0
MAX_IMPORTANCE = 10


@dataclass(frozen=True)
class StateChange:
    """
    One claimed effect of an activity on protocol state.

    Values are symbolic (e.g. "prev_supply + 1000"): detectors have no ledger
    state, so they describe the shape of the change rather than real balances.
    """

    field: str
    after: str
    change_type: str
    before: str | None = None

    def __post_init__(self) -> None:
        if self.change_type not in (CHANGE_CREATED, CHANGE_UPDATED):
            raise ValueError(f"unknown change type: {self.change_type}")
        if self.change_type == CHANGE_CREATED and self.before is not None:
            raise ValueError("created changes have no prior value")

    def to_dict(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "before": self.before,
            "after": self.after,
            "type": self.change_type,
        }


@dataclass(frozen=True)
class Activity:
    """
    One detected metaprotocol event.

    index is the position in the list the detector scanned; source tells
    which list ("output" for script detectors, "input" for witness detectors).
    """

    protocol: str
    operation: str
    index: int
    source: str
    data: Mapping[str, Any] = field(default_factory=dict)
    changes: tuple[StateChange, ...] = ()
    description: str = ""
    importance: int = MIN_IMPORTANCE
    valuation: float | None = None
    raw_script: str = ""

    def __post_init__(self) -> None:
        if not self.protocol or not self.operation:
            raise ValueError("protocol and operation must be non-empty")
        if not (MIN_IMPORTANCE <= self.importance <= MAX_IMPORTANCE):
            raise ValueError("importance must be between 0 and 10")
        if self.source not in (SOURCE_OUTPUT, SOURCE_INPUT):
            raise ValueError(f"unknown activity source: {self.source}")
        # Read-only snapshot; the caller keeps no handle on the stored mapping
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "protocol": self.protocol,
            "operation": self.operation,
            "index": self.index,
            "source": self.source,
            "data": dict(self.data),
            "changes": [c.to_dict() for c in self.changes],
            "description": self.description,
            "importance": self.importance,
            "valuation": self.valuation,
            "raw_script": self.raw_script,
        }
