"""
Default detector registry.

Order is fixed and deterministic: classification output lists activities in
this order. Adding a protocol means appending a detector here (or passing a
custom list to ActivityClassifier).
"""

from __future__ import annotations

from backend_metascan.detectors.base import Detector
from backend_metascan.detectors.brc20 import Brc20ScriptDetector, Brc20WitnessDetector
from backend_metascan.detectors.runes import RunesDetector
from backend_metascan.detectors.src20 import Src20ScriptDetector


def default_detectors() -> list[Detector]:
    """Fresh list of the built-in detectors in classification order."""
    return [
        Brc20ScriptDetector(),
        Brc20WitnessDetector(),
        Src20ScriptDetector(),
        RunesDetector(),
    ]
