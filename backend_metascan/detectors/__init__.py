"""
Protocol detectors: raw Transaction -> lazy sequence of Activity.

Stateless, pure, and silent on malformed input (a candidate that fails to
decode is simply not reported).
"""

from backend_metascan.detectors.base import Detector
from backend_metascan.detectors.brc20 import Brc20ScriptDetector, Brc20WitnessDetector
from backend_metascan.detectors.models import Activity, StateChange
from backend_metascan.detectors.registry import default_detectors
from backend_metascan.detectors.runes import RunesDetector
from backend_metascan.detectors.src20 import Src20ScriptDetector

__all__ = [
    "Activity",
    "Brc20ScriptDetector",
    "Brc20WitnessDetector",
    "Detector",
    "RunesDetector",
    "Src20ScriptDetector",
    "StateChange",
    "default_detectors",
]
