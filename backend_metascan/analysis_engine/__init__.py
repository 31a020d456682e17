"""
Analysis engine: classification of transactions into metaprotocol activity,
plus one-shot analyze/debug reports.
"""

from backend_metascan.analysis_engine.classifier import ActivityClassifier, Classification
from backend_metascan.analysis_engine.report import (
    AnalysisReport,
    DebugReport,
    analyze,
    build_analysis_report,
    build_debug_report,
    debug,
)

__all__ = [
    "ActivityClassifier",
    "AnalysisReport",
    "Classification",
    "DebugReport",
    "analyze",
    "build_analysis_report",
    "build_debug_report",
    "debug",
]
