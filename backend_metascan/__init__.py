"""
Backend MetaScan: live monitor for Bitcoin metaprotocol activity.

Samples mempool and recent blocks, detects token deploy/mint/transfer markers
(BRC-20, SRC-20, Runes) embedded in transaction scripts and witnesses, and
exposes them as one-shot analysis, a live WebSocket feed, and per-protocol
statistics. Modular architecture with clear separation between transaction
source, detectors, live feed, and API server.
"""

__version__ = "0.1.0"
