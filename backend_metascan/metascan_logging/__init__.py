"""
Structured logging for Backend MetaScan.

JSON logs with timestamp, event_type, and txid/protocol context.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_metascan.metascan_logging.logger import bind_txid, get_logger

__all__ = ["bind_txid", "get_logger"]
