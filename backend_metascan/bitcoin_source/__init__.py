"""
Bitcoin transaction source package.

Fetches transactions and candidate ids from an Esplora-compatible REST API
and parses them into the immutable Transaction model consumed by detectors.
"""

from backend_metascan.bitcoin_source.client import (
    EsploraClient,
    TransactionSource,
)
from backend_metascan.bitcoin_source.models import (
    SATS_PER_BTC,
    Input,
    Output,
    Transaction,
    TxStatus,
)

__all__ = [
    "EsploraClient",
    "Input",
    "Output",
    "SATS_PER_BTC",
    "Transaction",
    "TransactionSource",
    "TxStatus",
]
