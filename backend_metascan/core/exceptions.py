"""
Application-level exceptions.

- TransactionNotFound: the source does not know the txid (or answered non-2xx).
  Surfaced to one-shot callers as a user-visible error; never retried.
- SourceUnavailable: listing candidate ids failed. Recovered by the source
  client, which returns an empty candidate list instead.
- DecodeSkip: one detection candidate failed a decode/validation step.
  Recovered inside the detector by skipping that candidate.
"""

from __future__ import annotations


class MetascanError(Exception):
    """Base class for MetaScan errors."""


class TransactionNotFound(MetascanError):
    """Requested transaction is unknown to the transaction source."""

    def __init__(self, txid: str, reason: str = "Transaction not found") -> None:
        super().__init__(reason)
        self.txid = txid
        self.reason = reason


class SourceUnavailable(MetascanError):
    """Transaction source could not list candidate transaction ids."""


class DecodeSkip(MetascanError):
    """A detection candidate is not this protocol; skip it silently."""
