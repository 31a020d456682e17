"""
Bitcoin transaction source: Esplora REST client.

Responsibilities:
- Fetch a full transaction by id (raise TransactionNotFound on unknown id / non-2xx).
- List candidate ids from the recent mempool and from the tip block.
- Never fail the caller while listing: transport or payload errors are logged
  and turned into an empty candidate list.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

import httpx

from backend_metascan.bitcoin_source.models import Transaction
from backend_metascan.core.exceptions import SourceUnavailable, TransactionNotFound
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)

MEMPOOL_CANDIDATE_CAP = 5
BLOCK_CANDIDATE_CAP = 10
DEFAULT_TIMEOUT_SEC = 15.0


@runtime_checkable
class TransactionSource(Protocol):
    """What the monitor and reports need from a transaction source."""

    async def fetch_transaction(self, txid: str) -> Transaction:
        ...

    async def list_recent_mempool_ids(self) -> list[str]:
        ...

    async def list_recent_block_txids(self) -> list[str]:
        ...


class EsploraClient:
    """
    Async client for an Esplora-compatible API (blockstream.info, mempool.space).

    One httpx.AsyncClient is reused for the lifetime of this object; call
    aclose() (or use `async with`) on shutdown.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_sec: float = DEFAULT_TIMEOUT_SEC,
        mempool_cap: int = MEMPOOL_CANDIDATE_CAP,
        block_cap: int = BLOCK_CANDIDATE_CAP,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            base_url: API root, e.g. https://blockstream.info/api.
            timeout_sec: HTTP timeout per request.
            mempool_cap: Max candidate ids taken from /mempool/recent.
            block_cap: Max candidate ids taken from the tip block.
            client: Optional preconfigured httpx.AsyncClient (tests pass a MockTransport).
        """
        if not base_url.strip():
            raise ValueError("base_url must be non-empty")
        self._base_url = base_url.rstrip("/")
        self._mempool_cap = mempool_cap
        self._block_cap = block_cap
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_sec))

    @property
    def base_url(self) -> str:
        return self._base_url

    async def __aenter__(self) -> "EsploraClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_raw_transaction(self, txid: str) -> dict[str, Any]:
        """GET /tx/{txid} and return the JSON payload unparsed."""
        try:
            resp = await self._client.get(f"{self._base_url}/tx/{txid}")
        except httpx.HTTPError as e:
            logger.warning("source_tx_request_failed", txid=txid, error=str(e))
            raise TransactionNotFound(txid, f"Transaction source unreachable: {e}") from e
        if not resp.is_success:
            logger.debug("source_tx_not_found", txid=txid, status_code=resp.status_code)
            raise TransactionNotFound(txid)
        try:
            data = resp.json()
        except ValueError as e:
            raise TransactionNotFound(txid, "Transaction source returned invalid JSON") from e
        if not isinstance(data, dict):
            raise TransactionNotFound(txid, "Transaction source returned unexpected payload")
        return data

    async def fetch_transaction(self, txid: str) -> Transaction:
        """Fetch and parse one transaction; raise TransactionNotFound when unavailable."""
        data = await self.fetch_raw_transaction(txid)
        try:
            return Transaction.from_api(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("source_tx_parse_failed", txid=txid, error=str(e))
            raise TransactionNotFound(txid, "Transaction payload could not be parsed") from e

    async def _get_json(self, path: str) -> Any:
        """GET path and decode JSON; raise SourceUnavailable on any failure."""
        try:
            resp = await self._client.get(f"{self._base_url}{path}")
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise SourceUnavailable(f"GET {path} failed: {e}") from e

    async def _get_text(self, path: str) -> str:
        try:
            resp = await self._client.get(f"{self._base_url}{path}")
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceUnavailable(f"GET {path} failed: {e}") from e
        return resp.text.strip()

    async def list_recent_mempool_ids(self) -> list[str]:
        """Return up to mempool_cap txids from /mempool/recent; [] when unavailable."""
        try:
            items = await self._get_json("/mempool/recent")
        except SourceUnavailable as e:
            logger.warning("source_mempool_unavailable", error=str(e))
            return []
        if not isinstance(items, list):
            return []
        txids: list[str] = []
        for item in items:
            if isinstance(item, dict) and item.get("txid"):
                txids.append(str(item["txid"]))
            if len(txids) >= self._mempool_cap:
                break
        return txids

    async def list_recent_block_txids(self) -> list[str]:
        """Return the first block_cap txids of the tip block; [] on any failure."""
        try:
            tip_hash = await self._get_text("/blocks/tip/hash")
            if not tip_hash:
                raise SourceUnavailable("empty tip hash")
            txids = await self._get_json(f"/block/{tip_hash}/txids")
        except SourceUnavailable as e:
            logger.warning("source_block_unavailable", error=str(e))
            return []
        if not isinstance(txids, list):
            return []
        return [str(t) for t in txids[: self._block_cap] if t]
