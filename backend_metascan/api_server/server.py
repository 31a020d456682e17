"""
FastAPI server: one-shot analysis, live WebSocket feed, protocol stats.

Exposes POST /api/analyze/{txid}, POST /api/debug/{txid}, GET /api/tx/{txid},
GET /api/stats, GET /api/test and WS /ws/live. The Monitor and transaction
source live on app.state and are created in the lifespan unless injected
(tests inject a fake source and a pre-built monitor). Config via env.
"""

from __future__ import annotations

import asyncio
import re
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from backend_metascan import __version__
from backend_metascan.analysis_engine import analyze, debug
from backend_metascan.bitcoin_source import EsploraClient, TransactionSource
from backend_metascan.config import Settings, get_settings
from backend_metascan.core.exceptions import TransactionNotFound
from backend_metascan.live_feed import Monitor, MonitorConfig, Subscription, log_feed
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)

_TXID_RE = re.compile(r"^[0-9a-fA-F]{64}$")

# Known transactions exercised by GET /api/test
TEST_TXIDS = (
    "b61b0172d95e266c18aea0c624db987e971a5d6d4ebc2aaed85da4642d635735",  # ORDI deploy
    "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b",  # regular BTC tx
)


# -----------------------------------------------------------------------------
# Response models
# -----------------------------------------------------------------------------

class StateChangeModel(BaseModel):
    field: str
    before: str | None = None
    after: str
    type: str = Field(..., description="created | updated")


class ActivityModel(BaseModel):
    protocol: str
    operation: str
    index: int = Field(..., description="Position in vout (source=output) or vin (source=input)")
    source: str = Field(..., description="output | input")
    data: dict[str, Any] = Field(default_factory=dict)
    changes: list[StateChangeModel] = Field(default_factory=list)
    description: str
    importance: int = Field(..., ge=0, le=10)
    valuation: float | None = None
    raw_script: str = ""


class AnalyzeResponse(BaseModel):
    """POST /api/analyze/{txid} response."""

    txid: str
    size: int
    fee: int | None
    fee_rate: float = Field(..., description="sat/byte; 0 when fee is unknown")
    total_value: int = Field(..., description="Sum of outputs in satoshis")
    total_value_btc: float
    protocols: list[str]
    activities: list[ActivityModel]
    activity_count: int
    is_metaprotocol: bool
    max_importance: int = Field(..., ge=0, le=10)


class ProtocolStatsModel(BaseModel):
    protocol: str
    tx_count: int
    total_volume: int = Field(..., description="Cumulative output value in satoshis")
    unique_tokens: int
    last_activity: int | None = Field(None, description="Unix seconds of the last publish")


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------

def get_monitor(request: Request) -> Monitor:
    return request.app.state.monitor


def get_source(request: Request) -> TransactionSource:
    return request.app.state.source


def _validate_txid(txid: str) -> str:
    txid = txid.strip()
    if not _TXID_RE.match(txid):
        raise HTTPException(status_code=400, detail="Invalid transaction ID")
    return txid.lower()


# -----------------------------------------------------------------------------
# App factory and lifespan
# -----------------------------------------------------------------------------

def create_app(
    settings: Settings | None = None,
    *,
    source: TransactionSource | None = None,
    monitor: Monitor | None = None,
) -> FastAPI:
    """
    Build the ASGI app.

    Args:
        settings: Defaults to get_settings() (env).
        source: Transaction source; an EsploraClient is created (and closed) when omitted.
        monitor: Pre-built monitor; created from settings when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg: Settings = app.state.settings
        owns_source = app.state.source is None
        if owns_source:
            app.state.source = EsploraClient(
                cfg.bitcoin_api_url, timeout_sec=cfg.request_timeout_sec
            )
        initial: Subscription | None = None
        if app.state.monitor is None:
            app.state.monitor, initial = Monitor.create(
                app.state.source, MonitorConfig.from_settings(cfg)
            )
        feed_monitor: Monitor = app.state.monitor

        feed_logger: asyncio.Task[None] | None = None
        if cfg.monitor_enabled and feed_monitor.mode is None:
            feed_monitor.start(cfg.live_scan)
            if initial is not None:
                feed_logger = asyncio.create_task(log_feed(initial), name="feed-logger")
        elif initial is not None:
            initial.close()
        logger.info(
            "api_started",
            live_scan=cfg.live_scan,
            monitor_enabled=cfg.monitor_enabled,
            source_url=cfg.bitcoin_api_url,
        )

        yield

        await feed_monitor.stop()
        if feed_logger is not None:
            feed_logger.cancel()
            await asyncio.gather(feed_logger, return_exceptions=True)
        if initial is not None:
            initial.close()
        if owns_source:
            await app.state.source.aclose()
            app.state.source = None
        logger.info("api_stopped")

    app = FastAPI(
        title="Backend MetaScan API",
        description="Bitcoin metaprotocol detection: one-shot analysis, live feed, and stats.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings or get_settings()
    app.state.source = source
    app.state.monitor = monitor
    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:

    @app.get("/")
    def root(request: Request) -> dict[str, Any]:
        """Service banner with the endpoint list."""
        return {
            "message": "Bitcoin Metaprotocol Monitor",
            "version": __version__,
            "endpoints": {
                "analyze": "POST /api/analyze/:txid",
                "debug": "POST /api/debug/:txid",
                "raw": "GET /api/tx/:txid",
                "stats": "GET /api/stats",
                "test": "GET /api/test",
                "live": "WS /ws/live",
            },
            "example": f"curl -X POST {request.base_url}api/analyze/{TEST_TXIDS[0]}",
        }

    @app.get("/api/health")
    def health() -> dict[str, str]:
        """Liveness probe: API is up."""
        return {"status": "ok"}

    @app.post("/api/analyze/{txid}", response_model=AnalyzeResponse)
    async def analyze_tx(
        txid: str,
        source: TransactionSource = Depends(get_source),
        monitor: Monitor = Depends(get_monitor),
    ) -> dict[str, Any]:
        """
        Classify one transaction. Does not touch the live feed or stats.
        404 when the source does not know the txid.
        """
        txid = _validate_txid(txid)
        try:
            report = await analyze(source, txid, monitor.classifier)
        except TransactionNotFound as e:
            raise HTTPException(status_code=404, detail=e.reason) from e
        return report.to_dict()

    @app.post("/api/debug/{txid}")
    async def debug_tx(
        txid: str,
        source: TransactionSource = Depends(get_source),
        monitor: Monitor = Depends(get_monitor),
    ) -> dict[str, Any]:
        """Detailed debugger view: state-change totals and protocol:operation summary."""
        txid = _validate_txid(txid)
        try:
            report = await debug(source, txid, monitor.classifier)
        except TransactionNotFound as e:
            raise HTTPException(status_code=404, detail=e.reason) from e
        return report.to_dict()

    @app.get("/api/tx/{txid}")
    async def raw_tx(txid: str, source: TransactionSource = Depends(get_source)) -> dict[str, Any]:
        """Raw transaction as returned by the source."""
        txid = _validate_txid(txid)
        try:
            fetch_raw = getattr(source, "fetch_raw_transaction", None)
            if fetch_raw is not None:
                return await fetch_raw(txid)
            return (await source.fetch_transaction(txid)).to_dict()
        except TransactionNotFound as e:
            raise HTTPException(status_code=404, detail=e.reason) from e

    @app.get("/api/stats", response_model=dict[str, ProtocolStatsModel])
    def stats(monitor: Monitor = Depends(get_monitor)) -> dict[str, Any]:
        """Per-protocol counters since process start."""
        return {name: s.to_dict() for name, s in sorted(monitor.get_stats().items())}

    @app.get("/api/test")
    async def self_test(
        source: TransactionSource = Depends(get_source),
        monitor: Monitor = Depends(get_monitor),
    ) -> dict[str, Any]:
        """Run the debugger over known transactions; per-txid failures are reported inline."""
        results: list[dict[str, Any]] = []
        for txid in TEST_TXIDS:
            try:
                report = await debug(source, txid, monitor.classifier)
            except TransactionNotFound as e:
                results.append({"txid": txid, "error": e.reason})
                continue
            results.append(
                {
                    "txid": txid,
                    "activities": len(report.activities),
                    "protocols": list(report.protocols_detected),
                    "operations": list(report.summary.operations),
                }
            )
        return {"test_results": results}

    @app.websocket("/ws/live")
    async def live_feed(websocket: WebSocket) -> None:
        """Stream every LiveTransaction published after connect as JSON."""
        monitor: Monitor = websocket.app.state.monitor
        await websocket.accept()
        subscription = monitor.subscribe()
        logger.info("ws_client_connected", subscribers=monitor.hub.subscriber_count)
        pump = asyncio.create_task(_pump_feed(websocket, subscription))
        watch = asyncio.create_task(_wait_disconnect(websocket))
        try:
            done, pending = await asyncio.wait({pump, watch}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.warning("ws_client_error", error=str(exc))
        finally:
            subscription.close()
            logger.info(
                "ws_client_disconnected",
                subscribers=monitor.hub.subscriber_count,
                missed=subscription.missed,
            )

    @app.exception_handler(HTTPException)
    def http_exception_handler(request: Any, exc: HTTPException) -> JSONResponse:
        """Consistent JSON error response for HTTPException."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )


async def _pump_feed(websocket: WebSocket, subscription: Subscription) -> None:
    async for live_tx in subscription:
        await websocket.send_json(live_tx.to_dict())


async def _wait_disconnect(websocket: WebSocket) -> None:
    """Return when the client goes away; inbound messages are ignored."""
    while True:
        message = await websocket.receive()
        if message.get("type") == "websocket.disconnect":
            return


app = create_app()
