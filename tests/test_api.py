"""
Pytest tests for the MetaScan HTTP and WebSocket API.

Uses the conftest client (fake source, feed disabled) except for the live
WebSocket test, which runs the synthetic feed.
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from backend_metascan.api_server.server import TEST_TXIDS, create_app
from backend_metascan.config import Settings

from helpers import ORDI_DEPLOY_TXID, PLAIN_TXID, UNKNOWN_TXID, FakeSource, make_live_tx, ordi_deploy_tx


def test_root_lists_endpoints(client):
    r = client.get("/")
    assert r.status_code == 200
    data = r.json()
    assert data["message"] == "Bitcoin Metaprotocol Monitor"
    assert data["endpoints"]["live"] == "WS /ws/live"


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_analyze_ordi_deploy(client):
    r = client.post(f"/api/analyze/{ORDI_DEPLOY_TXID}")
    assert r.status_code == 200
    data = r.json()
    assert data["txid"] == ORDI_DEPLOY_TXID
    assert data["is_metaprotocol"] is True
    assert data["protocols"] == ["brc20"]
    assert data["max_importance"] == 8
    activity = data["activities"][0]
    assert activity["source"] == "output"
    assert activity["index"] == 0
    assert [c["type"] for c in activity["changes"]] == ["created", "created"]


def test_analyze_accepts_uppercase_txid(client):
    r = client.post(f"/api/analyze/{ORDI_DEPLOY_TXID.upper()}")
    assert r.status_code == 200
    assert r.json()["txid"] == ORDI_DEPLOY_TXID


def test_analyze_plain_transaction(client):
    r = client.post(f"/api/analyze/{PLAIN_TXID}")
    assert r.status_code == 200
    data = r.json()
    assert data["is_metaprotocol"] is False
    assert data["activities"] == []


def test_analyze_invalid_txid(client):
    r = client.post("/api/analyze/not-a-txid")
    assert r.status_code == 400
    assert r.json()["detail"] == "Invalid transaction ID"


def test_analyze_unknown_txid(client):
    r = client.post(f"/api/analyze/{UNKNOWN_TXID}")
    assert r.status_code == 404
    assert r.json()["detail"] == "Transaction not found"


def test_analyze_does_not_touch_stats(client):
    client.post(f"/api/analyze/{ORDI_DEPLOY_TXID}")
    assert client.get("/api/stats").json() == {}


def test_debug(client):
    r = client.post(f"/api/debug/{ORDI_DEPLOY_TXID}")
    assert r.status_code == 200
    data = r.json()
    assert data["total_state_changes"] == 2
    assert data["summary"]["operations"] == ["brc20:deploy"]
    assert client.post(f"/api/debug/{UNKNOWN_TXID}").status_code == 404


def test_raw_transaction(client):
    r = client.get(f"/api/tx/{ORDI_DEPLOY_TXID}")
    assert r.status_code == 200
    assert r.json()["txid"] == ORDI_DEPLOY_TXID
    assert client.get(f"/api/tx/{UNKNOWN_TXID}").status_code == 404


def test_stats_reflect_published_transactions(client, monitor):
    monitor.publish(make_live_tx("a", total_value=1_000))
    monitor.publish(make_live_tx("b", total_value=3_000, tick="SATS"))
    r = client.get("/api/stats")
    assert r.status_code == 200
    brc20 = r.json()["brc20"]
    assert brc20["tx_count"] == 2
    assert brc20["total_volume"] == 4_000
    assert brc20["unique_tokens"] == 2


def test_self_test_endpoint(client):
    r = client.get("/api/test")
    assert r.status_code == 200
    ordi, plain = r.json()["test_results"]
    assert ordi == {
        "txid": TEST_TXIDS[0],
        "activities": 1,
        "protocols": ["brc20"],
        "operations": ["brc20:deploy"],
    }
    assert plain["activities"] == 0


def test_self_test_reports_missing_transactions():
    app = create_app(Settings(monitor_enabled=False), source=FakeSource([ordi_deploy_tx()]))
    with TestClient(app) as c:
        results = c.get("/api/test").json()["test_results"]
    assert results[1] == {"txid": TEST_TXIDS[1], "error": "Transaction not found"}


def test_live_websocket_streams_synthetic_feed():
    app = create_app(Settings(synthetic_seed=3), source=FakeSource())
    with TestClient(app) as c:
        assert app.state.monitor.mode == "synthetic"
        with c.websocket_connect("/ws/live") as ws:
            message = ws.receive_json()
    assert message["txid"].startswith("demo_")
    assert len(message["activities"]) == 1
    assert set(message) == {
        "txid",
        "timestamp",
        "protocols",
        "total_value",
        "activities",
        "fee_rate",
        "size",
    }
