"""
Pytest fixtures for MetaScan tests. Uses an in-memory FakeSource instead of a
network transaction source; the API client runs the app lifespan without the
background feed unless a test asks for it.
"""

from __future__ import annotations

import pytest

from helpers import FakeSource, PLAIN_TXID, make_tx, ordi_deploy_tx


@pytest.fixture
def ordi_tx():
    return ordi_deploy_tx()


@pytest.fixture
def plain_tx():
    return make_tx(PLAIN_TXID)


@pytest.fixture
def fake_source(ordi_tx, plain_tx):
    return FakeSource([ordi_tx, plain_tx])


@pytest.fixture
def monitor(fake_source):
    from backend_metascan.live_feed import Monitor

    return Monitor(fake_source, clock=lambda: 1_700_000_000.0)


@pytest.fixture
def client(fake_source, monitor):
    """FastAPI TestClient over a fake source; background feed disabled."""
    from fastapi.testclient import TestClient

    from backend_metascan.api_server.server import create_app
    from backend_metascan.config import Settings

    app = create_app(Settings(monitor_enabled=False), source=fake_source, monitor=monitor)
    with TestClient(app) as c:
        yield c
