"""
Tests for Monitor: ownership of hub + stats, ingest filtering, start modes.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_metascan.analysis_engine.classifier import ActivityClassifier, Classification
from backend_metascan.config import Settings
from backend_metascan.live_feed import Monitor, MonitorConfig

from helpers import ORDI_DEPLOY_TXID, FakeSource, make_live_tx, make_tx, ordi_deploy_tx

_CLOCK = lambda: 1_700_000_123.9  # noqa: E731


def test_create_returns_initial_subscription():
    monitor, sub = Monitor.create(clock=_CLOCK)
    assert monitor.hub.subscriber_count == 1
    assert monitor.mode is None
    monitor.publish(make_live_tx("a"))
    assert sub.try_recv().txid == "a"
    assert monitor.get_stats()["brc20"].tx_count == 1


def test_publish_updates_stats_without_subscribers():
    monitor = Monitor()
    assert monitor.publish(make_live_tx("a", total_value=900)) == 0
    assert monitor.get_stats()["brc20"].total_volume == 900


def test_ingest_drops_non_metaprotocol():
    monitor, sub = Monitor.create(clock=_CLOCK)
    assert monitor.ingest(make_tx(), Classification()) is None
    assert sub.try_recv() is None
    assert monitor.get_stats() == {}


def test_ingest_publishes_classified_transaction():
    monitor, sub = Monitor.create(clock=_CLOCK)
    tx = ordi_deploy_tx()
    live_tx = monitor.ingest(tx, ActivityClassifier().classify(tx))
    assert live_tx.txid == ORDI_DEPLOY_TXID
    assert live_tx.timestamp == 1_700_000_123
    assert live_tx.total_value == 10_000
    assert live_tx.fee_rate == 10.0
    assert sub.try_recv() is live_tx
    assert monitor.get_stats()["brc20"].last_activity == 1_700_000_123


def test_config_from_settings():
    settings = Settings(feed_backlog=7, synthetic_seed=3, seen_capacity=0, fetch_delay_sec=0)
    config = MonitorConfig.from_settings(settings)
    assert config.capacity == 7
    assert config.synthetic_seed == 3
    assert config.seen_capacity == 0
    assert Monitor(config=config).hub.capacity == 7


def test_live_start_needs_source():
    with pytest.raises(ValueError):
        Monitor().start(True)


def test_synthetic_mode_feeds_subscribers_and_stats():
    async def scenario():
        monitor, sub = Monitor.create(config=MonitorConfig(synthetic_seed=11), clock=_CLOCK)
        tasks = monitor.start(False)
        try:
            msg = await asyncio.wait_for(sub.recv(), timeout=1)
        finally:
            await monitor.stop()
        return monitor, tasks, msg

    monitor, tasks, msg = asyncio.run(scenario())
    assert monitor.mode == "synthetic"
    assert len(tasks) == 1
    assert msg.txid.startswith("demo_")
    assert sum(s.tx_count for s in monitor.get_stats().values()) >= 1


def test_live_mode_scans_source():
    source = FakeSource([ordi_deploy_tx()], mempool_ids=[ORDI_DEPLOY_TXID])
    config = MonitorConfig(mempool_interval_sec=0.05, block_interval_sec=0.05, fetch_delay_sec=0)

    async def scenario():
        monitor, sub = Monitor.create(source, config, clock=_CLOCK)
        tasks = monitor.start(True)
        try:
            msg = await asyncio.wait_for(sub.recv(), timeout=2)
        finally:
            await monitor.stop()
        return monitor, tasks, msg

    monitor, tasks, msg = asyncio.run(scenario())
    assert monitor.mode == "live"
    assert len(tasks) == 2
    assert msg.txid == ORDI_DEPLOY_TXID
    assert msg.protocols == frozenset({"brc20"})


def test_start_only_once():
    async def scenario():
        monitor = Monitor()
        monitor.start(False)
        try:
            with pytest.raises(RuntimeError):
                monitor.start(False)
        finally:
            await monitor.stop()

    asyncio.run(scenario())
