"""
Tests for the mempool/block scan loops: publish filtering, failure tolerance, dedup.
"""

from __future__ import annotations

import asyncio

import pytest

from backend_metascan.analysis_engine.classifier import ActivityClassifier
from backend_metascan.live_feed.scanner import BlockScanner, MempoolScanner

from helpers import ORDI_DEPLOY_TXID, PLAIN_TXID, UNKNOWN_TXID, FakeSource, make_tx, ordi_deploy_tx


class _Recorder:
    def __init__(self):
        self.calls = []

    def __call__(self, tx, result):
        self.calls.append((tx.txid, result))
        return object()


def _scanner(source, ingest, cls=MempoolScanner, **kwargs):
    kwargs.setdefault("fetch_delay_sec", 0)
    return cls(source, ActivityClassifier(), ingest, **kwargs)


def test_only_metaprotocol_transactions_are_ingested():
    source = FakeSource([ordi_deploy_tx(), make_tx(PLAIN_TXID)], mempool_ids=[PLAIN_TXID, ORDI_DEPLOY_TXID])
    ingest = _Recorder()
    published = asyncio.run(_scanner(source, ingest).run_once())
    assert published == 1
    assert [txid for txid, _ in ingest.calls] == [ORDI_DEPLOY_TXID]
    assert ingest.calls[0][1].protocols == frozenset({"brc20"})
    assert source.fetched == [PLAIN_TXID, ORDI_DEPLOY_TXID]


def test_fetch_failures_skip_only_that_id():
    source = FakeSource(
        [ordi_deploy_tx()],
        mempool_ids=["bad", UNKNOWN_TXID, ORDI_DEPLOY_TXID],
        failing_ids=["bad"],
    )
    ingest = _Recorder()
    assert asyncio.run(_scanner(source, ingest).run_once()) == 1
    assert source.fetched == ["bad", UNKNOWN_TXID, ORDI_DEPLOY_TXID]


def test_listing_failure_skips_cycle():
    source = FakeSource([ordi_deploy_tx()], listing_fails=True)
    ingest = _Recorder()
    assert asyncio.run(_scanner(source, ingest).run_once()) == 0
    assert ingest.calls == []


def test_seen_ids_are_not_refetched():
    source = FakeSource([ordi_deploy_tx()], mempool_ids=[ORDI_DEPLOY_TXID])
    ingest = _Recorder()
    scanner = _scanner(source, ingest)

    async def two_cycles():
        return await scanner.run_once(), await scanner.run_once()

    assert asyncio.run(two_cycles()) == (1, 0)
    assert source.fetched == [ORDI_DEPLOY_TXID]


def test_failed_ids_are_retried_next_cycle():
    source = FakeSource([], mempool_ids=["bad"], failing_ids=["bad"])
    scanner = _scanner(source, _Recorder())

    async def two_cycles():
        await scanner.run_once()
        await scanner.run_once()

    asyncio.run(two_cycles())
    assert source.fetched == ["bad", "bad"]


def test_dedup_disabled_with_zero_capacity():
    source = FakeSource([ordi_deploy_tx()], mempool_ids=[ORDI_DEPLOY_TXID])
    scanner = _scanner(source, _Recorder(), seen_capacity=0)

    async def two_cycles():
        return await scanner.run_once(), await scanner.run_once()

    assert asyncio.run(two_cycles()) == (1, 1)


def test_seen_set_evicts_oldest():
    txs = [make_tx(f"{i:064x}") for i in range(3)]
    ids = [tx.txid for tx in txs]
    source = FakeSource(txs, mempool_ids=ids)
    scanner = _scanner(source, _Recorder(), seen_capacity=2)

    asyncio.run(scanner.run_once())
    # First id was evicted when the third was marked seen
    source.mempool_ids = [ids[0], ids[2]]
    asyncio.run(scanner.run_once())
    assert source.fetched == ids + [ids[0]]


def test_block_scanner_lists_block_txids():
    source = FakeSource([ordi_deploy_tx()], block_ids=[ORDI_DEPLOY_TXID])
    ingest = _Recorder()
    scanner = _scanner(source, ingest, cls=BlockScanner)
    assert scanner.name == "blocks"
    assert scanner.interval_sec == 30.0
    assert asyncio.run(scanner.run_once()) == 1


def test_run_forever_survives_failing_cycles():
    source = FakeSource([ordi_deploy_tx()], listing_fails=True)
    scanner = _scanner(source, _Recorder(), interval_sec=0.01)

    async def scenario():
        task = asyncio.create_task(scanner.run_forever())
        await asyncio.sleep(0.05)
        alive = not task.done()
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return alive

    assert asyncio.run(scenario()) is True


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        _scanner(FakeSource(), _Recorder(), interval_sec=0)
