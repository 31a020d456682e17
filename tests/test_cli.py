"""
Tests for the argparse CLI: one-shot debug output and setting overrides.
"""

from __future__ import annotations

import json

import pytest

from backend_metascan.cli import _apply_overrides, build_parser, main
from backend_metascan.config import Settings

from helpers import ORDI_DEPLOY_TXID, UNKNOWN_TXID


def test_cli_prints_debug_report(fake_source, capsys):
    code = main(["--mode", "cli", "--txid", ORDI_DEPLOY_TXID], source=fake_source)
    assert code == 0
    report = json.loads(capsys.readouterr().out)
    assert report["txid"] == ORDI_DEPLOY_TXID
    assert report["protocols_detected"] == ["brc20"]
    assert report["summary"]["operations"] == ["brc20:deploy"]


def test_cli_requires_txid(fake_source, capsys):
    assert main(["--mode", "cli"], source=fake_source) == 1
    assert capsys.readouterr().out == ""


def test_cli_unknown_txid_exits_nonzero(fake_source):
    assert main(["--mode", "cli", "--txid", UNKNOWN_TXID], source=fake_source) == 1


def test_invalid_mode_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--mode", "daemon"])


def test_overrides_applied():
    args = build_parser().parse_args(["--live", "--seed", "7", "--port", "9001", "--host", "127.0.0.1"])
    settings = _apply_overrides(Settings(), args)
    assert settings.live_scan is True
    assert settings.synthetic_seed == 7
    assert settings.api_port == 9001
    assert settings.api_host == "127.0.0.1"


def test_no_overrides_keeps_settings():
    base = Settings(synthetic_seed=5)
    assert _apply_overrides(base, build_parser().parse_args([])) is base
