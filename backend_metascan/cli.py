"""
Command-line entrypoint: one-shot transaction debug or the API server.

  python -m backend_metascan.cli --mode cli --txid <64-hex txid>
  python -m backend_metascan.cli --mode server --port 8000 [--live] [--seed 42]

CLI mode prints the debug report as JSON on stdout (logs go to stderr) and
exits 1 when the txid is missing or cannot be fetched.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from typing import Sequence

from backend_metascan.analysis_engine import debug
from backend_metascan.bitcoin_source import EsploraClient, TransactionSource
from backend_metascan.config import Settings, get_settings
from backend_metascan.core.exceptions import MetascanError
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="metascan",
        description="Bitcoin metaprotocol monitor: debug one transaction or run the API server.",
    )
    parser.add_argument("--mode", choices=("cli", "server"), default="server", help="Run mode (default: server)")
    parser.add_argument("--txid", default=None, help="Transaction id to debug (cli mode)")
    parser.add_argument("--host", default=None, help="Bind host (default from API_HOST)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default from API_PORT)")
    parser.add_argument(
        "--live",
        action="store_true",
        default=None,
        help="Scan mempool and recent blocks instead of the synthetic feed",
    )
    parser.add_argument("--seed", type=int, default=None, help="Synthetic feed seed (default from SYNTHETIC_SEED)")
    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {}
    if args.host is not None:
        overrides["api_host"] = args.host
    if args.port is not None:
        overrides["api_port"] = args.port
    if args.live:
        overrides["live_scan"] = True
    if args.seed is not None:
        overrides["synthetic_seed"] = args.seed
    return dataclasses.replace(settings, **overrides) if overrides else settings


async def _debug_one(settings: Settings, txid: str, source: TransactionSource | None) -> dict:
    if source is not None:
        return (await debug(source, txid)).to_dict()
    async with EsploraClient(settings.bitcoin_api_url, timeout_sec=settings.request_timeout_sec) as client:
        return (await debug(client, txid)).to_dict()


def run_cli(settings: Settings, txid: str | None, source: TransactionSource | None = None) -> int:
    """Print the debug report for txid; returns the process exit code."""
    txid = (txid or "").strip()
    if not txid:
        logger.error("cli_missing_txid", message="--txid is required in cli mode")
        return 1
    try:
        report = asyncio.run(_debug_one(settings, txid, source))
    except MetascanError as e:
        logger.error("cli_debug_failed", txid=txid, error=str(e))
        return 1
    print(json.dumps(report, indent=2))
    return 0


def run_server(settings: Settings) -> int:
    import uvicorn

    from backend_metascan.api_server.server import create_app

    logger.info(
        "server_starting",
        host=settings.api_host,
        port=settings.api_port,
        live_scan=settings.live_scan,
    )
    try:
        uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)
    except Exception as e:
        logger.exception("server_failed", error=str(e))
        return 1
    return 0


def main(argv: Sequence[str] | None = None, *, source: TransactionSource | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = _apply_overrides(get_settings(), args)
    except ValueError as e:
        logger.error("invalid_settings", error=str(e))
        return 1
    if args.mode == "cli":
        return run_cli(settings, args.txid, source)
    return run_server(settings)


if __name__ == "__main__":
    sys.exit(main())
