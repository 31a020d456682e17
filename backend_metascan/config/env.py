"""
Environment variable loading for MetaScan.

- BITCOIN_API_URL: Esplora-compatible REST endpoint (default: blockstream.info)
- METASCAN_LIVE_SCAN: 1 = sample mempool/blocks, 0 = synthetic demo feed
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is backend_metascan/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_BITCOIN_API_URL = "https://blockstream.info/api"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def load_metascan_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides real env."""
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)


def get_str(name: str, default: str) -> str:
    load_metascan_env()
    return (os.getenv(name) or "").strip() or default


def get_float(name: str, default: float) -> float:
    """Read a float from env; raise ValueError naming the variable on bad input."""
    raw = get_str(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def get_int(name: str, default: int) -> int:
    raw = get_str(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def get_bool(name: str, default: bool) -> bool:
    """
    Read a boolean flag. Accepts 1/true/yes/on and 0/false/no/off
    (case-insensitive); anything else falls back to the default.
    """
    raw = get_str(name, "").lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    return default


def get_bitcoin_api_url() -> str:
    """Resolve the transaction source base URL (no trailing slash)."""
    return get_str("BITCOIN_API_URL", DEFAULT_BITCOIN_API_URL).rstrip("/")


def use_live_scanning() -> bool:
    """
    Return True when the monitor should sample the real mempool/blocks.
    Default is the synthetic demo feed (no network needed).
    """
    return get_bool("METASCAN_LIVE_SCAN", False)
