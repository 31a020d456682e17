"""
Test that metascan_logging can be imported without circular import and logger works.
"""

from __future__ import annotations


def test_logging_import():
    """Import get_logger from metascan_logging and use the logger."""
    from backend_metascan.metascan_logging import get_logger

    logger = get_logger("test")
    assert logger is not None
    assert hasattr(logger, "info")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "warning")
    assert hasattr(logger, "error")
    # Smoke test: call info (should not raise)
    logger.info("test_message", key="value")


def test_bind_txid_smoke():
    """bind_txid returns a logger usable like any other."""
    from backend_metascan.metascan_logging import bind_txid

    log = bind_txid("ab" * 32)
    log.debug("tx_context_bound", protocol="brc20")


def test_long_hex_fields_are_truncated():
    from backend_metascan.metascan_logging.logger import MAX_HEX_LOG_CHARS, _truncate_hex

    event = _truncate_hex(None, "info", {"raw_script": "ab" * 300, "txid": "cd" * 32})
    assert event["raw_script"].startswith("ab" * (MAX_HEX_LOG_CHARS // 2))
    assert event["raw_script"].endswith("...(300 bytes)")
    assert event["txid"] == "cd" * 32
