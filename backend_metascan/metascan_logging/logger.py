"""
Structured logging for MetaScan: one JSON object per line on stderr.

Every record carries timestamp, level, event_type and the logger name, plus
whatever context the call site passes (txid, protocol, scanner, error).
stdout is left to the CLI, which prints report JSON there.

Only stdlib logging and structlog are imported here; importing any
backend_metascan module would create an import cycle.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

# json (default) or console
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

# Hex payloads (scripts, witness elements) are cut to this many chars in logs
MAX_HEX_LOG_CHARS = 128
_HEX_FIELDS = ("raw_script", "scriptpubkey", "witness")


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _rename_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's 'event' becomes event_type; message defaults to the same name."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    event_dict.setdefault("message", str(event_dict.get("event_type", "")))
    return event_dict


def _truncate_hex(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Keep a script or witness hex readable in one log line."""
    for key in _HEX_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > MAX_HEX_LOG_CHARS:
            event_dict[key] = f"{value[:MAX_HEX_LOG_CHARS]}...({len(value) // 2} bytes)"
    return event_dict


def configure_structlog(level: int = LOG_LEVEL_VALUE, fmt: str = LOG_FORMAT) -> None:
    """(Re)configure structlog. Called once at import with LOG_LEVEL / LOG_FORMAT."""
    renderer: Any
    if fmt == "console":
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    else:
        renderer = structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_timestamp,
            _rename_event,
            _truncate_hex,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger for a module; pass the event name first and context as kwargs.

        logger = get_logger(__name__)
        logger.info("live_tx_published", txid=txid, protocols=["brc20"])
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_txid(txid: str) -> structlog.BoundLogger:
    """Logger with txid attached to every subsequent call."""
    return get_logger("backend_metascan").bind(txid=txid)
