"""
Structured logging for block processing: timestamp, level, event_type, slot.

structlog with ISO timestamps and one snake_case event name per line plus
keyword context (slot, stage, transaction_count, ...). Log lines go to stderr so
tool output on stdout (row counts, run summaries) stays machine-readable.

Uses only Python stdlib logging and structlog; no backend_blockstore imports to avoid circular imports.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO, Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# json for collectors; console for local runs
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Ensure timestamp is always present (ISO 8601)."""
    if "timestamp" not in event_dict:
        event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _normalize_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Rename structlog 'event' to event_type; keep message if present."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    if "message" not in event_dict and "event_type" in event_dict:
        event_dict["message"] = str(event_dict["event_type"])
    return event_dict


def configure_structlog(
    level: str | None = None,
    fmt: str | None = None,
    stream: IO[str] | None = None,
) -> None:
    """
    Configure structlog for the process.

    level: logging level name (default LOG_LEVEL env, INFO).
    fmt: "json" or "console" (default LOG_FORMAT env, json).
    stream: where lines are written (default sys.stderr).
    """
    level_value = getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO)
    fmt = (fmt or LOG_FORMAT).strip().lower()
    stream = stream if stream is not None else sys.stderr
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
        _normalize_event,
    ]
    if fmt == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=stream.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("block_persisted", slot=100, transaction_count=12)

    Output (JSON): {"event_type": "block_persisted", "slot": 100, "transaction_count": 12,
    "timestamp": "...", "level": "info", "logger": "module.name", "message": "block_persisted"}
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_slot(slot: int, **context: Any) -> structlog.BoundLogger:
    """Logger with slot (and any extra context) bound to every line for one block."""
    return get_logger("backend_blockstore.block").bind(slot=slot, **context)
