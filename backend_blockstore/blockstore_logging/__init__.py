"""
Structured logging for Backend BlockStore.

JSON logs with timestamp, slot, event_type.
Use get_logger() in all pipeline modules for aggregation-friendly output.
"""

from backend_blockstore.blockstore_logging.logger import (
    bind_slot,
    configure_structlog,
    get_logger,
)

__all__ = ["bind_slot", "configure_structlog", "get_logger"]
