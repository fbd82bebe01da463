"""
Block pipeline — decompose then persist, one block at a time.

The streaming transport (subscription, auth, keep-alive) lives outside this
package and hands over decoded block updates. Block N is committed or rolled
back before block N+1 is decomposed; there is no internal queue or parallelism.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Iterable

from backend_blockstore.blockstore_logging import bind_slot, get_logger
from backend_blockstore.core.exceptions import MalformedInput, StorageError
from backend_blockstore.database.database import BlockDatabase
from backend_blockstore.database.models import ParsedBlock
from backend_blockstore.solana_listener.models import SourceBlock
from backend_blockstore.solana_listener.parser import decompose

logger = get_logger(__name__)


@dataclass
class RunStats:
    """Outcome counts for BlockPipeline.run()."""

    processed: int = 0
    skipped: int = 0
    """Blocks rejected as MalformedInput."""
    failed: int = 0
    """Blocks whose persistence raised StorageError."""
    failed_slots: list[int | None] = field(default_factory=list)


def _raw_slot(source: SourceBlock | dict[str, Any]) -> Any:
    if isinstance(source, SourceBlock):
        return source.slot
    if isinstance(source, dict):
        return source.get("slot")
    return None


class BlockPipeline:
    """
    Synchronous decompose -> persist loop over a block source.

    The BlockDatabase owns the engine for the duration of each block's transaction.
    """

    def __init__(self, database: BlockDatabase, *, stop_on_error: bool = False) -> None:
        """
        Args:
            database: Destination store with its category/duplicate policy.
            stop_on_error: Re-raise StorageError from run() instead of counting and continuing.
        """
        self._db = database
        self._stop_on_error = stop_on_error

    def process(self, source: SourceBlock | dict[str, Any]) -> ParsedBlock:
        """Decompose and persist one block. Raises MalformedInput or StorageError."""
        started = time.perf_counter()
        parsed = decompose(source)
        log = bind_slot(parsed.block.slot)
        parse_ms = (time.perf_counter() - started) * 1000.0
        log.info(
            "block_parsed",
            parse_ms=round(parse_ms, 3),
            block_height=parsed.block.block_height,
            transaction_count=parsed.block.transaction_count,
        )

        persist_started = time.perf_counter()
        self._db.save_block(parsed)
        log.info(
            "block_persisted",
            persist_ms=round((time.perf_counter() - persist_started) * 1000.0, 3),
            rows=parsed.row_counts(),
        )
        return parsed

    def run(self, blocks: Iterable[SourceBlock | dict[str, Any]]) -> RunStats:
        """Process blocks in order; malformed blocks are skipped, storage failures counted."""
        stats = RunStats()
        for source in blocks:
            try:
                self.process(source)
            except MalformedInput as e:
                stats.skipped += 1
                logger.warning("block_skipped_malformed", slot=e.slot or _raw_slot(source), error=str(e))
                continue
            except StorageError as e:
                stats.failed += 1
                stats.failed_slots.append(e.slot)
                logger.error("block_persist_error", slot=e.slot, stage=e.stage, error=str(e))
                if self._stop_on_error:
                    raise
                continue
            stats.processed += 1
        logger.info(
            "pipeline_run_finished",
            processed=stats.processed,
            skipped=stats.skipped,
            failed=stats.failed,
        )
        return stats
