"""
Run the block pipeline over a JSON Lines stream of decoded block updates.

One block update per line, processed strictly in order: each block is
committed or rolled back before the next line is decoded. Malformed blocks
(bad JSON, no slot) are skipped and counted; storage failures are counted, or
stop the run with --stop-on-error.
Invalid configuration or an unreachable database exits 1 before any line is read.

Usage:
  py -m backend_blockstore.tools.run_blocks --input blocks.jsonl --init-schema
  some-stream-dump | py -m backend_blockstore.tools.run_blocks --stop-on-error
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from typing import IO, Any, Iterator

from sqlalchemy.exc import SQLAlchemyError

from backend_blockstore.blockstore_logging import get_logger
from backend_blockstore.config import get_settings
from backend_blockstore.core.exceptions import StorageError
from backend_blockstore.database.database import get_block_database
from backend_blockstore.pipeline import BlockPipeline

logger = get_logger(__name__)


def iter_block_lines(stream: IO[str]) -> Iterator[Any]:
    """Yield one decoded object per non-empty line; undecodable lines yield None (skipped downstream)."""
    for line_no, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            yield json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("block_line_invalid_json", line=line_no, error=str(e))
            yield None


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Decompose and persist a JSON Lines stream of block updates.")
    parser.add_argument("--input", "-i", default=None, help="JSON Lines file (default: stdin)")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: from environment)")
    parser.add_argument("--init-schema", action="store_true", help="Create destination tables if missing")
    parser.add_argument("--stop-on-error", action="store_true", help="Abort on the first storage failure")
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
        if args.database_url:
            settings = replace(settings, database_url=args.database_url)
        db = get_block_database(settings, ensure_schema=args.init_schema)
    except ValueError as e:
        logger.error("blockstore_config_invalid", error=str(e))
        return 1
    except SQLAlchemyError as e:
        logger.error("blockstore_database_unavailable", init_schema=args.init_schema, error=str(e))
        return 1
    pipeline = BlockPipeline(db, stop_on_error=args.stop_on_error)

    try:
        if args.input is None or args.input == "-":
            stats = pipeline.run(iter_block_lines(sys.stdin))
        else:
            with open(args.input, encoding="utf-8") as f:
                stats = pipeline.run(iter_block_lines(f))
    except OSError as e:
        logger.error("block_input_unreadable", input=args.input, error=str(e))
        return 1
    except StorageError as e:
        logger.error("run_aborted", slot=e.slot, stage=e.stage, error=str(e))
        return 1

    print(f"processed={stats.processed} skipped={stats.skipped} failed={stats.failed}")
    return 0 if stats.failed == 0 else 1


if __name__ == "__main__":
    sys.exit(main())
