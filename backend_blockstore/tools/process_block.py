#!/usr/bin/env python3
"""
Process one block update from JSON: decompose, then persist atomically.

Reads a decoded block update (snake_case Yellowstone field names) from a file
or stdin. With --dry-run only decomposes and prints per-category row counts.
Byte fields are base64 (MessageToDict output); account keys, blockhashes and
signatures may also be given as base-58 text.

Usage:
  py -m backend_blockstore.tools.process_block --input block.json
  cat block.json | py -m backend_blockstore.tools.process_block --init-schema
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from backend_blockstore.blockstore_logging import get_logger
from backend_blockstore.config import get_settings
from backend_blockstore.core.exceptions import MalformedInput, StorageError
from backend_blockstore.database.database import get_block_database
from backend_blockstore.pipeline import BlockPipeline
from backend_blockstore.solana_listener.parser import decompose

logger = get_logger(__name__)


def _read_block(path: str | None) -> Any:
    if path is None or path == "-":
        return json.load(sys.stdin)
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Decompose one Solana block update and persist it in a single transaction.",
    )
    parser.add_argument("--input", "-i", default=None, help="Block update JSON file (default: stdin)")
    parser.add_argument("--database-url", default=None, help="SQLAlchemy URL (default: from environment)")
    parser.add_argument("--init-schema", action="store_true", help="Create destination tables if missing")
    parser.add_argument("--dry-run", action="store_true", help="Decompose only; print row counts as JSON")
    args = parser.parse_args(argv)

    try:
        raw = _read_block(args.input)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("block_input_unreadable", input=args.input or "-", error=str(e))
        return 1

    if args.dry_run:
        try:
            parsed = decompose(raw)
        except MalformedInput as e:
            logger.error("block_malformed", error=str(e))
            return 1
        print(json.dumps({"slot": parsed.block.slot, **parsed.row_counts()}, sort_keys=True))
        return 0

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

    try:
        parsed = BlockPipeline(db).process(raw)
    except MalformedInput as e:
        logger.error("block_malformed", error=str(e))
        return 1
    except StorageError as e:
        logger.error("block_save_failed", slot=e.slot, stage=e.stage, error=str(e))
        return 1

    print(f"Successfully processed block {parsed.block.slot}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
