"""
Persistence coordinator — one block, one transaction, all tables or none.

persist() opens a transaction on the engine, handles an existing slot per the
duplicate policy, inserts the block row, then inserts each enabled non-empty
category batch in a fixed order with one multi-row statement per batch (or per
chunk when max_rows_per_statement is set), and commits. Any failure rolls the
whole unit back and surfaces as StorageError; nothing is retried here.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import Table
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from backend_blockstore.blockstore_logging import get_logger
from backend_blockstore.core.exceptions import DuplicateSlotError, StorageError
from backend_blockstore.database import schema
from backend_blockstore.database.models import ParsedBlock
from backend_blockstore.database.sql import (
    Encoder,
    build_insert,
    chunked,
    flatten_rows,
    placeholder_for,
)
from backend_blockstore.utils.codec import encode_or_empty

logger = get_logger(__name__)

DUPLICATE_REJECT = "reject"
DUPLICATE_REPLACE = "replace"
DUPLICATE_POLICIES = (DUPLICATE_REJECT, DUPLICATE_REPLACE)


def _json_or_none(value: Any) -> str | None:
    if value is None:
        return None
    return json.dumps(value, sort_keys=True, default=str)


def _base58_data(value: Any) -> str:
    return encode_or_empty(value, field="data")


@dataclass(frozen=True)
class Category:
    """A per-block row collection and the table it lands in."""

    name: str
    table: Table
    encoders: Mapping[str, Encoder] = field(default_factory=dict)


# Insert order after the block row. ParsedBlock attribute == category name.
CATEGORIES: tuple[Category, ...] = (
    Category("transactions", schema.transactions, {"err": _json_or_none}),
    Category("signatures", schema.transaction_signatures),
    Category("instructions", schema.transaction_instructions, {"data": _base58_data}),
    Category("inner_instructions", schema.transaction_inner_instructions, {"data": _base58_data}),
    Category("accounts", schema.transaction_accounts),
    Category("logs", schema.transaction_logs),
    Category("token_balances", schema.transaction_token_balances),
    Category("rewards", schema.block_rewards),
)
CATEGORY_NAMES: tuple[str, ...] = tuple(c.name for c in CATEGORIES)


def _check_max_rows(max_rows_per_statement: int | None) -> None:
    if max_rows_per_statement is not None and max_rows_per_statement < 0:
        raise ValueError(
            f"max_rows_per_statement must be >= 0 or None, got {max_rows_per_statement}"
        )


def resolve_categories(categories: Iterable[str] | None) -> frozenset[str]:
    """Validate category names; None means all. Raises ValueError on unknown names."""
    if categories is None:
        return frozenset(CATEGORY_NAMES)
    enabled = frozenset(categories)
    unknown = enabled - set(CATEGORY_NAMES)
    if unknown:
        raise ValueError(
            f"unknown categories: {', '.join(sorted(unknown))} (valid: {', '.join(CATEGORY_NAMES)})"
        )
    return enabled


def _insert_rows(
    conn: Connection,
    table: Table,
    rows: Sequence[Any],
    placeholder: str,
    encoders: Mapping[str, Encoder] | None,
    max_rows_per_statement: int | None,
) -> int:
    columns = schema.column_names(table)
    statements = 0
    for chunk in chunked(rows, max_rows_per_statement):
        sql = build_insert(table.name, columns, len(chunk), placeholder)
        conn.exec_driver_sql(sql, tuple(flatten_rows(chunk, columns, encoders)))
        statements += 1
    return statements


def _slot_exists(conn: Connection, slot: int, placeholder: str) -> bool:
    result = conn.exec_driver_sql(
        f"SELECT 1 FROM {schema.blocks.name} WHERE slot = {placeholder}", (slot,)
    )
    return result.first() is not None


def _delete_slot(conn: Connection, slot: int, placeholder: str) -> None:
    """Remove every row for slot, children first."""
    for category in reversed(CATEGORIES):
        conn.exec_driver_sql(
            f"DELETE FROM {category.table.name} WHERE slot = {placeholder}", (slot,)
        )
    conn.exec_driver_sql(f"DELETE FROM {schema.blocks.name} WHERE slot = {placeholder}", (slot,))


def persist(
    engine: Engine,
    parsed: ParsedBlock,
    *,
    categories: Iterable[str] | None = None,
    on_duplicate: str = DUPLICATE_REJECT,
    max_rows_per_statement: int | None = None,
) -> None:
    """
    Write one ParsedBlock atomically.

    categories: names from CATEGORY_NAMES to write (None = all); the block row is always written.
    on_duplicate: "reject" raises DuplicateSlotError if the slot exists; "replace" deletes
        the slot's existing rows in the same transaction before inserting.
    max_rows_per_statement: split large batches into several statements (None = one per batch).

    Raises StorageError (stage and slot attached, driver error chained) after rolling back.
    """
    enabled = resolve_categories(categories)
    if on_duplicate not in DUPLICATE_POLICIES:
        raise ValueError(f"on_duplicate must be one of {DUPLICATE_POLICIES}, got {on_duplicate!r}")
    _check_max_rows(max_rows_per_statement)
    slot = parsed.block.slot
    placeholder = placeholder_for(engine.dialect.paramstyle)

    stage = "begin"
    statements = 0
    try:
        with engine.connect() as conn:
            trans = conn.begin()
            try:
                if on_duplicate == DUPLICATE_REJECT:
                    stage = "duplicate_check"
                    if _slot_exists(conn, slot, placeholder):
                        raise DuplicateSlotError(
                            f"slot {slot} already persisted", slot=slot, stage=stage
                        )
                else:
                    stage = "delete_existing"
                    _delete_slot(conn, slot, placeholder)

                stage = "insert_block"
                statements += _insert_rows(
                    conn, schema.blocks, [parsed.block], placeholder, None, None
                )

                for category in CATEGORIES:
                    if category.name not in enabled:
                        continue
                    rows = getattr(parsed, category.name)
                    if not rows:
                        continue
                    stage = f"insert_{category.name}"
                    statements += _insert_rows(
                        conn,
                        category.table,
                        rows,
                        placeholder,
                        category.encoders,
                        max_rows_per_statement,
                    )

                stage = "commit"
                trans.commit()
            except BaseException:
                if trans.is_active:
                    trans.rollback()
                raise
    except DuplicateSlotError:
        logger.warning("block_duplicate_rejected", slot=slot)
        raise
    except SQLAlchemyError as e:
        logger.error("block_persist_failed", slot=slot, stage=stage, error=str(e))
        raise StorageError(f"error in {stage} for slot {slot}: {e}", slot=slot, stage=stage) from e

    logger.debug("block_committed", slot=slot, statements=statements)


class BlockDatabase:
    """
    Block store facade: engine plus deployment policy (categories, duplicates, chunking).
    """

    def __init__(
        self,
        engine: Engine,
        *,
        categories: Iterable[str] | None = None,
        on_duplicate: str = DUPLICATE_REJECT,
        max_rows_per_statement: int | None = None,
    ) -> None:
        self._engine = engine
        self._categories = resolve_categories(categories)
        if on_duplicate not in DUPLICATE_POLICIES:
            raise ValueError(f"on_duplicate must be one of {DUPLICATE_POLICIES}, got {on_duplicate!r}")
        self._on_duplicate = on_duplicate
        _check_max_rows(max_rows_per_statement)
        self._max_rows = max_rows_per_statement

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def categories(self) -> frozenset[str]:
        return self._categories

    def ensure_schema(self) -> None:
        """Create tables if they do not exist."""
        schema.ensure_schema(self._engine)

    def save_block(self, parsed: ParsedBlock) -> None:
        """persist() with this database's policy."""
        persist(
            self._engine,
            parsed,
            categories=self._categories,
            on_duplicate=self._on_duplicate,
            max_rows_per_statement=self._max_rows,
        )

    def slot_row_counts(self, slot: int) -> dict[str, int]:
        """Rows stored for slot per table (blocks included)."""
        placeholder = placeholder_for(self._engine.dialect.paramstyle)
        tables = [schema.blocks] + [c.table for c in CATEGORIES]
        counts: dict[str, int] = {}
        with self._engine.connect() as conn:
            for table in tables:
                result = conn.exec_driver_sql(
                    f"SELECT COUNT(*) FROM {table.name} WHERE slot = {placeholder}", (slot,)
                )
                counts[table.name] = int(result.scalar() or 0)
        return counts


def get_block_database(settings: Any = None, *, ensure_schema: bool = True) -> BlockDatabase:
    """
    Return a BlockDatabase for the configured URL and policy.

    settings: a config.Settings; default get_settings().
    ensure_schema: create missing tables before returning.
    """
    from backend_blockstore.config import get_settings
    from backend_blockstore.database.connection import get_engine

    settings = settings or get_settings()
    db = BlockDatabase(
        get_engine(settings.database_url),
        categories=settings.enabled_categories,
        on_duplicate=settings.on_duplicate,
        max_rows_per_statement=settings.max_rows_per_statement,
    )
    if ensure_schema:
        db.ensure_schema()
    return db
