"""
Destination table definitions (SQLAlchemy Core).

One table per aggregate category, keyed by slot and the per-category
composite key. Column order here is the column order of generated inserts.
Safe to run ensure_schema() repeatedly (create_all skips existing tables).
"""

from __future__ import annotations

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.engine import Engine

from backend_blockstore.blockstore_logging import get_logger

logger = get_logger(__name__)

metadata = MetaData()


def _timestamps() -> list[Column]:
    return [
        Column("created_at", BigInteger, nullable=False),
        Column("updated_at", BigInteger, nullable=False),
    ]


def _slot_pk() -> Column:
    return Column("slot", BigInteger, primary_key=True, autoincrement=False)


def _tx_index_pk() -> Column:
    return Column("transaction_index", Integer, primary_key=True, autoincrement=False)


blocks = Table(
    "blocks",
    metadata,
    _slot_pk(),
    Column("parent_slot", BigInteger, nullable=False),
    Column("block_time", BigInteger, nullable=False),
    Column("block_height", BigInteger, nullable=False),
    Column("blockhash", String(88), nullable=False),
    Column("previous_blockhash", String(88), nullable=False),
    Column("transaction_count", Integer, nullable=False),
    Column("successful", Boolean, nullable=False),
    *_timestamps(),
)

transactions = Table(
    "transactions",
    metadata,
    _slot_pk(),
    _tx_index_pk(),
    Column("signature", String(88), nullable=False, index=True),
    Column("block_time", BigInteger, nullable=False),
    Column("block_hash", String(88), nullable=False),
    Column("fee", BigInteger, nullable=False),
    Column("compute_units_consumed", BigInteger, nullable=False),
    Column("compute_units_price", BigInteger, nullable=False),
    Column("err", Text, nullable=True),  # JSON payload
    Column("successful", Boolean, nullable=False),
    Column("version", String(16), nullable=False),
    Column("recent_blockhash", String(88), nullable=False),
    Column("num_required_signatures", Integer, nullable=False),
    Column("num_readonly_signed_accounts", Integer, nullable=False),
    Column("num_readonly_unsigned_accounts", Integer, nullable=False),
    *_timestamps(),
)

transaction_signatures = Table(
    "transaction_signatures",
    metadata,
    _slot_pk(),
    _tx_index_pk(),
    Column("signature_index", Integer, primary_key=True, autoincrement=False),
    Column("signature", String(88), nullable=False, index=True),
    *_timestamps(),
)

transaction_instructions = Table(
    "transaction_instructions",
    metadata,
    _slot_pk(),
    _tx_index_pk(),
    Column("instruction_index", Integer, primary_key=True, autoincrement=False),
    Column("program_id", String(64), nullable=False, index=True),
    Column("program_id_index", Integer, nullable=False),
    Column("data", Text, nullable=False),  # base-58
    Column("stack_height", Integer, nullable=True),
    *_timestamps(),
)

transaction_inner_instructions = Table(
    "transaction_inner_instructions",
    metadata,
    _slot_pk(),
    _tx_index_pk(),
    Column("instruction_index", Integer, primary_key=True, autoincrement=False),
    Column("inner_instruction_index", Integer, primary_key=True, autoincrement=False),
    Column("program_id", String(64), nullable=False, index=True),
    Column("program_id_index", Integer, nullable=False),
    Column("data", Text, nullable=False),  # base-58
    Column("stack_height", Integer, nullable=True),
    *_timestamps(),
)

transaction_accounts = Table(
    "transaction_accounts",
    metadata,
    _slot_pk(),
    _tx_index_pk(),
    Column("account_index", Integer, primary_key=True, autoincrement=False),
    Column("address", String(64), nullable=False, index=True),
    Column("is_signer", Boolean, nullable=False),
    Column("is_writable", Boolean, nullable=False),
    Column("pre_balance", BigInteger, nullable=False),
    Column("post_balance", BigInteger, nullable=False),
    Column("balance_change", BigInteger, nullable=True),
    *_timestamps(),
)

transaction_logs = Table(
    "transaction_logs",
    metadata,
    _slot_pk(),
    _tx_index_pk(),
    Column("log_index", Integer, primary_key=True, autoincrement=False),
    Column("log", Text, nullable=False),
    Column("level", String(16), nullable=False),
    Column("program_id", String(64), nullable=False),
    *_timestamps(),
)

transaction_token_balances = Table(
    "transaction_token_balances",
    metadata,
    _slot_pk(),
    _tx_index_pk(),
    Column("account_index", Integer, primary_key=True, autoincrement=False),
    Column("mint", String(64), nullable=False, index=True),
    Column("owner", String(64), nullable=False, index=True),
    Column("decimals", Integer, nullable=False),
    Column("pre_amount", String(40), nullable=False),  # u64 as text avoids precision loss
    Column("pre_ui_amount", Float, nullable=False),
    Column("post_amount", String(40), nullable=False),
    Column("post_ui_amount", Float, nullable=False),
    *_timestamps(),
)

block_rewards = Table(
    "block_rewards",
    metadata,
    _slot_pk(),
    Column("reward_index", Integer, primary_key=True, autoincrement=False),
    Column("pubkey", String(64), nullable=False, index=True),
    Column("lamports", BigInteger, nullable=False),
    Column("post_balance", BigInteger, nullable=False),
    Column("reward_type", String(32), nullable=False),
    Column("commission", Integer, nullable=True),
    *_timestamps(),
)


def column_names(table: Table) -> list[str]:
    """Ordered column names of table, as used by the insert projector."""
    return [c.name for c in table.columns]


def ensure_schema(engine: Engine) -> None:
    """Create all block tables if they do not exist."""
    metadata.create_all(engine)
    logger.info("schema_ensured", tables=sorted(metadata.tables))
