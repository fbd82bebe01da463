"""
Pytest fixtures for BlockStore tests. Uses a temporary SQLite DB per test.
"""

from __future__ import annotations

import pytest


def key(n: int) -> bytes:
    """32-byte account key filled with n."""
    return bytes([n]) * 32


def sig(n: int) -> bytes:
    """64-byte signature filled with n."""
    return bytes([n]) * 64


def user_tx() -> dict:
    """
    Non-vote transaction: 4 accounts, header (2 required, 1 readonly signed,
    1 readonly unsigned), two instructions (second has an out-of-range program
    index), one inner instruction, three logs, and overlapping token balances.
    """
    return {
        "is_vote": False,
        "signature": sig(7),
        "transaction": {
            "signatures": [sig(7), sig(8)],
            "message": {
                "header": {
                    "num_required_signatures": 2,
                    "num_readonly_signed_accounts": 1,
                    "num_readonly_unsigned_accounts": 1,
                },
                "account_keys": [key(1), key(2), key(3), key(4)],
                "recent_blockhash": key(9),
                "instructions": [
                    {"program_id_index": 3, "accounts": bytes([0, 1, 2]), "data": b"\x02\x00\x01"},
                    {"program_id_index": 7, "accounts": b"", "data": b"\x01"},
                ],
            },
        },
        "meta": {
            "fee": 5000,
            "compute_units_consumed": 1200,
            "pre_balances": [1000, 0, 500, 1],
            "post_balances": [900, 50, 600, 1],
            "log_messages": [
                "Program X invoke [1]",
                "Program log: hello",
                "Program data: AAEC",
            ],
            "inner_instructions": [
                {"index": 0, "instructions": [{"program_id_index": 0, "data": b"\x05", "stack_height": 2}]},
            ],
            "pre_token_balances": [
                {
                    "account_index": 2,
                    "mint": "MintA",
                    "owner": "OwnerA",
                    "ui_token_amount": {"ui_amount": 1.5, "decimals": 6, "amount": "1500000"},
                },
            ],
            "post_token_balances": [
                {
                    "account_index": 2,
                    "mint": "MintA",
                    "owner": "OwnerA",
                    "ui_token_amount": {"ui_amount": 1.0, "decimals": 6, "amount": "1000000"},
                },
                {
                    "account_index": 1,
                    "mint": "MintB",
                    "owner": "OwnerB",
                    "ui_token_amount": {"ui_amount": 2.0, "decimals": 9, "amount": "2000000000"},
                },
            ],
        },
    }


def vote_tx() -> dict:
    return {
        "is_vote": True,
        "signature": sig(90),
        "transaction": {
            "signatures": [sig(90)],
            "message": {
                "header": {"num_required_signatures": 1, "num_readonly_unsigned_accounts": 1},
                "account_keys": [key(50), key(51)],
                "recent_blockhash": key(52),
                "instructions": [{"program_id_index": 1, "data": b"\x09"}],
            },
        },
        "meta": {
            "fee": 5000,
            "pre_balances": [10_000, 1],
            "post_balances": [5_000, 1],
            "log_messages": ["Program Vote111111111111111111111111111111111111111 invoke [1]"],
        },
    }


def block(slot: int = 100, transactions: list[dict] | None = None) -> dict:
    """Decoded block update; default is one vote followed by one user transaction."""
    return {
        "slot": slot,
        "parent_slot": slot - 1,
        "blockhash": f"Hash{slot}",
        "parent_blockhash": f"Hash{slot - 1}",
        "block_time": {"timestamp": 1_700_000_000},
        "block_height": {"block_height": slot - 10},
        "rewards": {
            "rewards": [
                {"pubkey": "Validator1", "lamports": 10, "post_balance": 100, "reward_type": "Fee", "commission": ""},
                {"pubkey": "Validator2", "lamports": 20, "post_balance": 200, "reward_type": "Voting", "commission": "5"},
            ],
        },
        "transactions": [vote_tx(), user_tx()] if transactions is None else transactions,
    }


@pytest.fixture
def sample_block() -> dict:
    """Slot 100: one vote transaction then one user transaction."""
    return block()


@pytest.fixture
def make_block():
    """Builder: make_block(slot=100, transactions=None)."""
    return block


@pytest.fixture
def make_user_tx():
    """Builder for the non-vote transaction used in sample_block."""
    return user_tx


@pytest.fixture
def engine(tmp_path):
    """SQLite engine on a temp file with all block tables created."""
    from backend_blockstore.database.connection import create_blockstore_engine
    from backend_blockstore.database.schema import ensure_schema

    eng = create_blockstore_engine(f"sqlite:///{tmp_path / 'blockstore.db'}")
    ensure_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def block_db(engine):
    """BlockDatabase with every category enabled and the reject duplicate policy."""
    from backend_blockstore.database.database import BlockDatabase

    return BlockDatabase(engine)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests off any real database/category configuration in the environment."""
    for name in (
        "BLOCKSTORE_DB_URL",
        "DATABASE_URL",
        "SINGLESTORE_URL",
        "BLOCKSTORE_CATEGORIES",
        "BLOCKSTORE_ON_DUPLICATE",
        "BLOCKSTORE_MAX_ROWS_PER_STATEMENT",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("BLOCKSTORE_DB_PATH", str(tmp_path / "env_blockstore.db"))
    yield
    from backend_blockstore.database.connection import reset_engine_for_test

    reset_engine_for_test()
