"""
Domain models for database entities — the per-block aggregate.

One Block plus per-category row collections, all keyed by slot and (for
per-transaction rows) transaction_index. Attribute names equal destination
column names so rows can be flattened by column list; no ORM coupling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Block:
    slot: int
    parent_slot: int
    block_time: int
    """Unix timestamp (seconds); 0 when the source omitted it."""
    block_height: int
    blockhash: str
    previous_blockhash: str
    transaction_count: int = 0
    successful: bool = True
    """Block was received and parsed; not "all transactions succeeded"."""
    created_at: int = 0
    updated_at: int = 0


@dataclass
class Transaction:
    slot: int
    transaction_index: int
    signature: str
    block_time: int
    block_hash: str
    fee: int = 0
    compute_units_consumed: int = 0
    compute_units_price: int = 0
    """Micro-lamports per compute unit from SetComputeUnitPrice; 0 if absent."""
    err: Any = None
    """JSON-serializable error payload; None on success."""
    successful: bool = True
    version: str = "legacy"
    recent_blockhash: str = ""
    num_required_signatures: int = 0
    num_readonly_signed_accounts: int = 0
    num_readonly_unsigned_accounts: int = 0
    created_at: int = 0
    updated_at: int = 0


@dataclass
class Instruction:
    slot: int
    transaction_index: int
    instruction_index: int
    program_id: str
    """Base-58 key at program_id_index; "" when the index is out of range."""
    program_id_index: int
    data: bytes = b""
    stack_height: int | None = None
    created_at: int = 0
    updated_at: int = 0


@dataclass
class InnerInstruction:
    slot: int
    transaction_index: int
    instruction_index: int
    """Index of the outer instruction that emitted this one."""
    inner_instruction_index: int
    program_id: str
    program_id_index: int
    data: bytes = b""
    stack_height: int | None = None
    created_at: int = 0
    updated_at: int = 0


@dataclass
class TransactionAccount:
    slot: int
    transaction_index: int
    account_index: int
    address: str
    is_signer: bool
    is_writable: bool
    pre_balance: int = 0
    post_balance: int = 0
    balance_change: int | None = None
    """post - pre, only when pre_balance > 0; otherwise None."""
    created_at: int = 0
    updated_at: int = 0


@dataclass
class TransactionTokenBalance:
    slot: int
    transaction_index: int
    account_index: int
    mint: str
    owner: str
    decimals: int = 0
    pre_amount: str = ""
    pre_ui_amount: float = 0.0
    post_amount: str = ""
    post_ui_amount: float = 0.0
    created_at: int = 0
    updated_at: int = 0


@dataclass
class TransactionSignature:
    slot: int
    transaction_index: int
    signature_index: int
    signature: str
    created_at: int = 0
    updated_at: int = 0


@dataclass
class TransactionLog:
    slot: int
    transaction_index: int
    log_index: int
    log: str
    level: str = "other"
    """Line kind: log | data | other."""
    program_id: str = ""
    """Program id of the transaction's first instruction (approximation)."""
    created_at: int = 0
    updated_at: int = 0


@dataclass
class BlockReward:
    slot: int
    reward_index: int
    pubkey: str
    lamports: int
    post_balance: int
    reward_type: str
    commission: int | None = None
    created_at: int = 0
    updated_at: int = 0


@dataclass
class ParsedBlock:
    """
    Everything derived from one block update.

    Created fresh per block, filled in one pass by decompose(), consumed once by
    persist(). Child collections only reference transaction indices present in
    transactions.
    """

    block: Block
    transactions: list[Transaction] = field(default_factory=list)
    signatures: list[TransactionSignature] = field(default_factory=list)
    instructions: list[Instruction] = field(default_factory=list)
    inner_instructions: list[InnerInstruction] = field(default_factory=list)
    accounts: list[TransactionAccount] = field(default_factory=list)
    logs: list[TransactionLog] = field(default_factory=list)
    token_balances: list[TransactionTokenBalance] = field(default_factory=list)
    rewards: list[BlockReward] = field(default_factory=list)

    def row_counts(self) -> dict[str, int]:
        return {
            "transactions": len(self.transactions),
            "signatures": len(self.signatures),
            "instructions": len(self.instructions),
            "inner_instructions": len(self.inner_instructions),
            "accounts": len(self.accounts),
            "logs": len(self.logs),
            "token_balances": len(self.token_balances),
            "rewards": len(self.rewards),
        }
