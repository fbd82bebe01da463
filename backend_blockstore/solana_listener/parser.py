"""
Block decomposer — one decoded block update to a flat, keyed ParsedBlock.

Purely structural: no I/O and no persistence. Vote transactions are dropped
before transaction indices are assigned, so every child row (instruction,
account, signature, log, token balance) references a transaction row that
exists in the same aggregate. Malformed sub-records degrade to empty/zero
fields; only structurally unusable input raises MalformedInput.
"""

from __future__ import annotations

import time
from typing import Any, Iterable

from backend_blockstore.blockstore_logging import get_logger
from backend_blockstore.core.exceptions import MalformedInput
from backend_blockstore.database.models import (
    Block,
    BlockReward,
    InnerInstruction,
    Instruction,
    ParsedBlock,
    Transaction,
    TransactionAccount,
    TransactionLog,
    TransactionSignature,
    TransactionTokenBalance,
)
from backend_blockstore.solana_listener.filters import filter_votes
from backend_blockstore.solana_listener.models import (
    SourceBlock,
    SourceHeader,
    SourceInstruction,
    SourceReward,
    SourceTokenBalance,
    SourceTransaction,
)
from backend_blockstore.utils.codec import encode_or_empty

logger = get_logger(__name__)

COMPUTE_BUDGET_PROGRAM_ID = "ComputeBudget111111111111111111111111111111"
# SetComputeUnitPrice instruction discriminator in ComputeBudget program
SET_COMPUTE_UNIT_PRICE_DISCRIMINATOR = 3

LOG_PREFIX_LOG = "Program log: "
LOG_PREFIX_DATA = "Program data: "


def account_flags(header: SourceHeader, total_accounts: int) -> list[tuple[bool, bool]]:
    """
    (is_signer, is_writable) for each account index from the header counts.

    Keys are laid out as [writable signed | readonly signed | writable unsigned | readonly unsigned].
    """
    required = header.num_required_signatures
    writable_signed_end = required - header.num_readonly_signed_accounts
    writable_unsigned_end = total_accounts - header.num_readonly_unsigned_accounts
    flags: list[tuple[bool, bool]] = []
    for j in range(total_accounts):
        is_signer = j < required
        is_writable = j < writable_signed_end or required <= j < writable_unsigned_end
        flags.append((is_signer, is_writable))
    return flags


def balance_change(pre_balances: list[int], post_balances: list[int], j: int) -> int | None:
    """post - pre for account j, only when a positive pre-balance and a post-balance exist."""
    if j >= len(pre_balances) or j >= len(post_balances):
        return None
    pre = pre_balances[j]
    if pre <= 0:
        return None
    return post_balances[j] - pre


def reconcile_token_balances(
    pre: Iterable[SourceTokenBalance],
    post: Iterable[SourceTokenBalance],
) -> list[tuple[int, SourceTokenBalance | None, SourceTokenBalance | None]]:
    """
    Merge pre/post token balances by account index.

    Returns one (account_index, pre, post) triple per index in the union of both
    maps, sorted by account index. A later entry for the same index wins.
    """
    pre_map = {bal.account_index: bal for bal in pre}
    post_map = {bal.account_index: bal for bal in post}
    return [
        (idx, pre_map.get(idx), post_map.get(idx))
        for idx in sorted(pre_map.keys() | post_map.keys())
    ]


def classify_log(line: str) -> str:
    """Log line kind: log | data | other."""
    if line.startswith(LOG_PREFIX_LOG):
        return "log"
    if line.startswith(LOG_PREFIX_DATA):
        return "data"
    return "other"


def _resolve_program_id(account_keys: list[str], program_id_index: int) -> str:
    if 0 <= program_id_index < len(account_keys):
        return account_keys[program_id_index]
    logger.debug(
        "program_id_index_out_of_range",
        program_id_index=program_id_index,
        account_count=len(account_keys),
    )
    return ""


def _compute_unit_price(account_keys: list[str], instructions: list[SourceInstruction]) -> int:
    """Micro-lamports from the first ComputeBudget SetComputeUnitPrice instruction; 0 if none."""
    for ix in instructions:
        if _resolve_program_id(account_keys, ix.program_id_index) != COMPUTE_BUDGET_PROGRAM_ID:
            continue
        data = ix.data
        if len(data) >= 9 and data[0] == SET_COMPUTE_UNIT_PRICE_DISCRIMINATOR:
            return int.from_bytes(data[1:9], "little")
    return 0


def _error_payload(err: Any) -> Any:
    """Wrap a transaction error for the JSON err column; raw bytes become base-58 text."""
    if err is None:
        return None
    if isinstance(err, (bytes, bytearray)):
        return {"data": encode_or_empty(bytes(err), field="err")}
    return {"data": err}


def _parse_commission(raw: str) -> int | None:
    raw = (raw or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.debug("reward_commission_malformed", commission=raw)
        return None


def _decompose_transaction(
    result: ParsedBlock,
    tx: SourceTransaction,
    tx_index: int,
    now: int,
) -> None:
    """Append the transaction row and all of its child rows to result."""
    slot = result.block.slot
    message = tx.message
    meta = tx.meta

    header = message.header if message is not None else None
    if message is not None and message.account_keys and header is None:
        raise MalformedInput(
            f"slot {slot} transaction {tx_index}: account keys present but message header missing",
            slot=slot,
        )

    account_keys = (
        [encode_or_empty(k, field="account_key") for k in message.account_keys]
        if message is not None
        else []
    )

    if tx.signatures:
        first_signature = encode_or_empty(tx.signatures[0], field="signature")
    else:
        first_signature = encode_or_empty(tx.signature or None, field="signature")

    transaction = Transaction(
        slot=slot,
        transaction_index=tx_index,
        signature=first_signature,
        block_time=result.block.block_time,
        block_hash=result.block.blockhash,
        created_at=now,
        updated_at=now,
    )
    if meta is not None:
        transaction.fee = meta.fee
        transaction.err = _error_payload(meta.err)
        transaction.successful = meta.err is None
        if meta.compute_units_consumed is not None:
            transaction.compute_units_consumed = meta.compute_units_consumed
    if message is not None:
        if header is not None:
            transaction.num_required_signatures = header.num_required_signatures
            transaction.num_readonly_signed_accounts = header.num_readonly_signed_accounts
            transaction.num_readonly_unsigned_accounts = header.num_readonly_unsigned_accounts
        transaction.recent_blockhash = encode_or_empty(
            message.recent_blockhash or None, field="recent_blockhash"
        )
        transaction.version = "0" if message.versioned else "legacy"
        transaction.compute_units_price = _compute_unit_price(account_keys, message.instructions)
    result.transactions.append(transaction)

    # Instructions
    first_program_id = ""
    if message is not None:
        for j, ix in enumerate(message.instructions):
            program_id = _resolve_program_id(account_keys, ix.program_id_index)
            if j == 0:
                first_program_id = program_id
            result.instructions.append(
                Instruction(
                    slot=slot,
                    transaction_index=tx_index,
                    instruction_index=j,
                    program_id=program_id,
                    program_id_index=ix.program_id_index,
                    data=ix.data,
                    stack_height=ix.stack_height,
                    created_at=now,
                    updated_at=now,
                )
            )

    # Inner instructions
    if meta is not None:
        for group in meta.inner_instructions:
            for k, ix in enumerate(group.instructions):
                result.inner_instructions.append(
                    InnerInstruction(
                        slot=slot,
                        transaction_index=tx_index,
                        instruction_index=group.index,
                        inner_instruction_index=k,
                        program_id=_resolve_program_id(account_keys, ix.program_id_index),
                        program_id_index=ix.program_id_index,
                        data=ix.data,
                        stack_height=ix.stack_height,
                        created_at=now,
                        updated_at=now,
                    )
                )

    # Accounts
    if meta is not None and header is not None and account_keys:
        for j, (is_signer, is_writable) in enumerate(account_flags(header, len(account_keys))):
            result.accounts.append(
                TransactionAccount(
                    slot=slot,
                    transaction_index=tx_index,
                    account_index=j,
                    address=account_keys[j],
                    is_signer=is_signer,
                    is_writable=is_writable,
                    pre_balance=meta.pre_balances[j] if j < len(meta.pre_balances) else 0,
                    post_balance=meta.post_balances[j] if j < len(meta.post_balances) else 0,
                    balance_change=balance_change(meta.pre_balances, meta.post_balances, j),
                    created_at=now,
                    updated_at=now,
                )
            )

    # Token balances
    if meta is not None:
        for idx, pre_bal, post_bal in reconcile_token_balances(
            meta.pre_token_balances, meta.post_token_balances
        ):
            # pre record wins for identity fields when both exist
            ident = pre_bal if pre_bal is not None else post_bal
            row = TransactionTokenBalance(
                slot=slot,
                transaction_index=tx_index,
                account_index=idx,
                mint=ident.mint,
                owner=ident.owner,
                decimals=ident.ui_token_amount.decimals,
                created_at=now,
                updated_at=now,
            )
            if pre_bal is not None:
                row.pre_amount = pre_bal.ui_token_amount.amount
                row.pre_ui_amount = pre_bal.ui_token_amount.ui_amount
            if post_bal is not None:
                row.post_amount = post_bal.ui_token_amount.amount
                row.post_ui_amount = post_bal.ui_token_amount.ui_amount
            result.token_balances.append(row)

    # Signatures
    for k, sig in enumerate(tx.signatures):
        result.signatures.append(
            TransactionSignature(
                slot=slot,
                transaction_index=tx_index,
                signature_index=k,
                signature=encode_or_empty(sig, field="signature"),
                created_at=now,
                updated_at=now,
            )
        )

    # Logs: program attribution is the first instruction of this transaction (approximation)
    if meta is not None:
        for k, line in enumerate(meta.log_messages):
            result.logs.append(
                TransactionLog(
                    slot=slot,
                    transaction_index=tx_index,
                    log_index=k,
                    log=line,
                    level=classify_log(line),
                    program_id=first_program_id,
                    created_at=now,
                    updated_at=now,
                )
            )


def _reward_row(slot: int, index: int, reward: SourceReward, now: int) -> BlockReward:
    return BlockReward(
        slot=slot,
        reward_index=index,
        pubkey=reward.pubkey,
        lamports=reward.lamports,
        post_balance=reward.post_balance,
        reward_type=reward.reward_type,
        commission=_parse_commission(reward.commission),
        created_at=now,
        updated_at=now,
    )


def decompose(source: SourceBlock | dict[str, Any], *, now: int | None = None) -> ParsedBlock:
    """
    Decompose one block update into a ParsedBlock.

    source: a SourceBlock or a decoded block-update dict.
    now: Unix seconds stamped into created_at/updated_at; defaults to the current time.

    Transaction indices are assigned sequentially to non-vote transactions in
    source order. block.transaction_count equals len(transactions) and
    block.successful is always True. Raises MalformedInput when the block has no
    slot or a transaction message has account keys but no header.
    """
    block_src = source if isinstance(source, SourceBlock) else SourceBlock.from_dict(source)
    now = int(time.time()) if now is None else now

    result = ParsedBlock(
        block=Block(
            slot=block_src.slot,
            parent_slot=block_src.parent_slot,
            block_time=block_src.block_time or 0,
            block_height=block_src.block_height or 0,
            blockhash=block_src.blockhash,
            previous_blockhash=block_src.parent_blockhash,
            created_at=now,
            updated_at=now,
        )
    )

    for tx_index, tx in enumerate(filter_votes(block_src.transactions)):
        _decompose_transaction(result, tx, tx_index, now)

    for i, reward in enumerate(block_src.rewards):
        result.rewards.append(_reward_row(block_src.slot, i, reward, now))

    result.block.transaction_count = len(result.transactions)
    result.block.successful = True
    return result
