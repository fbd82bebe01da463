"""
Data models for decoded block updates (streaming source input).

Responsibilities:
- Define dataclasses mirroring a Yellowstone-style SubscribeUpdateBlock
  (block header, transactions, message, meta, token balances, rewards).
- Build them from decoded dicts (protobuf MessageToDict with proto field names),
  tolerating absent optional fields, 64-bit integers sent as strings, and byte
  fields sent as bytes, int lists, or base64 strings.
- Fixed-size keys (account keys, blockhashes: 32 bytes; signatures: 64 bytes)
  given as text may be base64 or base-58; whichever decodes to the expected
  size is used, and text that fits neither becomes b"".
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from typing import Any

from backend_blockstore.blockstore_logging import get_logger
from backend_blockstore.core.exceptions import EncodingError, MalformedInput
from backend_blockstore.utils import codec

logger = get_logger(__name__)

KEY_SIZE = 32
SIGNATURE_SIZE = 64


def _as_int(value: Any, default: int = 0) -> int:
    """Coerce an integer-ish value (int or numeric string); malformed -> default."""
    if value is None:
        return default
    if isinstance(value, bool):
        return int(value)
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.debug("source_int_malformed", value=repr(value)[:64])
        return default


def _as_float(value: Any, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("source_float_malformed", value=repr(value)[:64])
        return default


def _as_bytes(value: Any) -> bytes:
    """Raw bytes from bytes, an int list, or base64 text (MessageToDict); malformed -> b""."""
    if value is None:
        return b""
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, list):
        try:
            return bytes(value)
        except (TypeError, ValueError):
            logger.debug("source_bytes_malformed", kind="list")
            return b""
    if isinstance(value, str):
        try:
            return base64.b64decode(value, validate=True)
        except (binascii.Error, ValueError):
            logger.debug("source_bytes_malformed", kind="str", value=value[:64])
            return b""
    logger.debug("source_bytes_malformed", kind=type(value).__name__)
    return b""


def _as_key_bytes(value: Any, size: int) -> bytes:
    """
    Fixed-size key or signature. Text is tried as base64, then base-58; only a
    decoding of exactly size bytes is accepted, otherwise b"" (logged).
    """
    if not isinstance(value, str):
        return _as_bytes(value)
    if not value:
        return b""
    try:
        raw = base64.b64decode(value, validate=True)
        if len(raw) == size:
            return raw
    except (binascii.Error, ValueError):
        pass
    try:
        raw = codec.decode(value)
        if len(raw) == size:
            return raw
    except EncodingError:
        pass
    logger.debug("source_key_malformed", expected_size=size, value=value[:96])
    return b""


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _optional_nested_int(raw: dict[str, Any], key: str, inner: str) -> int | None:
    """Read wrapped optionals such as block_time.timestamp; plain ints are accepted too."""
    value = raw.get(key)
    if value is None:
        return None
    if isinstance(value, dict):
        if value.get(inner) is None:
            return None
        return _as_int(value.get(inner))
    return _as_int(value)


@dataclass(frozen=True)
class SourceHeader:
    """Message header: positional counts that partition account_keys."""

    num_required_signatures: int = 0
    num_readonly_signed_accounts: int = 0
    num_readonly_unsigned_accounts: int = 0

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceHeader":
        return cls(
            num_required_signatures=_as_int(raw.get("num_required_signatures")),
            num_readonly_signed_accounts=_as_int(raw.get("num_readonly_signed_accounts")),
            num_readonly_unsigned_accounts=_as_int(raw.get("num_readonly_unsigned_accounts")),
        )


@dataclass(frozen=True)
class SourceInstruction:
    """Compiled instruction; program_id_index points into message.account_keys."""

    program_id_index: int
    data: bytes = b""
    stack_height: int | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceInstruction":
        stack_height = raw.get("stack_height")
        return cls(
            program_id_index=_as_int(raw.get("program_id_index")),
            data=_as_bytes(raw.get("data")),
            stack_height=_as_int(stack_height) if stack_height is not None else None,
        )


@dataclass(frozen=True)
class SourceInnerInstructions:
    """Inner (CPI) instructions emitted by the outer instruction at `index`."""

    index: int
    instructions: list[SourceInstruction] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceInnerInstructions":
        return cls(
            index=_as_int(raw.get("index")),
            instructions=[
                SourceInstruction.from_dict(ix)
                for ix in _as_list(raw.get("instructions"))
                if isinstance(ix, dict)
            ],
        )


@dataclass(frozen=True)
class SourceMessage:
    header: SourceHeader | None
    account_keys: list[bytes] = field(default_factory=list)
    recent_blockhash: bytes = b""
    instructions: list[SourceInstruction] = field(default_factory=list)
    versioned: bool = False

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceMessage":
        header = raw.get("header")
        return cls(
            header=SourceHeader.from_dict(header) if isinstance(header, dict) else None,
            account_keys=[_as_key_bytes(k, KEY_SIZE) for k in _as_list(raw.get("account_keys"))],
            recent_blockhash=_as_key_bytes(raw.get("recent_blockhash"), KEY_SIZE),
            instructions=[
                SourceInstruction.from_dict(ix)
                for ix in _as_list(raw.get("instructions"))
                if isinstance(ix, dict)
            ],
            versioned=bool(raw.get("versioned", False)),
        )


@dataclass(frozen=True)
class UiTokenAmount:
    ui_amount: float = 0.0
    decimals: int = 0
    amount: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "UiTokenAmount":
        return cls(
            ui_amount=_as_float(raw.get("ui_amount")),
            decimals=_as_int(raw.get("decimals")),
            amount=str(raw.get("amount") or ""),
        )


@dataclass(frozen=True)
class SourceTokenBalance:
    """Token account balance snapshot (pre or post) keyed by account_index."""

    account_index: int
    mint: str = ""
    owner: str = ""
    ui_token_amount: UiTokenAmount = field(default_factory=UiTokenAmount)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceTokenBalance":
        return cls(
            account_index=_as_int(raw.get("account_index")),
            mint=str(raw.get("mint") or ""),
            owner=str(raw.get("owner") or ""),
            ui_token_amount=UiTokenAmount.from_dict(_as_dict(raw.get("ui_token_amount"))),
        )


@dataclass(frozen=True)
class SourceMeta:
    """Transaction status metadata. err is None on success."""

    err: Any = None
    fee: int = 0
    pre_balances: list[int] = field(default_factory=list)
    post_balances: list[int] = field(default_factory=list)
    inner_instructions: list[SourceInnerInstructions] = field(default_factory=list)
    log_messages: list[str] = field(default_factory=list)
    pre_token_balances: list[SourceTokenBalance] = field(default_factory=list)
    post_token_balances: list[SourceTokenBalance] = field(default_factory=list)
    compute_units_consumed: int | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceMeta":
        err = raw.get("err")
        # Yellowstone wraps the bincode error as TransactionError{err: bytes}
        if isinstance(err, dict) and set(err) == {"err"}:
            err = _as_bytes(err["err"])
        cu = raw.get("compute_units_consumed")
        return cls(
            err=err,
            fee=_as_int(raw.get("fee")),
            pre_balances=[_as_int(b) for b in _as_list(raw.get("pre_balances"))],
            post_balances=[_as_int(b) for b in _as_list(raw.get("post_balances"))],
            inner_instructions=[
                SourceInnerInstructions.from_dict(ii)
                for ii in _as_list(raw.get("inner_instructions"))
                if isinstance(ii, dict)
            ],
            log_messages=[str(m) for m in _as_list(raw.get("log_messages"))],
            pre_token_balances=[
                SourceTokenBalance.from_dict(b)
                for b in _as_list(raw.get("pre_token_balances"))
                if isinstance(b, dict)
            ],
            post_token_balances=[
                SourceTokenBalance.from_dict(b)
                for b in _as_list(raw.get("post_token_balances"))
                if isinstance(b, dict)
            ],
            compute_units_consumed=_as_int(cu) if cu is not None else None,
        )


@dataclass(frozen=True)
class SourceTransaction:
    """One transaction of a block update; is_vote is set by the upstream source."""

    is_vote: bool = False
    signature: bytes = b""
    signatures: list[bytes] = field(default_factory=list)
    message: SourceMessage | None = None
    meta: SourceMeta | None = None

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceTransaction":
        tx = _as_dict(raw.get("transaction"))
        message = tx.get("message")
        meta = raw.get("meta")
        return cls(
            is_vote=bool(raw.get("is_vote", False)),
            signature=_as_key_bytes(raw.get("signature"), SIGNATURE_SIZE),
            signatures=[_as_key_bytes(s, SIGNATURE_SIZE) for s in _as_list(tx.get("signatures"))],
            message=SourceMessage.from_dict(message) if isinstance(message, dict) else None,
            meta=SourceMeta.from_dict(meta) if isinstance(meta, dict) else None,
        )


@dataclass(frozen=True)
class SourceReward:
    pubkey: str = ""
    lamports: int = 0
    post_balance: int = 0
    reward_type: str = ""
    commission: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceReward":
        reward_type = raw.get("reward_type")
        return cls(
            pubkey=str(raw.get("pubkey") or ""),
            lamports=_as_int(raw.get("lamports")),
            post_balance=_as_int(raw.get("post_balance")),
            reward_type="" if reward_type is None else str(reward_type),
            commission=str(raw.get("commission") or ""),
        )


@dataclass(frozen=True)
class SourceBlock:
    """
    One decoded block update.

    block_time and block_height are optional upstream; None when absent.
    blockhash / parent_blockhash are already base-58 text in the source.
    """

    slot: int
    parent_slot: int = 0
    blockhash: str = ""
    parent_blockhash: str = ""
    block_time: int | None = None
    block_height: int | None = None
    transactions: list[SourceTransaction] = field(default_factory=list)
    rewards: list[SourceReward] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "SourceBlock":
        """Build from a decoded block-update dict. Raises MalformedInput without a usable slot."""
        if not isinstance(raw, dict):
            raise MalformedInput(f"block update must be a mapping, got {type(raw).__name__}")
        if raw.get("slot") is None:
            raise MalformedInput("block update has no slot")
        try:
            slot = int(raw["slot"])
        except (TypeError, ValueError) as e:
            raise MalformedInput(f"block update slot is not an integer: {raw['slot']!r}") from e

        rewards_raw = raw.get("rewards")
        # SubscribeUpdateBlock nests rewards as {"rewards": [...], "num_partitions": ...}
        if isinstance(rewards_raw, dict):
            rewards_raw = rewards_raw.get("rewards")

        return cls(
            slot=slot,
            parent_slot=_as_int(raw.get("parent_slot")),
            blockhash=str(raw.get("blockhash") or ""),
            parent_blockhash=str(raw.get("parent_blockhash") or ""),
            block_time=_optional_nested_int(raw, "block_time", "timestamp"),
            block_height=_optional_nested_int(raw, "block_height", "block_height"),
            transactions=[
                SourceTransaction.from_dict(tx)
                for tx in _as_list(raw.get("transactions"))
                if isinstance(tx, dict)
            ],
            rewards=[
                SourceReward.from_dict(r)
                for r in _as_list(rewards_raw)
                if isinstance(r, dict)
            ],
        )
