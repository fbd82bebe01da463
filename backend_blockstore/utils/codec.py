"""Base-58 codec for account keys, signatures, hashes, and instruction data."""

from __future__ import annotations

import base58

from backend_blockstore.blockstore_logging import get_logger
from backend_blockstore.core.exceptions import EncodingError, InvalidEncoding

logger = get_logger(__name__)

ALPHABET = base58.BITCOIN_ALPHABET.decode("ascii")
_ALPHABET_SET = frozenset(ALPHABET)


def encode(data: bytes) -> str:
    """Encode raw bytes to base-58 text. Leading zero bytes become leading '1's."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise EncodingError(f"expected bytes, got {type(data).__name__}")
    return base58.b58encode(bytes(data)).decode("ascii")


def decode(text: str) -> bytes:
    """Decode base-58 text to bytes. Raises InvalidEncoding on characters outside the alphabet."""
    if not isinstance(text, str):
        raise InvalidEncoding(f"expected str, got {type(text).__name__}")
    bad = sorted({ch for ch in text if ch not in _ALPHABET_SET})
    if bad:
        raise InvalidEncoding(f"invalid base-58 character(s): {''.join(bad)!r}")
    try:
        return base58.b58decode(text)
    except ValueError as e:
        raise InvalidEncoding(str(e)) from e


def encode_or_empty(data: bytes | None, *, field: str = "") -> str:
    """Tolerant encode for row building: None -> "", unencodable -> "" (logged)."""
    if data is None:
        return ""
    try:
        return encode(data)
    except EncodingError as e:
        logger.debug("field_encoding_failed", field=field, error=str(e))
        return ""

