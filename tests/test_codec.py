"""
Tests for the base-58 codec (utils.codec).
"""

from __future__ import annotations

import pytest

from backend_blockstore.core.exceptions import EncodingError, InvalidEncoding
from backend_blockstore.utils.codec import decode, encode, encode_or_empty


def test_encode_known_vectors():
    assert encode(b"hello world") == "StV1DL6CwTryKyV"
    assert encode(b"") == ""
    # Leading zero bytes map to leading '1's
    assert encode(b"\x00\x00\x01") == "112"
    assert encode(bytes(32)) == "1" * 32


def test_decode_known_vectors():
    assert decode("StV1DL6CwTryKyV") == b"hello world"
    assert decode("112") == b"\x00\x00\x01"


def test_decode_system_program_is_32_zero_bytes():
    assert decode("11111111111111111111111111111111") == bytes(32)


@pytest.mark.parametrize("text", ["0", "O", "I", "l", "abc0", "with space"])
def test_decode_rejects_characters_outside_alphabet(text):
    with pytest.raises(InvalidEncoding, match="invalid base-58"):
        decode(text)


def test_invalid_encoding_is_an_encoding_error():
    with pytest.raises(EncodingError):
        decode("0OIl")


def test_encode_rejects_non_bytes():
    with pytest.raises(EncodingError, match="expected bytes"):
        encode("not bytes")  # type: ignore[arg-type]


def test_encode_accepts_bytearray():
    assert encode(bytearray(b"hello world")) == "StV1DL6CwTryKyV"


def test_encode_or_empty_tolerates_missing_and_bad_input():
    assert encode_or_empty(None) == ""
    assert encode_or_empty("text", field="data") == ""  # type: ignore[arg-type]
    assert encode_or_empty(b"\x00\x00\x01") == "112"


@pytest.mark.parametrize(
    "text",
    [
        "112",
        "11111111111111111111111111111111",
        "ComputeBudget111111111111111111111111111111",
        "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka",
    ],
)
def test_encode_inverts_decode_for_valid_text(text):
    assert encode(decode(text)) == text
