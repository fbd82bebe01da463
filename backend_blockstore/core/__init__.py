"""
Core utilities — shared exceptions and cross-cutting concerns.

Used across the decomposer, persistence coordinator, pipeline, and tools.
"""

from backend_blockstore.core.exceptions import (
    BlockstoreError,
    DuplicateSlotError,
    EncodingError,
    InvalidEncoding,
    MalformedInput,
    StorageError,
)

__all__ = [
    "BlockstoreError",
    "DuplicateSlotError",
    "EncodingError",
    "InvalidEncoding",
    "MalformedInput",
    "StorageError",
]
