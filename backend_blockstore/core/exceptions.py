"""
Application-level exceptions.

Decomposition raises MalformedInput for structurally unusable block updates;
the codec raises EncodingError/InvalidEncoding; persistence raises StorageError
(DuplicateSlotError when a slot is re-persisted under the reject policy).
"""

from __future__ import annotations


class BlockstoreError(Exception):
    """Base class for all backend_blockstore errors."""


class MalformedInput(BlockstoreError):
    """A structurally required field is absent; the whole block is unusable."""

    def __init__(self, message: str, *, slot: int | None = None) -> None:
        super().__init__(message)
        self.slot = slot


class EncodingError(BlockstoreError):
    """A byte field cannot be rendered to (or parsed from) text."""


class InvalidEncoding(EncodingError):
    """Text contains characters outside the base-58 alphabet."""


class StorageError(BlockstoreError):
    """
    Failure while writing a block. The transaction has been rolled back.

    stage names the step that failed (begin, duplicate_check, insert_block,
    insert_<category>, commit); the driver exception is chained as __cause__.
    """

    def __init__(self, message: str, *, slot: int | None = None, stage: str | None = None) -> None:
        super().__init__(message)
        self.slot = slot
        self.stage = stage


class DuplicateSlotError(StorageError):
    """A block row for the slot already exists and the policy is reject."""
