"""
Solana block-update decomposition package.

Consumes already-decoded block updates from a streaming source, drops vote
transactions, and decomposes each block into flat, keyed row collections.
"""

from backend_blockstore.solana_listener.filters import filter_votes, is_vote
from backend_blockstore.solana_listener.models import SourceBlock, SourceTransaction
from backend_blockstore.solana_listener.parser import decompose

__all__ = [
    "SourceBlock",
    "SourceTransaction",
    "decompose",
    "filter_votes",
    "is_vote",
]
