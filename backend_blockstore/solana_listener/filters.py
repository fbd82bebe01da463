"""Vote-transaction filter applied before transaction indices are assigned."""

from __future__ import annotations

from typing import Iterable

from backend_blockstore.solana_listener.models import SourceTransaction


def is_vote(tx: SourceTransaction) -> bool:
    """True if the upstream source flagged tx as a consensus vote."""
    return bool(tx.is_vote)


def filter_votes(transactions: Iterable[SourceTransaction]) -> list[SourceTransaction]:
    """Drop vote transactions, keeping source order of the rest."""
    return [tx for tx in transactions if not is_vote(tx)]
