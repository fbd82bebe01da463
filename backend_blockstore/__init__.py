"""
Backend BlockStore — Solana block-update decomposition and atomic persistence.

Decomposes one streamed block update into block, transaction, instruction,
account, token-balance, signature, log, and reward rows, then writes them
to the destination tables in a single all-or-nothing transaction.
"""

__version__ = "0.1.0"
