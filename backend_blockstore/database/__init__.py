"""
Database layer — per-block aggregate models, destination schema, batch insert
projector, and the atomic persistence coordinator.
"""

from backend_blockstore.database.database import (
    CATEGORIES,
    CATEGORY_NAMES,
    DUPLICATE_POLICIES,
    BlockDatabase,
    Category,
    get_block_database,
    persist,
)
from backend_blockstore.database.models import ParsedBlock

__all__ = [
    "CATEGORIES",
    "CATEGORY_NAMES",
    "DUPLICATE_POLICIES",
    "BlockDatabase",
    "Category",
    "ParsedBlock",
    "get_block_database",
    "persist",
]
