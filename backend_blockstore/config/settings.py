"""
Application settings.

Responsibilities:
- Collect configuration from environment variables (and .env) into one
  immutable Settings object.
- Validate category names and the duplicate-slot policy at load time.
- Settings are passed explicitly to the pipeline and database factory; there
  is no module-level mutable endpoint or credential state.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_blockstore.config import env
from backend_blockstore.database.database import CATEGORY_NAMES, DUPLICATE_POLICIES


@dataclass(frozen=True)
class Settings:
    database_url: str
    enabled_categories: tuple[str, ...] = CATEGORY_NAMES
    on_duplicate: str = DUPLICATE_POLICIES[0]
    max_rows_per_statement: int | None = None


def get_settings() -> Settings:
    """Build Settings from the current environment. Raises ValueError on invalid values."""
    return Settings(
        database_url=env.get_database_url(),
        enabled_categories=env.get_enabled_categories(CATEGORY_NAMES),
        on_duplicate=env.get_on_duplicate(DUPLICATE_POLICIES),
        max_rows_per_statement=env.get_max_rows_per_statement(),
    )
