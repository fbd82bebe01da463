"""
Database engine management.

Responsibilities:
- Create and cache the SQLAlchemy engine for the configured database URL
  (SQLite, MySQL/SingleStore via PyMySQL, PostgreSQL).
- Provide reset_engine_for_test() so tests get a fresh engine per temp DB.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from backend_blockstore.blockstore_logging import get_logger

logger = get_logger(__name__)

_engines: dict[str, Engine] = {}


def _redact(url: str) -> str:
    """Drop credentials and query string for logging."""
    return url.split("?")[0].split("@")[-1].split("//")[-1]


def create_blockstore_engine(url: str) -> Engine:
    """Create a new engine (not cached)."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True)
    logger.info("blockstore_engine", url=_redact(url), dialect=engine.dialect.name)
    return engine


def get_engine(url: str | None = None) -> Engine:
    """Create or return the cached engine for url (default: settings.database_url)."""
    if url is None:
        from backend_blockstore.config import get_settings

        url = get_settings().database_url
    engine = _engines.get(url)
    if engine is None:
        engine = create_blockstore_engine(url)
        _engines[url] = engine
    return engine


def reset_engine_for_test() -> None:
    """Dispose and forget cached engines."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
