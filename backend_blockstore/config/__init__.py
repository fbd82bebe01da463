"""
Configuration management for Backend BlockStore.

Loads settings from environment variables and an optional project-root .env.
Exposes a single immutable Settings object for the pipeline and tools.
"""

from backend_blockstore.config.settings import Settings, get_settings  # noqa: F401

__all__ = ["Settings", "get_settings"]
