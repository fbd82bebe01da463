"""Shared helpers (base-58 codec)."""
