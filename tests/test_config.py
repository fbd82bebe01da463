"""
Tests for environment configuration (config.env, config.settings).
"""

from __future__ import annotations

import pytest

from backend_blockstore.config import env
from backend_blockstore.config.settings import get_settings
from backend_blockstore.database.database import CATEGORY_NAMES, DUPLICATE_POLICIES


def test_database_url_defaults_to_sqlite_path(monkeypatch, tmp_path):
    monkeypatch.setenv("BLOCKSTORE_DB_PATH", str(tmp_path / "x.db"))
    assert env.get_database_url() == f"sqlite:///{tmp_path / 'x.db'}"


def test_database_url_priority(monkeypatch):
    monkeypatch.setenv("SINGLESTORE_URL", "admin:pw@host:3306/")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@pg/db")
    assert env.get_database_url() == "postgresql://u:p@pg/db"
    monkeypatch.setenv("BLOCKSTORE_DB_URL", "sqlite:///override.db")
    assert env.get_database_url() == "sqlite:///override.db"


def test_singlestore_url_converted(monkeypatch):
    monkeypatch.setenv("SINGLESTORE_URL", "admin:pw@host:3306/")
    assert env.get_database_url() == "mysql+pymysql://admin:pw@host:3306/db"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("admin:pw@host:3306/chain", "mysql+pymysql://admin:pw@host:3306/chain"),
        ("mysql://admin:pw@host:3306/", "mysql+pymysql://admin:pw@host:3306/db"),
        ("admin:pw@host:3306", "mysql+pymysql://admin:pw@host:3306/db"),
        ("mysql+pymysql://a:b@h/x", "mysql+pymysql://a:b@h/x"),
    ],
)
def test_singlestore_to_sqlalchemy(raw, expected):
    assert env._singlestore_to_sqlalchemy(raw) == expected


def test_enabled_categories(monkeypatch):
    assert env.get_enabled_categories(CATEGORY_NAMES) == CATEGORY_NAMES
    monkeypatch.setenv("BLOCKSTORE_CATEGORIES", "all")
    assert env.get_enabled_categories(CATEGORY_NAMES) == CATEGORY_NAMES
    monkeypatch.setenv("BLOCKSTORE_CATEGORIES", " Logs, transactions,logs ")
    assert env.get_enabled_categories(CATEGORY_NAMES) == ("logs", "transactions")


def test_enabled_categories_unknown(monkeypatch):
    monkeypatch.setenv("BLOCKSTORE_CATEGORIES", "transactions,votes")
    with pytest.raises(ValueError, match="votes"):
        env.get_enabled_categories(CATEGORY_NAMES)


def test_on_duplicate(monkeypatch):
    assert env.get_on_duplicate(DUPLICATE_POLICIES) == "reject"
    monkeypatch.setenv("BLOCKSTORE_ON_DUPLICATE", "REPLACE")
    assert env.get_on_duplicate(DUPLICATE_POLICIES) == "replace"
    monkeypatch.setenv("BLOCKSTORE_ON_DUPLICATE", "skip")
    with pytest.raises(ValueError, match="BLOCKSTORE_ON_DUPLICATE"):
        env.get_on_duplicate(DUPLICATE_POLICIES)


@pytest.mark.parametrize("raw,expected", [("", None), ("0", None), ("500", 500)])
def test_max_rows_per_statement(monkeypatch, raw, expected):
    monkeypatch.setenv("BLOCKSTORE_MAX_ROWS_PER_STATEMENT", raw)
    assert env.get_max_rows_per_statement() == expected


@pytest.mark.parametrize("raw", ["abc", "-1"])
def test_max_rows_per_statement_invalid(monkeypatch, raw):
    monkeypatch.setenv("BLOCKSTORE_MAX_ROWS_PER_STATEMENT", raw)
    with pytest.raises(ValueError, match="BLOCKSTORE_MAX_ROWS_PER_STATEMENT"):
        env.get_max_rows_per_statement()


def test_get_settings(monkeypatch):
    monkeypatch.setenv("BLOCKSTORE_DB_URL", "sqlite:///settings.db")
    monkeypatch.setenv("BLOCKSTORE_CATEGORIES", "transactions")
    monkeypatch.setenv("BLOCKSTORE_ON_DUPLICATE", "replace")
    monkeypatch.setenv("BLOCKSTORE_MAX_ROWS_PER_STATEMENT", "100")
    settings = get_settings()
    assert settings.database_url == "sqlite:///settings.db"
    assert settings.enabled_categories == ("transactions",)
    assert settings.on_duplicate == "replace"
    assert settings.max_rows_per_statement == 100


def test_get_settings_defaults():
    settings = get_settings()
    assert settings.database_url.startswith("sqlite:///")
    assert settings.enabled_categories == CATEGORY_NAMES
    assert settings.on_duplicate == "reject"
    assert settings.max_rows_per_statement is None
