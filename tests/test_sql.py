"""
Tests for the batch insert projector (database.sql).
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from backend_blockstore.database.sql import build_insert, chunked, flatten_rows, placeholder_for


@dataclass
class _Row:
    a: int
    b: bytes


def test_build_insert_multi_row():
    assert build_insert("t", ["a", "b"], 2) == "INSERT INTO t (a, b) VALUES (?,?),(?,?)"


def test_build_insert_single_row_format_placeholder():
    sql = build_insert("transactions", ["slot", "transaction_index", "fee"], 1, "%s")
    assert sql == "INSERT INTO transactions (slot, transaction_index, fee) VALUES (%s,%s,%s)"


def test_build_insert_rejects_empty_batches():
    with pytest.raises(ValueError, match="row_count"):
        build_insert("t", ["a"], 0)
    with pytest.raises(ValueError, match="columns"):
        build_insert("t", [], 1)


def test_flatten_rows_in_column_order():
    rows = [_Row(1, b"x"), _Row(2, b"y")]
    assert flatten_rows(rows, ["b", "a"]) == [b"x", 1, b"y", 2]


def test_flatten_rows_applies_encoders():
    rows = [_Row(1, b"x"), _Row(2, b"y")]
    values = flatten_rows(rows, ["a", "b"], {"b": lambda v: v.decode().upper()})
    assert values == [1, "X", 2, "Y"]


def test_parameter_count_matches_placeholders():
    rows = [_Row(i, b"") for i in range(5)]
    sql = build_insert("t", ["a", "b"], len(rows))
    assert sql.count("?") == len(flatten_rows(rows, ["a", "b"]))


def test_chunked():
    rows = list(range(5))
    assert list(chunked(rows, None)) == [rows]
    assert list(chunked(rows, 0)) == [rows]
    assert list(chunked(rows, 10)) == [rows]
    assert list(chunked(rows, 2)) == [[0, 1], [2, 3], [4]]


def test_placeholder_for_paramstyles():
    assert placeholder_for("qmark") == "?"
    assert placeholder_for("format") == "%s"
    assert placeholder_for("pyformat") == "%s"
    with pytest.raises(ValueError, match="paramstyle"):
        placeholder_for("named")


def test_chunked_rejects_negative_size():
    with pytest.raises(ValueError, match="chunk size"):
        list(chunked([1, 2, 3], -1))
