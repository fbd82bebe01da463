"""
Batch SQL projector — multi-row parameterized INSERT statements.

build_insert() and flatten_rows() must be called with the same column list:
the statement's placeholder order and the flattened parameter order are paired
by position and not validated against each other.
"""

from __future__ import annotations

from typing import Any, Callable, Iterator, Mapping, Sequence

Encoder = Callable[[Any], Any]

PARAMSTYLE_PLACEHOLDERS = {
    "qmark": "?",
    "format": "%s",
    "pyformat": "%s",
}


def placeholder_for(paramstyle: str) -> str:
    """Positional placeholder for a DBAPI paramstyle (qmark -> ?, format/pyformat -> %s)."""
    try:
        return PARAMSTYLE_PLACEHOLDERS[paramstyle]
    except KeyError:
        raise ValueError(f"unsupported DBAPI paramstyle for positional inserts: {paramstyle!r}") from None


def build_insert(
    table: str,
    columns: Sequence[str],
    row_count: int,
    placeholder: str = "?",
) -> str:
    """
    INSERT INTO table (c1, c2) VALUES (?,?),(?,?) with row_count value groups.

    Raises ValueError for row_count < 1 or no columns; callers skip empty batches.
    """
    if row_count < 1:
        raise ValueError(f"row_count must be >= 1, got {row_count}")
    if not columns:
        raise ValueError("columns must be non-empty")
    group = "(" + ",".join([placeholder] * len(columns)) + ")"
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) VALUES "
        + ",".join([group] * row_count)
    )


def flatten_rows(
    rows: Sequence[Any],
    columns: Sequence[str],
    encoders: Mapping[str, Encoder] | None = None,
) -> list[Any]:
    """
    Positional parameters for build_insert(): each row's attributes in column order.

    encoders maps a column name to a converter applied to that column's value.
    """
    encoders = encoders or {}
    values: list[Any] = []
    for row in rows:
        for column in columns:
            value = getattr(row, column)
            encoder = encoders.get(column)
            values.append(encoder(value) if encoder is not None else value)
    return values


def chunked(rows: Sequence[Any], size: int | None) -> Iterator[Sequence[Any]]:
    """Split rows into slices of at most size; size None/0 yields rows whole. Raises ValueError for size < 0."""
    if size is not None and size < 0:
        raise ValueError(f"chunk size must be >= 0 or None, got {size}")
    if not size or size >= len(rows):
        yield rows
        return
    for start in range(0, len(rows), size):
        yield rows[start:start + size]
