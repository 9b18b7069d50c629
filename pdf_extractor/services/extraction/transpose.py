"""Columnar dataset <-> row records, shared by the table payload and spreadsheet export."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

from .schemas import SENTINEL, ColumnarDataset, RowRecord


def row_count(dataset: Mapping[str, Sequence[str]]) -> int:
    """Number of rows, taken from the first column."""
    if not dataset:
        return 0
    return len(next(iter(dataset.values())))


def to_rows(dataset: Mapping[str, Sequence[str]]) -> List[RowRecord]:
    """Row i holds the i-th cell of every column, in dataset key order."""
    keys = list(dataset.keys())
    num_rows = row_count(dataset)
    rows: List[RowRecord] = []
    for i in range(num_rows):
        row: RowRecord = {}
        for key in keys:
            column = dataset[key]
            row[key] = column[i] if i < len(column) else SENTINEL
        rows.append(row)
    return rows


def to_columns(rows: Iterable[Mapping[str, str]]) -> ColumnarDataset:
    """Inverse of to_rows. Keys appear in first-seen order."""
    rows = list(rows)
    keys: List[str] = []
    for row in rows:
        for key in row:
            if key not in keys:
                keys.append(key)
    return {key: [row.get(key, SENTINEL) for row in rows] for key in keys}


def column_widths(rows: Sequence[Mapping[str, str]], keys: Optional[Sequence[str]] = None) -> List[int]:
    """Width per column: longest of the header and every cell rendered as text."""
    if keys is None:
        keys = list(rows[0].keys()) if rows else []
    return [
        max([len(key)] + [len(str(row.get(key, ""))) for row in rows])
        for key in keys
    ]
