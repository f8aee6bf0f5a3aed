"""Row-level comparison of two tables matched by primary key.

Both row sets are fetched by the caller (ordered by primary key, capped at a
row ceiling) and handed in as plain sequences. Rows are aligned on their
primary-key values; the result keeps source order, followed by target-only
rows in target order, so UI filtering stays stable.

The engine requires a non-empty primary key. Callers check this first with
:func:`primary_key_indices` and show a dedicated "no primary key" state
instead of calling the engine.
"""

from __future__ import annotations

from typing import Any, Sequence

from dbcompare.core.cells import cell_to_string, cells_equal, row_key
from dbcompare.core.config import DEFAULT_DATA_DIFF_ROW_LIMIT
from dbcompare.core.diff_models import DataDiffResult, RowDiff, RowStatus, RowSummary
from dbcompare.core.models import ColumnInfo

_MISSING = object()


def primary_key_indices(columns: Sequence[ColumnInfo], column_names: Sequence[str]) -> list[int]:
    """
    Return positions (within `column_names`) of the primary-key columns.

    An empty list means the table has no usable primary key for a data diff.
    """
    position = {name: i for i, name in enumerate(column_names)}
    return [position[c.name] for c in columns if c.is_primary_key and c.name in position]


def _key_values(row: Sequence[Any], key_indices: Sequence[int]) -> tuple[str, ...]:
    return tuple(cell_to_string(row[i] if i < len(row) else None) for i in key_indices)


def changed_column_indices(source_row: Sequence[Any], target_row: Sequence[Any]) -> list[int]:
    """Indices whose cells differ; a column present on one side only differs."""
    changed: list[int] = []
    for i in range(max(len(source_row), len(target_row))):
        a = source_row[i] if i < len(source_row) else _MISSING
        b = target_row[i] if i < len(target_row) else _MISSING
        if a is _MISSING or b is _MISSING or not cells_equal(a, b):
            changed.append(i)
    return changed


def compute_data_diff(
    source_rows: Sequence[Sequence[Any]],
    target_rows: Sequence[Sequence[Any]],
    key_indices: Sequence[int],
    column_names: Sequence[str],
    *,
    row_limit: int = DEFAULT_DATA_DIFF_ROW_LIMIT,
) -> DataDiffResult:
    """
    Compare two row sets by primary-key value.

    Args:
        source_rows: Reference rows, in primary-key order.
        target_rows: Compared rows, in primary-key order.
        key_indices: Positions of the primary-key columns (must be non-empty).
        column_names: Column names shared by both row sets.
        row_limit: Ceiling applied to each side; extra rows are ignored.

    Returns:
        One RowDiff per key in the union of both sides plus status counts.

    Raises:
        ValueError: If `key_indices` is empty or `row_limit` is not positive.
    """
    if not key_indices:
        raise ValueError("Data diff needs at least one primary-key column.")
    if row_limit < 1:
        raise ValueError("row_limit must be >= 1")

    truncated = len(source_rows) > row_limit or len(target_rows) > row_limit
    source_rows = source_rows[:row_limit]
    target_rows = target_rows[:row_limit]

    target_by_key: dict[tuple[str, ...], Sequence[Any]] = {}
    for row in target_rows:
        target_by_key.setdefault(row_key(row, key_indices), row)

    # first occurrence of a key wins on each side
    seen: set[tuple[str, ...]] = set()
    rows: list[RowDiff] = []

    for src in source_rows:
        key = row_key(src, key_indices)
        if key in seen:
            continue
        seen.add(key)
        key_values = _key_values(src, key_indices)
        tgt = target_by_key.get(key)
        if tgt is None:
            rows.append(RowDiff(RowStatus.REMOVED, key_values, source_row=tuple(src)))
            continue
        changed = changed_column_indices(src, tgt)
        rows.append(
            RowDiff(
                RowStatus.CHANGED if changed else RowStatus.IDENTICAL,
                key_values,
                source_row=tuple(src),
                target_row=tuple(tgt),
                changed_columns=tuple(changed),
            )
        )

    for tgt in target_rows:
        key = row_key(tgt, key_indices)
        if key in seen:
            continue
        seen.add(key)
        rows.append(RowDiff(RowStatus.ADDED, _key_values(tgt, key_indices), target_row=tuple(tgt)))

    return DataDiffResult(
        key_columns=[column_names[i] for i in key_indices if i < len(column_names)],
        columns=list(column_names),
        rows=rows,
        summary=RowSummary.of([r.status for r in rows]),
        truncated=truncated,
    )
