"""Comparison of two arbitrary query results.

Unlike the data diff, nothing guarantees a key here. When the caller picks
key columns, rows are matched on those values the same way the data diff
matches primary keys. Without key columns, row ``i`` of the source is
compared with row ``i`` of the target. Positional matching reports a
reordered but otherwise identical result as changed rows; the result flags
``positional`` so the UI can say so.
"""

from __future__ import annotations

from typing import Any, Sequence

from dbcompare.core.cells import cells_equal, row_key
from dbcompare.core.diff_models import CompareRow, ResultCompareResult, RowStatus, RowSummary
from dbcompare.core.models import QueryResult


def _changed(
    source_row: Sequence[Any],
    target_row: Sequence[Any],
    width: int,
    skip: frozenset[int],
) -> frozenset[int]:
    changed = set()
    for c in range(width):
        if c in skip:
            continue
        a = source_row[c] if c < len(source_row) else None
        b = target_row[c] if c < len(target_row) else None
        if not cells_equal(a, b):
            changed.add(c)
    return frozenset(changed)


def _pair(source_row, target_row, width: int, skip: frozenset[int]) -> CompareRow:
    changed = _changed(source_row, target_row, width, skip)
    return CompareRow(
        RowStatus.CHANGED if changed else RowStatus.IDENTICAL,
        source_row=tuple(source_row),
        target_row=tuple(target_row),
        changed_columns=changed,
    )


def compare_results(
    source: QueryResult,
    target: QueryResult,
    key_columns: Sequence[int] = (),
) -> ResultCompareResult:
    """
    Compare two result sets.

    Args:
        source: Reference result.
        target: Compared result.
        key_columns: Column positions used to match rows. Empty means rows
            are matched by position.

    Returns:
        One CompareRow per matched key or position and status counts.
        Cells are compared by position up to the shorter column list.
    """
    width = min(len(source.columns), len(target.columns))
    rows: list[CompareRow] = []

    if key_columns:
        bad = [i for i in key_columns if i < 0 or i >= width]
        if bad:
            raise ValueError(f"Key column index out of range: {bad}")
        skip = frozenset(key_columns)

        target_by_key: dict[tuple[str, ...], Sequence[Any]] = {}
        for row in target.rows:
            target_by_key[row_key(row, key_columns)] = row

        matched: set[tuple[str, ...]] = set()
        for src in source.rows:
            key = row_key(src, key_columns)
            tgt = target_by_key.get(key)
            if tgt is None:
                rows.append(CompareRow(RowStatus.REMOVED, source_row=tuple(src)))
                continue
            matched.add(key)
            rows.append(_pair(src, tgt, width, skip))

        for tgt in target.rows:
            if row_key(tgt, key_columns) not in matched:
                rows.append(CompareRow(RowStatus.ADDED, target_row=tuple(tgt)))
    else:
        for r in range(max(len(source.rows), len(target.rows))):
            src = source.rows[r] if r < len(source.rows) else None
            tgt = target.rows[r] if r < len(target.rows) else None
            if src is None:
                rows.append(CompareRow(RowStatus.ADDED, target_row=tuple(tgt)))
            elif tgt is None:
                rows.append(CompareRow(RowStatus.REMOVED, source_row=tuple(src)))
            else:
                rows.append(_pair(src, tgt, width, frozenset()))

    return ResultCompareResult(
        columns=list(source.columns),
        rows=rows,
        summary=RowSummary.of([r.status for r in rows]),
        positional=not key_columns,
    )
