"""Structural comparison of two table definitions.

Columns, indexes and foreign keys of a source and a target table are aligned
by name. Names are visited in source order, followed by target-only names in
target order, and each one is classified as added, removed, changed or
unchanged. Attribute comparison is literal and case-sensitive; only column
defaults are normalized (whitespace) before comparing. The two tables may come
from different connections and dialects: type names are not unified.
"""

from __future__ import annotations

from typing import Callable, Iterable, Sequence, TypeVar

from dbcompare.core.dialects import Dialect
from dbcompare.core.diff_models import (
    ColumnDiff,
    DiffStatus,
    DiffSummary,
    ForeignKeyDiff,
    IndexDiff,
    ObjectDiff,
    TableDiffResult,
)
from dbcompare.core.models import ColumnInfo, ForeignKeyInfo, IndexInfo, TableDetail

T = TypeVar("T")

_GENERIC = Dialect("generic")


def _fmt(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def _fmt_list(values: Sequence[str]) -> str:
    return f"[{', '.join(values)}]"


def _align(
    source: Iterable[T],
    target: Iterable[T],
    name_of: Callable[[T], str],
    compare: Callable[[T, T], list[str]],
) -> list[ObjectDiff[T]]:
    """Classify every name in the union of both sides."""
    source_map = {name_of(o): o for o in source}
    target_map = {name_of(o): o for o in target}

    results: list[ObjectDiff[T]] = []
    for name, src in source_map.items():
        tgt = target_map.get(name)
        if tgt is None:
            results.append(ObjectDiff(name, DiffStatus.REMOVED, source=src))
            continue
        changes = compare(src, tgt)
        status = DiffStatus.CHANGED if changes else DiffStatus.UNCHANGED
        results.append(ObjectDiff(name, status, src, tgt, tuple(changes)))

    for name, tgt in target_map.items():
        if name not in source_map:
            results.append(ObjectDiff(name, DiffStatus.ADDED, target=tgt))

    return results


def column_changes(
    src: ColumnInfo, tgt: ColumnInfo, dialect: Dialect = _GENERIC
) -> list[str]:
    """Describe each differing attribute of two same-named columns."""
    changes: list[str] = []
    if src.data_type != tgt.data_type:
        changes.append(f"type: {src.data_type} -> {tgt.data_type}")
    if src.is_nullable != tgt.is_nullable:
        changes.append(f"nullable: {_fmt(src.is_nullable)} -> {_fmt(tgt.is_nullable)}")
    if dialect.normalize_default(src.column_default) != dialect.normalize_default(
        tgt.column_default
    ):
        changes.append(f"default: {_fmt(src.column_default)} -> {_fmt(tgt.column_default)}")
    if src.is_primary_key != tgt.is_primary_key:
        changes.append(f"pk: {_fmt(src.is_primary_key)} -> {_fmt(tgt.is_primary_key)}")
    return changes


def index_changes(src: IndexInfo, tgt: IndexInfo) -> list[str]:
    """Describe each differing attribute of two same-named indexes."""
    changes: list[str] = []
    if tuple(src.columns) != tuple(tgt.columns):
        changes.append(f"columns: {_fmt_list(src.columns)} -> {_fmt_list(tgt.columns)}")
    if src.is_unique != tgt.is_unique:
        changes.append(f"unique: {_fmt(src.is_unique)} -> {_fmt(tgt.is_unique)}")
    if src.is_primary != tgt.is_primary:
        changes.append(f"primary: {_fmt(src.is_primary)} -> {_fmt(tgt.is_primary)}")
    if src.index_type != tgt.index_type:
        changes.append(f"type: {src.index_type} -> {tgt.index_type}")
    return changes


def foreign_key_changes(src: ForeignKeyInfo, tgt: ForeignKeyInfo) -> list[str]:
    """Describe each differing attribute of two same-named foreign keys."""
    changes: list[str] = []
    if tuple(src.columns) != tuple(tgt.columns):
        changes.append(f"columns: {_fmt_list(src.columns)} -> {_fmt_list(tgt.columns)}")
    if src.referenced_table != tgt.referenced_table:
        changes.append(f"ref table: {src.referenced_table} -> {tgt.referenced_table}")
    if tuple(src.referenced_columns) != tuple(tgt.referenced_columns):
        changes.append(
            f"ref columns: {_fmt_list(src.referenced_columns)} -> "
            f"{_fmt_list(tgt.referenced_columns)}"
        )
    if src.on_update != tgt.on_update:
        changes.append(f"on_update: {src.on_update} -> {tgt.on_update}")
    if src.on_delete != tgt.on_delete:
        changes.append(f"on_delete: {src.on_delete} -> {tgt.on_delete}")
    return changes


def diff_columns(
    source: Iterable[ColumnInfo],
    target: Iterable[ColumnInfo],
    dialect: Dialect = _GENERIC,
) -> list[ColumnDiff]:
    """Align and classify columns by name."""
    return _align(
        source, target, lambda c: c.name, lambda a, b: column_changes(a, b, dialect)
    )


def diff_indexes(source: Iterable[IndexInfo], target: Iterable[IndexInfo]) -> list[IndexDiff]:
    """Align and classify indexes by name."""
    return _align(source, target, lambda i: i.name, index_changes)


def diff_foreign_keys(
    source: Iterable[ForeignKeyInfo], target: Iterable[ForeignKeyInfo]
) -> list[ForeignKeyDiff]:
    """Align and classify foreign keys by name."""
    return _align(source, target, lambda f: f.name, foreign_key_changes)


def summarize(*diff_lists: Iterable[ObjectDiff]) -> DiffSummary:
    """Count statuses across any number of diff lists."""
    statuses = [d.status for diffs in diff_lists for d in diffs]
    return DiffSummary(
        added=statuses.count(DiffStatus.ADDED),
        removed=statuses.count(DiffStatus.REMOVED),
        changed=statuses.count(DiffStatus.CHANGED),
        unchanged=statuses.count(DiffStatus.UNCHANGED),
    )


def compute_table_diff(
    source: TableDetail,
    target: TableDetail,
    *,
    source_table: str = "source",
    target_table: str = "target",
    dialect: Dialect = _GENERIC,
) -> TableDiffResult:
    """
    Compare two independently loaded table definitions.

    Args:
        source: Reference table detail.
        target: Compared table detail.
        source_table, target_table: Labels carried into the result.
        dialect: Dialect whose default-value normalization is applied.

    Returns:
        Column, index and foreign-key diffs plus a combined summary.
    """
    columns = diff_columns(source.columns, target.columns, dialect)
    indexes = diff_indexes(source.indexes, target.indexes)
    foreign_keys = diff_foreign_keys(source.foreign_keys, target.foreign_keys)
    return TableDiffResult(
        source_table=source_table,
        target_table=target_table,
        columns=columns,
        indexes=indexes,
        foreign_keys=foreign_keys,
        summary=summarize(columns, indexes, foreign_keys),
    )
