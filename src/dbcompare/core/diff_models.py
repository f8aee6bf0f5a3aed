"""Result records produced by the comparison engines.

Every comparison classifies each compared name or row key into exactly one
status. "Source" is the reference side and "target" the compared side:
present only in source is ``REMOVED``, present only in target is ``ADDED``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from dbcompare.core.models import ColumnInfo, ForeignKeyInfo, IndexInfo

T = TypeVar("T")


class DiffStatus(str, Enum):
    """Classification of a compared catalog object."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


class RowStatus(str, Enum):
    """Classification of a compared row."""

    ADDED = "added"
    REMOVED = "removed"
    CHANGED = "changed"
    IDENTICAL = "identical"


@dataclass(frozen=True)
class ObjectDiff(Generic[T]):
    """
    Comparison outcome for one named object (column, index or foreign key).

    Attributes:
        name: Object name shared by both sides.
        status: Classification.
        source: Source-side descriptor, None when the object was added.
        target: Target-side descriptor, None when the object was removed.
        changes: One human-readable line per differing attribute (CHANGED only).
    """

    name: str
    status: DiffStatus
    source: T | None = None
    target: T | None = None
    changes: tuple[str, ...] = ()


ColumnDiff = ObjectDiff[ColumnInfo]
IndexDiff = ObjectDiff[IndexInfo]
ForeignKeyDiff = ObjectDiff[ForeignKeyInfo]


@dataclass(frozen=True)
class DiffSummary:
    """Counts per status across columns, indexes and foreign keys."""

    added: int = 0
    removed: int = 0
    changed: int = 0
    unchanged: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed or self.changed)


@dataclass(frozen=True)
class TableDiffResult:
    """Structural comparison of two table definitions."""

    source_table: str
    target_table: str
    columns: list[ColumnDiff] = field(default_factory=list)
    indexes: list[IndexDiff] = field(default_factory=list)
    foreign_keys: list[ForeignKeyDiff] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)


@dataclass(frozen=True)
class RowDiff:
    """
    Comparison outcome for one primary-key value.

    Attributes:
        status: Classification.
        key_values: Rendered key values identifying the row.
        source_row: Source-side cells, None when the row was added.
        target_row: Target-side cells, None when the row was removed.
        changed_columns: Indices of columns whose values differ (CHANGED only).
    """

    status: RowStatus
    key_values: tuple[str, ...]
    source_row: tuple[Any, ...] | None = None
    target_row: tuple[Any, ...] | None = None
    changed_columns: tuple[int, ...] = ()


@dataclass(frozen=True)
class RowSummary:
    """Counts per row status."""

    added: int = 0
    removed: int = 0
    changed: int = 0
    identical: int = 0

    @property
    def total(self) -> int:
        return self.added + self.removed + self.changed + self.identical

    @classmethod
    def of(cls, statuses: list[RowStatus]) -> RowSummary:
        return cls(
            added=statuses.count(RowStatus.ADDED),
            removed=statuses.count(RowStatus.REMOVED),
            changed=statuses.count(RowStatus.CHANGED),
            identical=statuses.count(RowStatus.IDENTICAL),
        )


@dataclass(frozen=True)
class DataDiffResult:
    """Row-level comparison of two tables matched by primary key."""

    key_columns: list[str]
    columns: list[str]
    rows: list[RowDiff]
    summary: RowSummary
    truncated: bool = False


@dataclass(frozen=True)
class CompareRow:
    """Row comparison outcome of two unrelated result sets."""

    status: RowStatus
    source_row: tuple[Any, ...] | None = None
    target_row: tuple[Any, ...] | None = None
    changed_columns: frozenset[int] = frozenset()


@dataclass(frozen=True)
class ResultCompareResult:
    """
    Comparison of two arbitrary query results.

    Attributes:
        columns: Source-side column names (column names are not reconciled).
        rows: One entry per matched position or key.
        summary: Counts per status.
        positional: True when rows were matched by position rather than by
            key columns; reordered but identical sets then show as changed.
    """

    columns: list[str]
    rows: list[CompareRow]
    summary: RowSummary
    positional: bool
