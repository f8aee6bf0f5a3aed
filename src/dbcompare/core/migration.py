"""DDL generation from a structural diff.

The generated script is meant to be run against the table whose definition
matches the *source* side of the diff; it brings that table to the *target*
definition:

- added objects are created (ADD COLUMN, CREATE INDEX, ADD CONSTRAINT)
- removed objects are dropped
- changed columns are altered; changed indexes and foreign keys are dropped
  and re-created, since few engines can alter them in place

Statements are ordered columns, then indexes, then foreign keys, so later
statements can reference columns created earlier. Operations the target
dialect cannot express are never silently skipped: they produce a comment
statement starting with :data:`UNSUPPORTED_PREFIX`. Nothing is executed here.
"""

from __future__ import annotations

from typing import Iterable

from dbcompare.core.dialects import Dialect, TypeChangeStyle
from dbcompare.core.diff_models import (
    ColumnDiff,
    DiffStatus,
    ForeignKeyDiff,
    IndexDiff,
    TableDiffResult,
)
from dbcompare.core.models import ColumnInfo, ForeignKeyInfo, IndexInfo

UNSUPPORTED_PREFIX = "-- UNSUPPORTED:"
NO_CHANGES = "-- No changes detected"


class _Emitter:
    """Builds statements for one table in one dialect."""

    def __init__(self, dialect: Dialect, schema: str, table: str):
        self.dialect = dialect
        self.q = dialect.quote_identifier
        self.table = dialect.qualify(schema, table)
        self.statements: list[str] = []

    def alter(self, clause: str) -> None:
        self.statements.append(f"ALTER TABLE {self.table} {clause};")

    def raw(self, statement: str) -> None:
        self.statements.append(statement)

    def unsupported(self, what: str) -> None:
        self.statements.append(
            f"{UNSUPPORTED_PREFIX} {self.dialect.name} cannot {what} on {self.table}; "
            "manual migration required."
        )

    def column_definition(self, col: ColumnInfo) -> str:
        nullable = "" if col.is_nullable or not self.dialect.supports_not_null else " NOT NULL"
        default = f" DEFAULT {col.column_default}" if col.column_default else ""
        return f"{self.q(col.name)} {col.data_type}{nullable}{default}"


def _columns(e: _Emitter, diffs: list[ColumnDiff]) -> None:
    for d in diffs:
        if d.status is DiffStatus.ADDED and d.target is not None:
            e.alter(f"ADD COLUMN {e.column_definition(d.target)}")
            if d.target.is_primary_key:
                e.unsupported(f"add column {e.q(d.name)} to the primary key")

    for d in diffs:
        if d.status is DiffStatus.REMOVED:
            if d.source is not None and d.source.is_primary_key:
                e.unsupported(f"remove column {e.q(d.name)} from the primary key")
            if e.dialect.supports_drop_column:
                e.alter(f"DROP COLUMN {e.q(d.name)}")
            else:
                e.unsupported(f"DROP COLUMN {e.q(d.name)}")

    for d in diffs:
        if d.status is DiffStatus.CHANGED and d.source is not None and d.target is not None:
            _alter_column(e, d.source, d.target)


def _alter_column(e: _Emitter, src: ColumnInfo, tgt: ColumnInfo) -> None:
    dialect = e.dialect
    name = e.q(tgt.name)
    type_changed = src.data_type != tgt.data_type
    null_changed = src.is_nullable != tgt.is_nullable
    default_changed = dialect.normalize_default(src.column_default) != dialect.normalize_default(
        tgt.column_default
    )
    # MODIFY restates the full definition, so it also carries null/default
    modified = False

    if type_changed:
        style = dialect.type_change
        if style is TypeChangeStyle.ALTER_TYPE:
            e.alter(f"ALTER COLUMN {name} TYPE {tgt.data_type}")
        elif style is TypeChangeStyle.ALTER_BARE:
            e.alter(f"ALTER COLUMN {name} {tgt.data_type}")
        elif style is TypeChangeStyle.MODIFY:
            e.alter(f"MODIFY COLUMN {e.column_definition(tgt)}")
            modified = True
        else:
            e.unsupported(f"change type of column {name} to {tgt.data_type}")

    if null_changed and not modified:
        if not dialect.supports_not_null:
            e.unsupported(f"change nullability of column {name}")
        elif dialect.supports_alter_nullability:
            action = "DROP NOT NULL" if tgt.is_nullable else "SET NOT NULL"
            e.alter(f"ALTER COLUMN {name} {action}")
        elif dialect.type_change is TypeChangeStyle.MODIFY:
            e.alter(f"MODIFY COLUMN {e.column_definition(tgt)}")
            modified = True
        else:
            e.unsupported(f"change nullability of column {name}")

    if default_changed and not modified:
        if not dialect.supports_alter_default:
            e.unsupported(f"change default of column {name}")
        elif tgt.column_default:
            e.alter(f"ALTER COLUMN {name} SET DEFAULT {tgt.column_default}")
        else:
            e.alter(f"ALTER COLUMN {name} DROP DEFAULT")

    if src.is_primary_key != tgt.is_primary_key:
        e.unsupported(f"change primary-key membership of column {name}")


def _drop_index(e: _Emitter, idx: IndexInfo) -> None:
    if idx.is_primary:
        e.unsupported(f"drop primary key index {e.q(idx.name)}")
    elif not e.dialect.supports_indexes:
        e.unsupported(f"DROP INDEX {e.q(idx.name)}")
    elif e.dialect.drop_index_needs_table:
        e.raw(f"DROP INDEX {e.q(idx.name)} ON {e.table};")
    else:
        e.raw(f"DROP INDEX {e.q(idx.name)};")


def _create_index(e: _Emitter, idx: IndexInfo) -> None:
    if idx.is_primary:
        e.unsupported(f"create primary key index {e.q(idx.name)}")
        return
    if not e.dialect.supports_indexes:
        e.unsupported(f"CREATE INDEX {e.q(idx.name)}")
        return
    unique = "UNIQUE " if idx.is_unique else ""
    cols = ", ".join(e.q(c) for c in idx.columns)
    e.raw(f"CREATE {unique}INDEX {e.q(idx.name)} ON {e.table} ({cols});")


def _indexes(e: _Emitter, diffs: list[IndexDiff]) -> None:
    for d in diffs:
        if d.status is DiffStatus.REMOVED and d.source is not None:
            _drop_index(e, d.source)
    for d in diffs:
        if d.status is DiffStatus.CHANGED and d.source is not None and d.target is not None:
            _drop_index(e, d.source)
            _create_index(e, d.target)
        elif d.status is DiffStatus.ADDED and d.target is not None:
            _create_index(e, d.target)


def _add_foreign_key(e: _Emitter, fk: ForeignKeyInfo) -> None:
    if not e.dialect.supports_foreign_keys:
        e.unsupported(f"ADD CONSTRAINT {e.q(fk.name)}")
        return
    cols = ", ".join(e.q(c) for c in fk.columns)
    ref_cols = ", ".join(e.q(c) for c in fk.referenced_columns)
    ref_table = e.dialect.qualify(fk.referenced_schema, fk.referenced_table)
    clause = (
        f"ADD CONSTRAINT {e.q(fk.name)} FOREIGN KEY ({cols}) "
        f"REFERENCES {ref_table} ({ref_cols})"
    )
    if fk.on_update and fk.on_update.upper() != "NO ACTION":
        clause += f" ON UPDATE {fk.on_update}"
    if fk.on_delete and fk.on_delete.upper() != "NO ACTION":
        clause += f" ON DELETE {fk.on_delete}"
    e.alter(clause)


def _drop_foreign_key(e: _Emitter, fk: ForeignKeyInfo) -> None:
    if not e.dialect.supports_foreign_keys:
        e.unsupported(f"DROP CONSTRAINT {e.q(fk.name)}")
        return
    e.alter(f"{e.dialect.drop_foreign_key} {e.q(fk.name)}")


def _foreign_keys(e: _Emitter, diffs: list[ForeignKeyDiff]) -> None:
    for d in diffs:
        if d.status is DiffStatus.REMOVED and d.source is not None:
            _drop_foreign_key(e, d.source)
    for d in diffs:
        if d.status is DiffStatus.CHANGED and d.source is not None and d.target is not None:
            _drop_foreign_key(e, d.source)
            _add_foreign_key(e, d.target)
        elif d.status is DiffStatus.ADDED and d.target is not None:
            _add_foreign_key(e, d.target)


def generate_migration(
    diff: TableDiffResult,
    schema: str,
    table: str,
    dialect: Dialect,
) -> list[str]:
    """
    Turn a structural diff into ordered DDL statements.

    Args:
        diff: Result of :func:`dbcompare.core.structural_diff.compute_table_diff`.
        schema, table: The table the script will be run against.
        dialect: Target dialect (quoting and capabilities).

    Returns:
        Statements in execution order. Unsupported operations appear as
        comment placeholders; an empty list means nothing differs.
    """
    e = _Emitter(dialect, schema, table)
    _columns(e, diff.columns)
    _indexes(e, diff.indexes)
    _foreign_keys(e, diff.foreign_keys)
    return e.statements


def has_unsupported(statements: Iterable[str]) -> bool:
    """True if any statement is a placeholder for an unsupported operation."""
    return any(s.startswith(UNSUPPORTED_PREFIX) for s in statements)


def render_script(
    diff: TableDiffResult,
    statements: list[str],
    schema: str,
    table: str,
    dialect: Dialect,
) -> str:
    """Join statements into a script with a descriptive header."""
    lines = [
        f"-- Migration generated for {dialect.qualify(schema, table)} ({dialect.name})",
        f"-- Source: {diff.source_table} -> Target: {diff.target_table}",
        "",
    ]
    lines.extend(statements or [NO_CHANGES])
    return "\n".join(lines) + "\n"
