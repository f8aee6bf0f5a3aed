"""SQL dialect descriptors.

A dialect describes the syntax and capability profile of one database engine:
how identifiers are quoted, which ALTER forms exist, and which schemas are
engine-internal. The migration generator and the structural diff consult it;
nothing here talks to a database.

Type names are never translated between dialects.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class TypeChangeStyle(str, Enum):
    """How a column type change is spelled by a dialect."""

    ALTER_TYPE = "ALTER_TYPE"  # ALTER COLUMN c TYPE t
    MODIFY = "MODIFY"  # MODIFY COLUMN c t [NOT NULL] [DEFAULT d]
    ALTER_BARE = "ALTER_BARE"  # ALTER COLUMN c t
    UNSUPPORTED = "UNSUPPORTED"


_WS = re.compile(r"\s+")


@dataclass(frozen=True)
class Dialect:
    """
    Capability profile of a database engine.

    Attributes:
        name: Display name (e.g. ``PostgreSQL``).
        quote_open, quote_close: Identifier quote characters.
        supports_drop_column: ALTER TABLE ... DROP COLUMN is available.
        type_change: How column type changes are written.
        supports_alter_nullability: SET/DROP NOT NULL is available.
        supports_alter_default: SET/DROP DEFAULT is available.
        supports_not_null: Columns take a ``NOT NULL`` clause.
        supports_indexes: CREATE/DROP INDEX is available.
        drop_index_needs_table: DROP INDEX requires ``ON <table>``.
        supports_foreign_keys: ADD/DROP CONSTRAINT for foreign keys is available.
        drop_foreign_key: Clause that drops a foreign key by name.
        internal_schemas: Engine schemas hidden by default in the tree.
        default_schema: Conventional default schema, if the engine has one.
    """

    name: str
    quote_open: str = '"'
    quote_close: str = '"'
    supports_drop_column: bool = True
    type_change: TypeChangeStyle = TypeChangeStyle.ALTER_TYPE
    supports_alter_nullability: bool = True
    supports_alter_default: bool = True
    supports_not_null: bool = True
    supports_indexes: bool = True
    drop_index_needs_table: bool = False
    supports_foreign_keys: bool = True
    drop_foreign_key: str = "DROP CONSTRAINT"
    internal_schemas: frozenset[str] = frozenset()
    default_schema: str | None = None

    def quote_identifier(self, name: str) -> str:
        """Quote an identifier, doubling any embedded closing quote."""
        escaped = name.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"

    def qualify(self, schema: str, table: str) -> str:
        """Return a quoted `schema.table` (just the table when schema is empty)."""
        if not schema:
            return self.quote_identifier(table)
        return f"{self.quote_identifier(schema)}.{self.quote_identifier(table)}"

    def normalize_default(self, value: str | None) -> str | None:
        """Collapse whitespace in a column default for comparison."""
        if value is None:
            return None
        return _WS.sub(" ", value).strip()

    def is_internal_schema(self, name: str) -> bool:
        return name in self.internal_schemas or name.lower() in self.internal_schemas


_PG_INTERNAL = frozenset({"pg_catalog", "information_schema", "pg_toast"})
_MYSQL_INTERNAL = frozenset({"mysql", "information_schema", "performance_schema", "sys"})

_MYSQL_LIKE = dict(
    quote_open="`",
    quote_close="`",
    type_change=TypeChangeStyle.MODIFY,
    supports_alter_nullability=False,
    drop_index_needs_table=True,
    drop_foreign_key="DROP FOREIGN KEY",
    internal_schemas=_MYSQL_INTERNAL,
)

DIALECTS: dict[str, Dialect] = {
    d.name.lower(): d
    for d in (
        Dialect("PostgreSQL", internal_schemas=_PG_INTERNAL, default_schema="public"),
        Dialect(
            "CockroachDB",
            internal_schemas=_PG_INTERNAL | {"crdb_internal", "pg_extension"},
            default_schema="public",
        ),
        Dialect(
            "Redshift",
            supports_indexes=False,
            internal_schemas=_PG_INTERNAL,
            default_schema="public",
        ),
        Dialect("MySQL", **_MYSQL_LIKE),
        Dialect("MariaDB", **_MYSQL_LIKE),
        Dialect(
            "MSSQL",
            quote_open="[",
            quote_close="]",
            type_change=TypeChangeStyle.ALTER_BARE,
            supports_alter_nullability=False,
            supports_alter_default=False,
            drop_index_needs_table=True,
            internal_schemas=frozenset(
                {"sys", "information_schema", "guest", "db_owner", "db_accessadmin"}
            ),
            default_schema="dbo",
        ),
        Dialect(
            "SQLite",
            type_change=TypeChangeStyle.UNSUPPORTED,
            supports_alter_nullability=False,
            supports_alter_default=False,
            supports_foreign_keys=False,
            default_schema="main",
        ),
        Dialect(
            "Oracle",
            type_change=TypeChangeStyle.UNSUPPORTED,
            supports_alter_nullability=False,
            supports_alter_default=False,
            internal_schemas=frozenset({"sys", "system", "outln", "xdb"}),
        ),
        Dialect(
            "ClickHouse",
            type_change=TypeChangeStyle.MODIFY,
            supports_alter_nullability=False,
            supports_alter_default=False,
            supports_not_null=False,
            supports_indexes=False,
            supports_foreign_keys=False,
            internal_schemas=frozenset({"system", "information_schema"}),
            default_schema="default",
        ),
        Dialect(
            "Snowflake",
            type_change=TypeChangeStyle.ALTER_TYPE,
            supports_indexes=False,
            internal_schemas=frozenset({"information_schema"}),
            default_schema="PUBLIC",
        ),
        Dialect(
            "BigQuery",
            quote_open="`",
            quote_close="`",
            type_change=TypeChangeStyle.UNSUPPORTED,
            supports_indexes=False,
            supports_foreign_keys=False,
            internal_schemas=frozenset({"information_schema"}),
        ),
        Dialect(
            "Databricks",
            quote_open="`",
            quote_close="`",
            supports_drop_column=False,
            type_change=TypeChangeStyle.UNSUPPORTED,
            supports_indexes=False,
            internal_schemas=frozenset({"information_schema"}),
            default_schema="default",
        ),
    )
}


def get_dialect(name: str) -> Dialect:
    """Look up a dialect by name (case-insensitive)."""
    try:
        return DIALECTS[name.strip().lower()]
    except KeyError as exc:
        known = ", ".join(d.name for d in DIALECTS.values())
        raise ValueError(f"Unknown dialect '{name}'. Known dialects: {known}") from exc
