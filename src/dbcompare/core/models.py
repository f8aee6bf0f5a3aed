"""Catalog domain models.

These models represent catalog objects of any relational engine in a simple,
immutable form. They are intentionally free of driver types and UI/CLI
concerns; adapters translate driver output into these shapes and everything
downstream (cache, diff engines, migration generator) consumes them as-is.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class CatalogKind(str, Enum):
    """
    Enumeration of the catalog collections held per connection.

    Values:
        SCHEMAS: Schema list of a connection (path without schema).
        TABLES: Table list of one schema.
        COLUMNS: Column list of one table.
        INDEXES: Index list of one table.
        FOREIGN_KEYS: Foreign-key list of one table.
        STATS: Row count / size statistics of one table.
        ROUTINES: Functions and procedures of one schema.
        SEQUENCES: Sequences of one schema.
        ENUMS: Enum types of one schema.
    """

    SCHEMAS = "schemas"
    TABLES = "tables"
    COLUMNS = "columns"
    INDEXES = "indexes"
    FOREIGN_KEYS = "foreign_keys"
    STATS = "stats"
    ROUTINES = "routines"
    SEQUENCES = "sequences"
    ENUMS = "enums"

    @property
    def is_detail(self) -> bool:
        """True for the per-table collections that are evicted together."""
        return self in DETAIL_KINDS


DETAIL_KINDS = frozenset(
    {
        CatalogKind.COLUMNS,
        CatalogKind.INDEXES,
        CatalogKind.FOREIGN_KEYS,
        CatalogKind.STATS,
    }
)


@dataclass(frozen=True)
class CatalogPath:
    """
    Key scoping a cache entry within one connection.

    Attributes:
        schema: Schema name. Empty for connection-level entries (schema list).
        table: Table name for per-table entries, None otherwise.
    """

    schema: str = ""
    table: str | None = None

    @property
    def key(self) -> str:
        """Return `schema` or `schema.table`."""
        if self.table is None:
            return self.schema
        return f"{self.schema}.{self.table}"

    @classmethod
    def parse(cls, value: str) -> CatalogPath:
        """Split `schema.table` (or `schema`) into a path."""
        value = value.strip()
        if not value:
            raise ValueError("Catalog path must not be empty.")
        schema, sep, table = value.partition(".")
        if not schema or (sep and not table):
            raise ValueError("Catalog path must be in the form `schema` or `schema.table`.")
        return cls(schema=schema, table=table or None)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class SchemaInfo:
    """Lightweight representation of a schema."""

    name: str


@dataclass(frozen=True)
class TableInfo:
    """Lightweight representation of a table or view."""

    name: str
    schema: str
    table_type: str = "TABLE"
    row_count: int | None = None


@dataclass(frozen=True)
class ColumnInfo:
    """Column definition as reported by the engine (types are dialect-literal)."""

    name: str
    data_type: str
    is_nullable: bool = True
    column_default: str | None = None
    is_primary_key: bool = False
    ordinal_position: int = 0


@dataclass(frozen=True)
class IndexInfo:
    """Index definition; `columns` keeps the index key order."""

    name: str
    columns: tuple[str, ...] = ()
    is_unique: bool = False
    is_primary: bool = False
    index_type: str = ""


@dataclass(frozen=True)
class ForeignKeyInfo:
    """Foreign-key constraint definition."""

    name: str
    columns: tuple[str, ...] = ()
    referenced_schema: str = ""
    referenced_table: str = ""
    referenced_columns: tuple[str, ...] = ()
    on_update: str = "NO ACTION"
    on_delete: str = "NO ACTION"


@dataclass(frozen=True)
class TableStats:
    """Row count and storage size of a table."""

    row_count: int
    size_bytes: int | None = None
    size_display: str | None = None


@dataclass(frozen=True)
class RoutineInfo:
    """Function or stored procedure."""

    name: str
    schema: str
    routine_type: str = "FUNCTION"
    return_type: str | None = None


@dataclass(frozen=True)
class SequenceInfo:
    """Sequence object."""

    name: str
    schema: str
    data_type: str | None = None


@dataclass(frozen=True)
class EnumInfo:
    """User-defined enum type."""

    name: str
    schema: str
    variants: tuple[str, ...] = ()


@dataclass(frozen=True)
class TableDetail:
    """The four per-table collections, fetched and evicted as one unit."""

    columns: list[ColumnInfo] = field(default_factory=list)
    indexes: list[IndexInfo] = field(default_factory=list)
    foreign_keys: list[ForeignKeyInfo] = field(default_factory=list)
    stats: TableStats | None = None


@dataclass(frozen=True)
class QueryResult:
    """Rows returned by a query executor, with column names and timing."""

    columns: list[str]
    rows: list[tuple]
    execution_time_ms: float = 0.0
