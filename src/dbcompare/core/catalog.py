"""Catalog loading and cache population.

This module is the boundary between the pure cache/diff core and the data
access layer. Loaders and executors are adapters (see
``dbcompare.core.adapters``) described by small protocols; the
:class:`CatalogService` asks them for snapshots and stores the results in the
session's single :class:`~dbcompare.core.cache.MetadataCache`.

Loads run in a thread pool: the four detail collections of a table are
fetched concurrently, and so are the two sides of a comparison (which may sit
on different connections). Loader errors propagate to the caller unchanged;
the cache only ever receives successful snapshots.
"""

from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Protocol

from dbcompare.core.cache import MetadataCache
from dbcompare.core.config import Settings
from dbcompare.core.dialects import Dialect
from dbcompare.core.models import (
    CatalogKind,
    CatalogPath,
    ColumnInfo,
    EnumInfo,
    ForeignKeyInfo,
    IndexInfo,
    QueryResult,
    RoutineInfo,
    SchemaInfo,
    SequenceInfo,
    TableDetail,
    TableInfo,
    TableStats,
)
from dbcompare.core.visibility import SchemaVisibilityFilter

logger = logging.getLogger(__name__)

_DDL = re.compile(
    r"^\s*(?:(?:--[^\n]*\n|/\*.*?\*/)\s*)*(CREATE|ALTER|DROP|TRUNCATE|RENAME)\b",
    re.IGNORECASE | re.DOTALL,
)


class CatalogLoader(Protocol):
    """Interface for fetching catalog snapshots from one connection."""

    def list_schemas(self) -> list[SchemaInfo]: ...

    def list_tables(self, schema: str) -> list[TableInfo]: ...

    def list_columns(self, schema: str, table: str) -> list[ColumnInfo]: ...

    def list_indexes(self, schema: str, table: str) -> list[IndexInfo]: ...

    def list_foreign_keys(self, schema: str, table: str) -> list[ForeignKeyInfo]: ...

    def get_table_stats(self, schema: str, table: str) -> TableStats | None: ...

    def list_routines(self, schema: str) -> list[RoutineInfo]: ...

    def list_sequences(self, schema: str) -> list[SequenceInfo]: ...

    def list_enums(self, schema: str) -> list[EnumInfo]: ...


class QueryExecutor(Protocol):
    """Interface for running SQL against one connection."""

    def execute(self, sql: str) -> QueryResult:
        """Run a statement and return its rows, column names and timing."""
        ...


@dataclass(frozen=True)
class Connection:
    """A registered connection: its loader, dialect and optional executor."""

    id: str
    loader: CatalogLoader
    dialect: Dialect
    executor: QueryExecutor | None = None


@dataclass(frozen=True)
class TableRef:
    """A table on a given connection."""

    connection: str
    schema: str
    table: str

    @property
    def path(self) -> CatalogPath:
        return CatalogPath(self.schema, self.table)

    def __str__(self) -> str:
        return f"{self.connection}::{self.schema}.{self.table}"


def is_ddl_statement(sql: str) -> bool:
    """True if the statement changes table structure (leading comments ignored)."""
    return _DDL.match(sql) is not None


class CatalogService:
    """
    Populates the shared metadata cache from registered connections.

    One instance is built per session and handed by reference to every
    consumer (tree, diff tabs, CLI commands).
    """

    def __init__(
        self,
        cache: MetadataCache | None = None,
        visibility: SchemaVisibilityFilter | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.cache = cache or MetadataCache(self.settings.detail_cache_cap)
        self.visibility = visibility or SchemaVisibilityFilter()
        self._connections: dict[str, Connection] = {}
        self._lock = threading.Lock()

    # ---- connection registry ----
    def register(
        self,
        connection: str,
        loader: CatalogLoader,
        dialect: Dialect,
        executor: QueryExecutor | None = None,
    ) -> Connection:
        """Register (or replace) a connection."""
        conn = Connection(connection, loader, dialect, executor)
        with self._lock:
            self._connections[connection] = conn
        return conn

    def connection(self, connection: str) -> Connection:
        """Return a registered connection or raise KeyError."""
        with self._lock:
            try:
                return self._connections[connection]
            except KeyError:
                raise KeyError(f"Unknown connection '{connection}'.") from None

    def disconnect(self, connection: str) -> None:
        """Forget a connection together with its cached catalog and visibility."""
        with self._lock:
            self._connections.pop(connection, None)
        self.cache.clear_connection(connection)
        self.visibility.clear(connection)

    # ---- loads ----
    def load_schemas(self, connection: str, *, force: bool = False) -> list[SchemaInfo]:
        """Return schemas of a connection, loading them on a miss."""
        conn = self.connection(connection)
        if not force and self.cache.is_loaded(connection, CatalogKind.SCHEMAS):
            return self.cache.get_schemas(connection)
        logger.debug("Loading schemas for %s", connection)
        schemas = conn.loader.list_schemas()
        self.cache.set_schemas(connection, schemas)
        self.visibility.apply_defaults(connection, [s.name for s in schemas], conn.dialect)
        return schemas

    def visible_schemas(self, connection: str) -> list[SchemaInfo]:
        """Schemas currently shown for a connection."""
        schemas = self.load_schemas(connection)
        keep = set(self.visibility.filter(connection, [s.name for s in schemas]))
        return [s for s in schemas if s.name in keep]

    def _load_schema_level(
        self,
        connection: str,
        kind: CatalogKind,
        schema: str,
        fetch: Callable[[CatalogLoader], list],
        force: bool,
    ) -> list:
        path = CatalogPath(schema)
        if not force and self.cache.is_loaded(connection, kind, path):
            return self.cache.get(connection, kind, path)
        conn = self.connection(connection)
        logger.debug("Loading %s for %s:%s", kind.value, connection, schema)
        snapshot = fetch(conn.loader)
        self.cache.set(connection, kind, path, snapshot)
        return snapshot

    def load_tables(self, connection: str, schema: str, *, force: bool = False) -> list[TableInfo]:
        return self._load_schema_level(
            connection,
            CatalogKind.TABLES,
            schema,
            lambda loader: loader.list_tables(schema),
            force,
        )

    def load_routines(
        self, connection: str, schema: str, *, force: bool = False
    ) -> list[RoutineInfo]:
        return self._load_schema_level(
            connection,
            CatalogKind.ROUTINES,
            schema,
            lambda loader: loader.list_routines(schema),
            force,
        )

    def load_sequences(
        self, connection: str, schema: str, *, force: bool = False
    ) -> list[SequenceInfo]:
        return self._load_schema_level(
            connection,
            CatalogKind.SEQUENCES,
            schema,
            lambda loader: loader.list_sequences(schema),
            force,
        )

    def load_enums(self, connection: str, schema: str, *, force: bool = False) -> list[EnumInfo]:
        return self._load_schema_level(
            connection,
            CatalogKind.ENUMS,
            schema,
            lambda loader: loader.list_enums(schema),
            force,
        )

    def load_table_detail(self, ref: TableRef, *, force: bool = False) -> TableDetail:
        """
        Return columns, indexes, foreign keys and stats of a table.

        On a miss (or with `force`) the four collections are fetched
        concurrently and stored together. When only the stats were dropped
        (see :meth:`note_statement`), only the stats are fetched again.
        """
        loader = self.connection(ref.connection).loader
        if not force and self.cache.is_loaded(ref.connection, CatalogKind.COLUMNS, ref.path):
            if not self.cache.is_loaded(ref.connection, CatalogKind.STATS, ref.path):
                logger.debug("Reloading table stats for %s", ref)
                stats = loader.get_table_stats(ref.schema, ref.table)
                self.cache.set_table_stats(ref.connection, ref.schema, ref.table, stats)
            return self.cache.get_detail(ref.connection, ref.path)

        logger.debug("Loading table detail for %s", ref)
        with ThreadPoolExecutor(max_workers=self.settings.load_workers) as pool:
            columns = pool.submit(loader.list_columns, ref.schema, ref.table)
            indexes = pool.submit(loader.list_indexes, ref.schema, ref.table)
            fks = pool.submit(loader.list_foreign_keys, ref.schema, ref.table)
            stats = pool.submit(loader.get_table_stats, ref.schema, ref.table)
            detail = TableDetail(
                columns=columns.result(),
                indexes=indexes.result(),
                foreign_keys=fks.result(),
                stats=stats.result(),
            )

        evicted = self.cache.set_detail(ref.connection, ref.path, detail)
        if evicted:
            logger.debug("Loading %s evicted %d table(s)", ref, len(evicted))
        return detail

    def load_detail_pair(
        self, source: TableRef, target: TableRef, *, force: bool = False
    ) -> tuple[TableDetail, TableDetail]:
        """Load two tables (possibly on different connections) concurrently."""
        with ThreadPoolExecutor(max_workers=2) as pool:
            src = pool.submit(self.load_table_detail, source, force=force)
            tgt = pool.submit(self.load_table_detail, target, force=force)
            return src.result(), tgt.result()

    def refresh(self, connection: str) -> list[SchemaInfo]:
        """Drop every cached entry of a connection and reload its schemas."""
        self.cache.clear_connection(connection)
        schemas = self.load_schemas(connection, force=True)
        self.cache.mark_refreshed(connection)
        return schemas

    def note_statement(self, connection: str, sql: str, schema: str, table: str) -> bool:
        """
        Invalidate cached table stats after a DDL statement ran on a table.

        Returns:
            True if the stats entry was invalidated.
        """
        if not is_ddl_statement(sql):
            return False
        self.cache.clear_table_stats(connection, CatalogPath(schema, table))
        return True
