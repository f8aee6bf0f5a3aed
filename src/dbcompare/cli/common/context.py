"""Application context management for the CLI."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from databricks.sdk.errors import DatabricksError

from dbcompare.cli.common.exits import die, exit_from_exc
from dbcompare.core.adapters.sqlite import SqliteCatalogLoader, SqliteQueryExecutor
from dbcompare.core.adapters.unitycatalog import DatabricksSqlExecutor, UnityCatalogLoader
from dbcompare.core.auth import AuthError, get_client
from dbcompare.core.catalog import CatalogService, TableRef
from dbcompare.core.compare import CompareService
from dbcompare.core.config import Settings
from dbcompare.core.dialects import get_dialect
from dbcompare.core.models import CatalogPath

# errors a loader or executor may raise while talking to a database
LOAD_ERRORS = (sqlite3.Error, OSError, DatabricksError, RuntimeError)


@dataclass(frozen=True)
class ConnectionSpec:
    """
    Parsed connection string.

    Forms:
        sqlite:PATH
        databricks:PROFILE@WAREHOUSE/CATALOG (PROFILE may be empty)
    """

    raw: str
    kind: str
    path: str | None = None
    profile: str | None = None
    warehouse_id: str | None = None
    catalog: str | None = None

    @property
    def dialect_name(self) -> str:
        return self.kind


def parse_connection(value: str) -> ConnectionSpec:
    """Parse a connection string; raises ValueError when malformed."""
    kind, sep, rest = value.strip().partition(":")
    kind = kind.lower()
    if not sep or not rest:
        raise ValueError(f"Invalid connection '{value}'. Use sqlite:PATH or databricks:PROFILE@WAREHOUSE/CATALOG.")

    if kind == "sqlite":
        return ConnectionSpec(raw=value, kind=kind, path=rest)

    if kind == "databricks":
        profile, at, location = rest.rpartition("@")
        warehouse, slash, catalog = location.partition("/")
        if not at or not warehouse or not slash or not catalog:
            raise ValueError(f"Invalid Databricks connection '{value}'. Use databricks:PROFILE@WAREHOUSE/CATALOG.")
        return ConnectionSpec(
            raw=value,
            kind=kind,
            profile=profile or None,
            warehouse_id=warehouse,
            catalog=catalog,
        )

    raise ValueError(f"Unsupported connection type '{kind}'. Use sqlite or databricks.")


def parse_table_ref(value: str) -> tuple[ConnectionSpec, CatalogPath]:
    """
    Split `CONN::schema.table` into a connection spec and a path.

    A bare `CONN::table` keeps the schema empty; the caller substitutes the
    dialect's default schema.
    """
    conn, sep, rest = value.rpartition("::")
    if not sep or not conn:
        raise ValueError(f"Invalid table reference '{value}'. Use CONN::schema.table.")
    path = CatalogPath.parse(rest)
    if path.table is None:
        path = CatalogPath("", path.schema)
    return parse_connection(conn), path


@dataclass
class AppContext:
    """Per-invocation state: settings plus the shared catalog and compare services."""

    settings: Settings
    catalog: CatalogService
    compare: CompareService

    def open(self, spec: ConnectionSpec) -> str:
        """Register the connection on first use and return its id."""
        try:
            self.catalog.connection(spec.raw)
            return spec.raw
        except KeyError:
            pass

        dialect = get_dialect(spec.dialect_name)
        if spec.kind == "sqlite":
            self.catalog.register(
                spec.raw,
                SqliteCatalogLoader(spec.path),
                dialect,
                SqliteQueryExecutor(spec.path),
            )
            return spec.raw

        try:
            client = get_client(spec.profile)
        except AuthError as exc:
            die(str(exc), code=1)
        self.catalog.register(
            spec.raw,
            UnityCatalogLoader(client, spec.catalog),
            dialect,
            DatabricksSqlExecutor(client, spec.warehouse_id, catalog=spec.catalog),
        )
        return spec.raw

    def table(self, value: str) -> TableRef:
        """Resolve `CONN::schema.table` to a TableRef on a registered connection."""
        try:
            spec, path = parse_table_ref(value)
        except ValueError as exc:
            exit_from_exc(exc, message=str(exc), code=2)
        connection = self.open(spec)
        schema = path.schema or self.catalog.connection(connection).dialect.default_schema or ""
        return TableRef(connection, schema, path.table)

    def connection(self, value: str) -> str:
        """Resolve a connection string to a registered connection id."""
        try:
            spec = parse_connection(value)
        except ValueError as exc:
            exit_from_exc(exc, message=str(exc), code=2)
        return self.open(spec)


def build_context(settings: Settings | None = None) -> AppContext:
    """Build the services shared by every command of one invocation."""
    settings = settings or Settings.from_env()
    catalog = CatalogService(settings=settings)
    return AppContext(settings=settings, catalog=catalog, compare=CompareService(catalog))
