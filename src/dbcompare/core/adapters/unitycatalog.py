from __future__ import annotations

import datetime as dt
import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from databricks.sdk import WorkspaceClient
from databricks.sdk.service.sql import StatementState

from dbcompare.core.models import (
    ColumnInfo,
    EnumInfo,
    ForeignKeyInfo,
    IndexInfo,
    QueryResult,
    RoutineInfo,
    SchemaInfo,
    SequenceInfo,
    TableInfo,
    TableStats,
)

logger = logging.getLogger(__name__)

_NUM_ROWS_PROPERTY = "spark.sql.statistics.numRows"
_SIZE_PROPERTY = "spark.sql.statistics.totalSize"
_TERMINAL = {
    StatementState.SUCCEEDED,
    StatementState.FAILED,
    StatementState.CANCELED,
    StatementState.CLOSED,
}


def _enum_text(value) -> str | None:
    """SDK enums expose `.value`; older payloads may hand back plain strings."""
    if value is None:
        return None
    return str(getattr(value, "value", value))


def _parse_timestamp(text: str) -> dt.datetime:
    return dt.datetime.fromisoformat(text.replace("Z", "+00:00"))


# JSON_ARRAY results carry every cell as a string; manifest type names say what it was
_CELL_CONVERTERS: dict[str, Callable[[str], Any]] = {
    "BYTE": int,
    "SHORT": int,
    "INT": int,
    "LONG": int,
    "FLOAT": float,
    "DOUBLE": float,
    "DECIMAL": Decimal,
    "BOOLEAN": lambda text: text.lower() == "true",
    "DATE": dt.date.fromisoformat,
    "TIMESTAMP": _parse_timestamp,
    "TIMESTAMP_NTZ": _parse_timestamp,
}


def _convert_row(row: list, converters: list) -> tuple:
    out = []
    for i, cell in enumerate(row):
        convert = converters[i] if i < len(converters) else None
        if cell is None or convert is None:
            out.append(cell)
            continue
        try:
            out.append(convert(cell))
        except (ValueError, InvalidOperation):
            logger.debug("Keeping unparsed cell value %r", cell)
            out.append(cell)
    return tuple(out)


class UnityCatalogLoader:
    """Catalog loader over Unity Catalog APIs for a single catalog."""

    def __init__(self, client: WorkspaceClient, catalog: str) -> None:
        self.client = client
        self.catalog = catalog

    def _full_name(self, schema: str, table: str) -> str:
        return f"{self.catalog}.{schema}.{table}"

    def _table(self, schema: str, table: str):
        return self.client.tables.get(full_name=self._full_name(schema, table))

    def list_schemas(self) -> list[SchemaInfo]:
        """List schemas of the catalog."""
        out: list[SchemaInfo] = []
        for s in self.client.schemas.list(catalog_name=self.catalog):
            name = getattr(s, "name", None)
            full_name = getattr(s, "full_name", None)
            if not name and full_name:
                name = full_name.split(".")[-1]
            if not name:
                continue
            out.append(SchemaInfo(name=name))
        return out

    def list_tables(self, schema: str) -> list[TableInfo]:
        """List tables and views in catalog.schema."""
        out: list[TableInfo] = []
        for t in self.client.tables.list(catalog_name=self.catalog, schema_name=schema):
            name = getattr(t, "name", None)
            if not name:
                continue
            out.append(
                TableInfo(
                    name=name,
                    schema=schema,
                    table_type=_enum_text(getattr(t, "table_type", None)) or "TABLE",
                )
            )
        return out

    def _primary_key_columns(self, info) -> set[str]:
        cols: set[str] = set()
        for c in getattr(info, "table_constraints", None) or []:
            pk = getattr(c, "primary_key_constraint", None)
            if pk is not None:
                cols.update(pk.child_columns or [])
        return cols

    def list_columns(self, schema: str, table: str) -> list[ColumnInfo]:
        info = self._table(schema, table)
        pk = self._primary_key_columns(info)
        out: list[ColumnInfo] = []
        for i, c in enumerate(getattr(info, "columns", None) or []):
            position = getattr(c, "position", None)
            out.append(
                ColumnInfo(
                    name=c.name,
                    data_type=getattr(c, "type_text", None) or _enum_text(getattr(c, "type_name", None)) or "",
                    is_nullable=bool(getattr(c, "nullable", True)),
                    is_primary_key=c.name in pk,
                    ordinal_position=(position if position is not None else i) + 1,
                )
            )
        return out

    def list_indexes(self, schema: str, table: str) -> list[IndexInfo]:
        # Delta tables have no secondary indexes
        return []

    def list_foreign_keys(self, schema: str, table: str) -> list[ForeignKeyInfo]:
        info = self._table(schema, table)
        out: list[ForeignKeyInfo] = []
        for c in getattr(info, "table_constraints", None) or []:
            fk = getattr(c, "foreign_key_constraint", None)
            if fk is None:
                continue
            parent = (fk.parent_table or "").split(".")
            out.append(
                ForeignKeyInfo(
                    name=fk.name,
                    columns=tuple(fk.child_columns or ()),
                    referenced_schema=parent[-2] if len(parent) >= 2 else "",
                    referenced_table=parent[-1],
                    referenced_columns=tuple(fk.parent_columns or ()),
                )
            )
        return out

    def get_table_stats(self, schema: str, table: str) -> TableStats | None:
        props = getattr(self._table(schema, table), "properties", None) or {}
        if _NUM_ROWS_PROPERTY not in props:
            return None
        size = props.get(_SIZE_PROPERTY)
        return TableStats(
            row_count=int(props[_NUM_ROWS_PROPERTY]),
            size_bytes=int(size) if size is not None else None,
        )

    def list_routines(self, schema: str) -> list[RoutineInfo]:
        out: list[RoutineInfo] = []
        for f in self.client.functions.list(catalog_name=self.catalog, schema_name=schema):
            if not getattr(f, "name", None):
                continue
            out.append(
                RoutineInfo(
                    name=f.name,
                    schema=schema,
                    return_type=getattr(f, "full_data_type", None),
                )
            )
        return out

    def list_sequences(self, schema: str) -> list[SequenceInfo]:
        return []

    def list_enums(self, schema: str) -> list[EnumInfo]:
        return []


class DatabricksSqlExecutor:
    """Runs statements on a SQL warehouse through the Statement Execution API."""

    def __init__(
        self,
        client: WorkspaceClient,
        warehouse_id: str,
        catalog: str | None = None,
        poll_interval: float = 1.0,
    ) -> None:
        self.client = client
        self.warehouse_id = warehouse_id
        self.catalog = catalog
        self.poll_interval = poll_interval

    def execute(self, sql: str) -> QueryResult:
        """
        Run a statement and collect every result chunk.

        Raises:
            RuntimeError: If the statement does not succeed.
        """
        api = self.client.statement_execution
        started = time.perf_counter()
        resp = api.execute_statement(
            statement=sql,
            warehouse_id=self.warehouse_id,
            catalog=self.catalog,
            wait_timeout="30s",
        )
        while resp.status is not None and resp.status.state not in _TERMINAL:
            time.sleep(self.poll_interval)
            resp = api.get_statement(resp.statement_id)

        state = resp.status.state if resp.status is not None else None
        if state != StatementState.SUCCEEDED:
            error = getattr(resp.status, "error", None)
            message = getattr(error, "message", None) or f"state {_enum_text(state)}"
            raise RuntimeError(f"Statement failed: {message}")

        columns: list[str] = []
        converters: list = []
        if resp.manifest is not None and resp.manifest.schema is not None:
            for c in resp.manifest.schema.columns or []:
                columns.append(c.name)
                type_name = _enum_text(getattr(c, "type_name", None))
                converters.append(_CELL_CONVERTERS.get(type_name or ""))

        rows: list[tuple] = []
        chunk = resp.result
        while chunk is not None:
            rows.extend(_convert_row(r, converters) for r in chunk.data_array or [])
            if chunk.next_chunk_index is None:
                break
            chunk = api.get_statement_result_chunk_n(resp.statement_id, chunk.next_chunk_index)

        elapsed = (time.perf_counter() - started) * 1000
        logger.debug("warehouse %s returned %d row(s)", self.warehouse_id, len(rows))
        return QueryResult(columns=columns, rows=rows, execution_time_ms=elapsed)
