from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import closing
from pathlib import Path

from dbcompare.core.dialects import get_dialect
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

_Q = get_dialect("sqlite").quote_identifier


def _connect(path: Path) -> sqlite3.Connection:
    if not path.exists():
        raise FileNotFoundError(f"SQLite database not found: {path}")
    return sqlite3.connect(str(path))


class SqliteCatalogLoader:
    """Catalog loader for a SQLite database file, based on PRAGMA introspection.

    A fresh connection is opened per call, so one loader can serve the
    concurrent detail loads of the catalog service.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _query(self, sql: str) -> list[tuple]:
        with closing(_connect(self.path)) as conn:
            return conn.execute(sql).fetchall()

    def list_schemas(self) -> list[SchemaInfo]:
        rows = self._query("PRAGMA database_list")
        # (seq, name, file); the temp database is not part of the catalog
        return [SchemaInfo(name=r[1]) for r in rows if r[1] != "temp"]

    def list_tables(self, schema: str) -> list[TableInfo]:
        rows = self._query(
            f"SELECT name, type FROM {_Q(schema)}.sqlite_master "
            "WHERE type IN ('table', 'view') AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [TableInfo(name=r[0], schema=schema, table_type=r[1].upper()) for r in rows]

    def list_columns(self, schema: str, table: str) -> list[ColumnInfo]:
        rows = self._query(f"PRAGMA {_Q(schema)}.table_info({_Q(table)})")
        # (cid, name, type, notnull, dflt_value, pk)
        return [
            ColumnInfo(
                name=r[1],
                data_type=r[2],
                is_nullable=not r[3],
                column_default=r[4],
                is_primary_key=bool(r[5]),
                ordinal_position=r[0] + 1,
            )
            for r in rows
        ]

    def list_indexes(self, schema: str, table: str) -> list[IndexInfo]:
        out: list[IndexInfo] = []
        with closing(_connect(self.path)) as conn:
            # (seq, name, unique, origin, partial)
            for _, name, unique, origin, *_rest in conn.execute(
                f"PRAGMA {_Q(schema)}.index_list({_Q(table)})"
            ).fetchall():
                info = conn.execute(f"PRAGMA {_Q(schema)}.index_info({_Q(name)})").fetchall()
                out.append(
                    IndexInfo(
                        name=name,
                        columns=tuple(r[2] for r in sorted(info) if r[2] is not None),
                        is_unique=bool(unique),
                        is_primary=origin == "pk",
                        index_type="btree",
                    )
                )
        out.sort(key=lambda i: i.name)
        return out

    def list_foreign_keys(self, schema: str, table: str) -> list[ForeignKeyInfo]:
        rows = self._query(f"PRAGMA {_Q(schema)}.foreign_key_list({_Q(table)})")
        # (id, seq, table, from, to, on_update, on_delete, match)
        grouped: dict[int, list[tuple]] = {}
        for r in rows:
            grouped.setdefault(r[0], []).append(r)

        out: list[ForeignKeyInfo] = []
        for fk_id in sorted(grouped):
            parts = sorted(grouped[fk_id], key=lambda r: r[1])
            columns = tuple(r[3] for r in parts)
            first = parts[0]
            out.append(
                ForeignKeyInfo(
                    # SQLite does not report constraint names
                    name=f"fk_{table}_{'_'.join(columns)}",
                    columns=columns,
                    referenced_schema=schema,
                    referenced_table=first[2],
                    referenced_columns=tuple(r[4] or "" for r in parts),
                    on_update=first[5],
                    on_delete=first[6],
                )
            )
        return out

    def get_table_stats(self, schema: str, table: str) -> TableStats | None:
        rows = self._query(f"SELECT COUNT(*) FROM {_Q(schema)}.{_Q(table)}")
        return TableStats(row_count=rows[0][0]) if rows else None

    def list_routines(self, schema: str) -> list[RoutineInfo]:
        return []

    def list_sequences(self, schema: str) -> list[SequenceInfo]:
        return []

    def list_enums(self, schema: str) -> list[EnumInfo]:
        return []


class SqliteQueryExecutor:
    """Runs SQL against a SQLite database file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def execute(self, sql: str) -> QueryResult:
        started = time.perf_counter()
        with closing(_connect(self.path)) as conn:
            cursor = conn.execute(sql)
            rows = cursor.fetchall()
            columns = [d[0] for d in cursor.description or ()]
            conn.commit()
        elapsed = (time.perf_counter() - started) * 1000
        logger.debug("sqlite query returned %d row(s) in %.1f ms", len(rows), elapsed)
        return QueryResult(columns=columns, rows=rows, execution_time_ms=elapsed)
