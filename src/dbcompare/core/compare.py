from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from dbcompare.core.catalog import CatalogService, QueryExecutor, TableRef
from dbcompare.core.data_diff import compute_data_diff, primary_key_indices
from dbcompare.core.dialects import Dialect
from dbcompare.core.diff_models import DataDiffResult, ResultCompareResult, TableDiffResult
from dbcompare.core.migration import generate_migration, render_script
from dbcompare.core.models import QueryResult
from dbcompare.core.result_compare import compare_results
from dbcompare.core.structural_diff import compute_table_diff

logger = logging.getLogger(__name__)


class DataDiffState(str, Enum):
    OK = "ok"
    NO_PRIMARY_KEY = "no_primary_key"


@dataclass(frozen=True)
class DataDiffReport:
    """Outcome of a data diff request; `result` is None unless state is OK."""

    state: DataDiffState
    source: TableRef
    target: TableRef
    result: DataDiffResult | None = None
    message: str | None = None


@dataclass(frozen=True)
class MigrationPlan:
    diff: TableDiffResult
    statements: list[str]
    script: str
    dialect: Dialect


def build_select(
    dialect: Dialect,
    schema: str,
    table: str,
    columns: Sequence[str],
    order_by: Sequence[str],
    limit: int,
) -> str:
    """SELECT the given columns ordered by key with a row cap in the dialect's syntax."""
    q = dialect.quote_identifier
    cols = ", ".join(q(c) for c in columns)
    order = ", ".join(q(c) for c in order_by)
    target = dialect.qualify(schema, table)
    name = dialect.name.lower()
    if name == "mssql":
        return f"SELECT TOP {limit} {cols} FROM {target} ORDER BY {order}"
    if name == "oracle":
        return f"SELECT {cols} FROM {target} ORDER BY {order} FETCH FIRST {limit} ROWS ONLY"
    return f"SELECT {cols} FROM {target} ORDER BY {order} LIMIT {limit}"


class CompareService:
    """Runs the diff engines against tables and queries of registered connections."""

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog

    def _executor(self, connection: str) -> QueryExecutor:
        executor = self.catalog.connection(connection).executor
        if executor is None:
            raise ValueError(f"Connection '{connection}' cannot run queries.")
        return executor

    def schema_diff(
        self, source: TableRef, target: TableRef, *, force: bool = False
    ) -> TableDiffResult:
        src, tgt = self.catalog.load_detail_pair(source, target, force=force)
        dialect = self.catalog.connection(target.connection).dialect
        return compute_table_diff(
            src,
            tgt,
            source_table=str(source),
            target_table=str(target),
            dialect=dialect,
        )

    def data_diff(
        self,
        source: TableRef,
        target: TableRef,
        *,
        row_limit: int | None = None,
    ) -> DataDiffReport:
        """
        Compare the rows of two tables by primary key.

        Only columns present in both tables are compared, in source order. A
        source table without a primary key yields a NO_PRIMARY_KEY report
        and no query is run.
        """
        limit = row_limit or self.catalog.settings.data_diff_row_limit
        src_detail, tgt_detail = self.catalog.load_detail_pair(source, target)

        target_names = {c.name for c in tgt_detail.columns}
        column_names = [c.name for c in src_detail.columns if c.name in target_names]
        key_indices = primary_key_indices(src_detail.columns, column_names)
        if not key_indices:
            return DataDiffReport(
                DataDiffState.NO_PRIMARY_KEY,
                source,
                target,
                message=f"{source} has no primary key shared with {target}.",
            )

        key_names = [column_names[i] for i in key_indices]

        def fetch(ref: TableRef) -> QueryResult:
            dialect = self.catalog.connection(ref.connection).dialect
            # one extra row tells the engine the side was capped
            sql = build_select(dialect, ref.schema, ref.table, column_names, key_names, limit + 1)
            logger.debug("Fetching rows for %s: %s", ref, sql)
            return self._executor(ref.connection).execute(sql)

        with ThreadPoolExecutor(max_workers=2) as pool:
            src_rows = pool.submit(fetch, source)
            tgt_rows = pool.submit(fetch, target)
            src_result, tgt_result = src_rows.result(), tgt_rows.result()

        result = compute_data_diff(
            src_result.rows,
            tgt_result.rows,
            key_indices,
            column_names,
            row_limit=limit,
        )
        return DataDiffReport(DataDiffState.OK, source, target, result=result)

    def run_queries(
        self, source_connection: str, source_sql: str, target_connection: str, target_sql: str
    ) -> tuple[QueryResult, QueryResult]:
        with ThreadPoolExecutor(max_workers=2) as pool:
            a = pool.submit(self._executor(source_connection).execute, source_sql)
            b = pool.submit(self._executor(target_connection).execute, target_sql)
            return a.result(), b.result()

    def compare_results(
        self,
        source: QueryResult,
        target: QueryResult,
        key_columns: Sequence[int] = (),
    ) -> ResultCompareResult:
        return compare_results(source, target, key_columns)

    def migration(
        self,
        source: TableRef,
        target: TableRef,
        *,
        dialect: Dialect | None = None,
    ) -> MigrationPlan:
        """
        Build the DDL bringing the source table to the target definition.

        `dialect` defaults to the source connection's dialect, since that is
        where the script runs.
        """
        dialect = dialect or self.catalog.connection(source.connection).dialect
        diff = self.schema_diff(source, target)
        statements = generate_migration(diff, source.schema, source.table, dialect)
        script = render_script(diff, statements, source.schema, source.table, dialect)
        return MigrationPlan(diff, statements, script, dialect)
