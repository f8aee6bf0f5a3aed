import pytest

from dbcompare.core.catalog import CatalogService, TableRef
from dbcompare.core.compare import CompareService, DataDiffState, build_select
from dbcompare.core.dialects import get_dialect
from dbcompare.core.diff_models import RowStatus
from dbcompare.core.models import ColumnInfo, QueryResult, TableStats


class _Loader:
    def __init__(self, columns):
        self.columns = columns

    def list_columns(self, schema, table):
        return list(self.columns)

    def list_indexes(self, schema, table):
        return []

    def list_foreign_keys(self, schema, table):
        return []

    def get_table_stats(self, schema, table):
        return TableStats(row_count=0)


class _Executor:
    def __init__(self, result: QueryResult):
        self.result = result
        self.sql: list[str] = []

    def execute(self, sql):
        self.sql.append(sql)
        return self.result


ID_NAME = [ColumnInfo("id", "int", is_primary_key=True), ColumnInfo("name", "text")]


def _setup(source_cols, target_cols, source_rows=(), target_rows=()):
    catalog = CatalogService()
    src_exec = _Executor(QueryResult(["id", "name"], list(source_rows)))
    tgt_exec = _Executor(QueryResult(["id", "name"], list(target_rows)))
    catalog.register("a", _Loader(source_cols), get_dialect("postgresql"), src_exec)
    catalog.register("b", _Loader(target_cols), get_dialect("mysql"), tgt_exec)
    svc = CompareService(catalog)
    return svc, src_exec, tgt_exec


SRC = TableRef("a", "public", "users")
TGT = TableRef("b", "shop", "users")


def test_schema_diff_labels_sides():
    svc, _, _ = _setup(ID_NAME, ID_NAME + [ColumnInfo("age", "int")])

    diff = svc.schema_diff(SRC, TGT)

    assert diff.source_table == "a::public.users"
    assert diff.target_table == "b::shop.users"
    assert diff.summary.added == 1


def test_data_diff_runs_keyed_selects():
    svc, src_exec, tgt_exec = _setup(
        ID_NAME,
        ID_NAME,
        source_rows=[(1, "a"), (2, "b")],
        target_rows=[(2, "b2"), (3, "c")],
    )

    report = svc.data_diff(SRC, TGT, row_limit=10)

    assert report.state is DataDiffState.OK
    assert src_exec.sql == ['SELECT "id", "name" FROM "public"."users" ORDER BY "id" LIMIT 11']
    assert tgt_exec.sql == ["SELECT `id`, `name` FROM `shop`.`users` ORDER BY `id` LIMIT 11"]
    assert {r.key_values: r.status for r in report.result.rows} == {
        ("1",): RowStatus.REMOVED,
        ("2",): RowStatus.CHANGED,
        ("3",): RowStatus.ADDED,
    }


def test_data_diff_without_primary_key_skips_queries():
    no_pk = [ColumnInfo("id", "int"), ColumnInfo("name", "text")]
    svc, src_exec, _ = _setup(no_pk, no_pk)

    report = svc.data_diff(SRC, TGT)

    assert report.state is DataDiffState.NO_PRIMARY_KEY
    assert report.result is None
    assert src_exec.sql == []


def test_data_diff_compares_shared_columns_only():
    svc, src_exec, _ = _setup(ID_NAME + [ColumnInfo("legacy", "text")], ID_NAME)

    svc.data_diff(SRC, TGT)

    assert '"legacy"' not in src_exec.sql[0]


def test_data_diff_needs_executor():
    catalog = CatalogService()
    catalog.register("a", _Loader(ID_NAME), get_dialect("postgresql"))
    svc = CompareService(catalog)

    with pytest.raises(ValueError, match="cannot run queries"):
        svc.data_diff(TableRef("a", "s", "t"), TableRef("a", "s", "u"))


def test_migration_targets_source_table_in_source_dialect():
    svc, _, _ = _setup(ID_NAME, ID_NAME + [ColumnInfo("age", "int")])

    plan = svc.migration(SRC, TGT)

    assert plan.dialect.name == "PostgreSQL"
    assert plan.statements == ['ALTER TABLE "public"."users" ADD COLUMN "age" int;']
    assert plan.statements[0] in plan.script


def test_run_queries_and_compare():
    svc, _, _ = _setup(ID_NAME, ID_NAME, source_rows=[(1, "a")], target_rows=[(1, "b")])

    source, target = svc.run_queries("a", "SELECT 1", "b", "SELECT 2")
    result = svc.compare_results(source, target, key_columns=[0])

    assert result.summary.changed == 1


@pytest.mark.parametrize(
    ("dialect", "expected"),
    [
        ("mssql", "SELECT TOP 5 [id] FROM [dbo].[t] ORDER BY [id]"),
        ("oracle", 'SELECT "id" FROM "dbo"."t" ORDER BY "id" FETCH FIRST 5 ROWS ONLY'),
        ("sqlite", 'SELECT "id" FROM "dbo"."t" ORDER BY "id" LIMIT 5'),
    ],
)
def test_build_select_row_cap_syntax(dialect, expected):
    assert build_select(get_dialect(dialect), "dbo", "t", ["id"], ["id"], 5) == expected

