import threading

import pytest

from dbcompare.core.cache import MetadataCache
from dbcompare.core.catalog import CatalogService, TableRef, is_ddl_statement
from dbcompare.core.config import Settings
from dbcompare.core.dialects import get_dialect
from dbcompare.core.models import (
    CatalogKind,
    CatalogPath,
    ColumnInfo,
    IndexInfo,
    SchemaInfo,
    TableInfo,
    TableStats,
)


class _LoaderStub:
    def __init__(self, schemas=("pg_catalog", "public")):
        self.schemas = list(schemas)
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def _record(self, *call):
        with self._lock:
            self.calls.append(call)

    def list_schemas(self):
        self._record("schemas")
        return [SchemaInfo(s) for s in self.schemas]

    def list_tables(self, schema):
        self._record("tables", schema)
        return [] if schema == "empty" else [TableInfo("users", schema)]

    def list_columns(self, schema, table):
        self._record("columns", schema, table)
        return [ColumnInfo("id", "int", is_primary_key=True)]

    def list_indexes(self, schema, table):
        self._record("indexes", schema, table)
        return [IndexInfo(f"pk_{table}", ("id",), is_unique=True, is_primary=True)]

    def list_foreign_keys(self, schema, table):
        self._record("foreign_keys", schema, table)
        return []

    def get_table_stats(self, schema, table):
        self._record("stats", schema, table)
        return TableStats(row_count=42)

    def list_routines(self, schema):
        return []

    def list_sequences(self, schema):
        return []

    def list_enums(self, schema):
        return []


class _FailingLoader(_LoaderStub):
    def list_columns(self, schema, table):
        raise RuntimeError("connection reset")


class _NoStatsLoader(_LoaderStub):
    def get_table_stats(self, schema, table):
        self._record("stats", schema, table)
        return None


def _service(loader=None, **settings):
    svc = CatalogService(settings=Settings(**settings))
    svc.register("c1", loader or _LoaderStub(), get_dialect("postgresql"))
    return svc


def _count(loader, kind):
    return sum(1 for c in loader.calls if c[0] == kind)


def test_load_schemas_caches_and_applies_visibility_defaults():
    loader = _LoaderStub()
    svc = _service(loader)

    assert [s.name for s in svc.load_schemas("c1")] == ["pg_catalog", "public"]
    svc.load_schemas("c1")

    assert _count(loader, "schemas") == 1
    assert [s.name for s in svc.visible_schemas("c1")] == ["public"]


def test_force_bypasses_cache():
    loader = _LoaderStub()
    svc = _service(loader)
    svc.load_tables("c1", "public")
    svc.load_tables("c1", "public", force=True)

    assert _count(loader, "tables") == 2


def test_empty_result_is_not_reloaded():
    loader = _LoaderStub()
    svc = _service(loader)

    assert svc.load_tables("c1", "empty") == []
    assert svc.load_tables("c1", "empty") == []
    assert _count(loader, "tables") == 1


def test_load_table_detail_fetches_all_four_collections_once():
    loader = _LoaderStub()
    svc = _service(loader)
    ref = TableRef("c1", "public", "users")

    detail = svc.load_table_detail(ref)
    again = svc.load_table_detail(ref)

    assert detail.stats == TableStats(row_count=42)
    assert again == detail
    assert sorted(c[0] for c in loader.calls) == ["columns", "foreign_keys", "indexes", "stats"]


def test_detail_loads_respect_cache_cap():
    svc = _service(detail_cache_cap=2)
    for name in ("a", "b", "c"):
        svc.load_table_detail(TableRef("c1", "public", name))

    assert svc.cache.detail_keys("c1") == ["public.b", "public.c"]


def test_loader_errors_propagate_and_cache_nothing():
    svc = _service(_FailingLoader())
    ref = TableRef("c1", "public", "users")

    with pytest.raises(RuntimeError, match="connection reset"):
        svc.load_table_detail(ref)
    assert svc.cache.is_loaded("c1", CatalogKind.COLUMNS, ref.path) is False


def test_load_detail_pair_across_connections():
    svc = _service()
    svc.register("c2", _LoaderStub(), get_dialect("mysql"))

    src, tgt = svc.load_detail_pair(
        TableRef("c1", "public", "users"), TableRef("c2", "shop", "users")
    )

    assert src.columns == tgt.columns
    assert svc.cache.detail_count("c1") == 1
    assert svc.cache.detail_count("c2") == 1


def test_unknown_connection_raises_key_error():
    svc = CatalogService()
    with pytest.raises(KeyError, match="nope"):
        svc.load_schemas("nope")


def test_refresh_reloads_and_marks_time():
    loader = _LoaderStub()
    svc = _service(loader)
    svc.load_tables("c1", "public")

    svc.refresh("c1")

    assert svc.cache.is_loaded("c1", CatalogKind.TABLES, CatalogPath("public")) is False
    assert _count(loader, "schemas") == 1
    assert svc.cache.last_refreshed("c1") is not None


def test_disconnect_forgets_cache_and_visibility():
    svc = _service()
    svc.load_schemas("c1")

    svc.disconnect("c1")

    assert svc.cache.connections() == []
    assert svc.visibility.visible("c1") is None
    with pytest.raises(KeyError):
        svc.connection("c1")


def test_note_statement_clears_stats_after_ddl_only():
    svc = _service()
    ref = TableRef("c1", "public", "users")
    svc.load_table_detail(ref)

    assert svc.note_statement("c1", "SELECT * FROM users", "public", "users") is False
    assert svc.cache.get_table_stats("c1", "public", "users") is not None

    assert svc.note_statement("c1", "alter table users add column x int", "public", "users")
    assert svc.cache.get_table_stats("c1", "public", "users") is None
    assert svc.cache.get_columns("c1", "public", "users") != []


def test_reload_after_ddl_fetches_only_stats_again():
    loader = _LoaderStub()
    svc = _service(loader)
    ref = TableRef("c1", "public", "users")
    svc.load_table_detail(ref)
    svc.note_statement("c1", "ALTER TABLE users ADD COLUMN x int", "public", "users")

    detail = svc.load_table_detail(ref)

    assert detail.stats == TableStats(row_count=42)
    assert _count(loader, "stats") == 2
    assert _count(loader, "columns") == 1


def test_missing_stats_are_cached_as_loaded():
    loader = _NoStatsLoader()
    svc = _service(loader)
    ref = TableRef("c1", "public", "users")

    assert svc.load_table_detail(ref).stats is None
    svc.load_table_detail(ref)

    assert _count(loader, "stats") == 1


def test_cache_instance_is_shared_by_reference():
    cache = MetadataCache(5)
    svc = CatalogService(cache)

    assert svc.cache is cache


@pytest.mark.parametrize(
    ("sql", "expected"),
    [
        ("CREATE TABLE t (id int)", True),
        ("  drop index ix", True),
        ("-- cleanup\nTRUNCATE t", True),
        ("/* note */ RENAME TABLE a TO b", True),
        ("SELECT 1", False),
        ("INSERT INTO t VALUES (1)", False),
        ("WITH x AS (SELECT 1) SELECT * FROM x", False),
    ],
)
def test_is_ddl_statement(sql, expected):
    assert is_ddl_statement(sql) is expected


def test_schema_level_object_lists_are_cached():
    svc = _service()

    assert svc.load_routines("c1", "public") == []
    assert svc.load_sequences("c1", "public") == []
    assert svc.load_enums("c1", "public") == []
    assert svc.cache.is_loaded("c1", CatalogKind.ROUTINES, CatalogPath("public"))
    assert svc.cache.is_loaded("c1", CatalogKind.ENUMS, CatalogPath("public"))
