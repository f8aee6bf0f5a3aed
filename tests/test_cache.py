import itertools
import threading

import pytest

from dbcompare.core.cache import MetadataCache
from dbcompare.core.models import (
    CatalogKind,
    CatalogPath,
    ColumnInfo,
    IndexInfo,
    SchemaInfo,
    TableDetail,
    TableInfo,
    TableStats,
)


def _clock():
    counter = itertools.count()
    return lambda: float(next(counter))


def _cols(name: str = "id") -> list[ColumnInfo]:
    return [ColumnInfo(name=name, data_type="int", is_primary_key=True)]


def test_rejects_non_positive_cap():
    with pytest.raises(ValueError, match="detail_cap"):
        MetadataCache(0)


def test_miss_returns_empty_values():
    cache = MetadataCache()

    assert cache.get_schemas("c1") == []
    assert cache.get_columns("c1", "public", "users") == []
    assert cache.get_table_stats("c1", "public", "users") is None
    assert cache.is_loaded("c1", CatalogKind.SCHEMAS) is False


def test_set_replaces_snapshot_wholesale():
    cache = MetadataCache()
    cache.set_tables("c1", "public", [TableInfo("a", "public"), TableInfo("b", "public")])
    cache.set_tables("c1", "public", [TableInfo("c", "public")])

    assert [t.name for t in cache.get_tables("c1", "public")] == ["c"]


def test_loaded_empty_is_distinguishable_from_missing():
    cache = MetadataCache()
    cache.set_tables("c1", "empty", [])

    assert cache.get_tables("c1", "empty") == []
    assert cache.is_loaded("c1", CatalogKind.TABLES, CatalogPath("empty")) is True
    assert cache.is_loaded("c1", CatalogKind.TABLES, CatalogPath("other")) is False


def test_detail_path_requires_table():
    cache = MetadataCache()
    with pytest.raises(ValueError):
        cache.set("c1", CatalogKind.COLUMNS, CatalogPath("public"), _cols())
    with pytest.raises(ValueError):
        cache.set("c1", CatalogKind.TABLES, CatalogPath(), [])


def test_evicts_least_recently_touched_beyond_cap():
    cache = MetadataCache(200, clock=_clock())
    for i in range(205):
        cache.set_columns("c1", "public", f"t{i}", _cols())

    assert cache.detail_count("c1") == 200
    for i in range(5):
        assert cache.is_loaded("c1", CatalogKind.COLUMNS, CatalogPath("public", f"t{i}")) is False
    assert cache.get_columns("c1", "public", "t5") == _cols()
    assert cache.get_columns("c1", "public", "t204") == _cols()


def test_set_returns_evicted_keys_oldest_first():
    cache = MetadataCache(2, clock=_clock())
    cache.set_columns("c1", "s", "a", _cols())
    cache.set_columns("c1", "s", "b", _cols())

    assert cache.set_columns("c1", "s", "c", _cols()) == ["s.a"]


def test_read_touches_recency():
    cache = MetadataCache(2, clock=_clock())
    cache.set_columns("c1", "s", "a", _cols())
    cache.set_columns("c1", "s", "b", _cols())

    cache.get_columns("c1", "s", "a")
    cache.set_columns("c1", "s", "c", _cols())

    assert cache.detail_keys("c1") == ["s.a", "s.c"]


def test_eviction_drops_all_detail_kinds_together():
    cache = MetadataCache(1, clock=_clock())
    cache.set_detail(
        "c1",
        CatalogPath("s", "a"),
        TableDetail(
            columns=_cols(),
            indexes=[IndexInfo("pk_a", ("id",), is_unique=True, is_primary=True)],
            stats=TableStats(row_count=3),
        ),
    )
    cache.set_detail("c1", CatalogPath("s", "b"), TableDetail(columns=_cols()))

    assert cache.get_indexes("c1", "s", "a") == []
    assert cache.get_table_stats("c1", "s", "a") is None
    assert cache.detail_keys("c1") == ["s.b"]


def test_most_recent_entry_is_never_evicted():
    cache = MetadataCache(1, clock=_clock())
    for name in ("a", "b", "c"):
        cache.set_columns("c1", "s", name, _cols())
        assert cache.is_loaded("c1", CatalogKind.COLUMNS, CatalogPath("s", name))


def test_caps_are_per_connection():
    cache = MetadataCache(1, clock=_clock())
    cache.set_columns("c1", "s", "a", _cols())
    cache.set_columns("c2", "s", "a", _cols())

    assert cache.detail_count("c1") == 1
    assert cache.detail_count("c2") == 1


def test_schema_level_lists_are_not_evicted():
    cache = MetadataCache(1, clock=_clock())
    cache.set_schemas("c1", [SchemaInfo("s")])
    cache.set_tables("c1", "s", [TableInfo("a", "s"), TableInfo("b", "s")])
    cache.set_columns("c1", "s", "a", _cols())
    cache.set_columns("c1", "s", "b", _cols())

    assert cache.get_schemas("c1") == [SchemaInfo("s")]
    assert len(cache.get_tables("c1", "s")) == 2


def test_clear_connection_leaves_others_untouched():
    cache = MetadataCache()
    cache.set_schemas("c1", [SchemaInfo("a")])
    cache.set_schemas("c2", [SchemaInfo("b")])
    cache.mark_refreshed("c1")

    cache.clear_connection("c1")

    assert cache.get_schemas("c1") == []
    assert cache.last_refreshed("c1") is None
    assert cache.get_schemas("c2") == [SchemaInfo("b")]
    assert cache.connections() == ["c2"]


def test_clear_table_stats_keeps_other_detail():
    cache = MetadataCache()
    path = CatalogPath("s", "a")
    cache.set_detail("c1", path, TableDetail(columns=_cols(), stats=TableStats(row_count=10)))

    cache.clear_table_stats("c1", path)

    assert cache.get_table_stats("c1", "s", "a") is None
    assert cache.get_columns("c1", "s", "a") == _cols()
    assert cache.detail_count("c1") == 1


def test_clear_table_stats_drops_recency_when_nothing_left():
    cache = MetadataCache()
    cache.set_table_stats("c1", "s", "a", TableStats(row_count=1))

    cache.clear_table_stats("c1", CatalogPath("s", "a"))

    assert cache.detail_count("c1") == 0


def test_last_access_uses_clock():
    cache = MetadataCache(clock=_clock())
    cache.set_columns("c1", "s", "a", _cols())
    first = cache.last_access("c1", CatalogPath("s", "a"))
    cache.get_columns("c1", "s", "a")

    assert cache.last_access("c1", CatalogPath("s", "a")) > first


def test_concurrent_sets_respect_cap():
    cache = MetadataCache(5)

    def load(worker):
        for i in range(50):
            cache.set_columns("c1", "s", f"t{worker}_{i}", _cols())

    threads = [threading.Thread(target=load, args=(w,)) for w in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    keys = cache.detail_keys("c1")
    assert cache.detail_count("c1") == 5
    assert len(keys) == 5
    for key in keys:
        schema, table = key.split(".")
        assert cache.get_columns("c1", schema, table) == _cols()
