"""Per-connection catalog metadata cache with LRU eviction of table details.

The cache remembers catalog snapshots (schemas, tables, columns, indexes,
foreign keys, table stats, routines, sequences, enums) for many connections
at once. Snapshots are replaced wholesale on every `set`; nothing is merged.

Per-table detail (columns + indexes + foreign keys + stats) is the only part
that grows with browsing, so it is bounded: each connection keeps at most
`detail_cap` tables' worth of detail and drops the least recently touched
tables first. The four detail collections of a table are always dropped
together. Schema, table, routine, sequence and enum lists are never evicted.

The cache never loads anything itself and a miss is never an error: `get`
returns an empty value. Callers that need to tell "loaded but empty" apart
from "not loaded" use `is_loaded`.

One instance is meant to be created per session and shared by reference
(see :class:`dbcompare.core.catalog.CatalogService`).
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Callable

from dbcompare.core.config import DEFAULT_DETAIL_CACHE_CAP
from dbcompare.core.models import (
    DETAIL_KINDS,
    CatalogKind,
    CatalogPath,
    ColumnInfo,
    EnumInfo,
    ForeignKeyInfo,
    IndexInfo,
    RoutineInfo,
    SchemaInfo,
    SequenceInfo,
    TableDetail,
    TableInfo,
    TableStats,
)

logger = logging.getLogger(__name__)

_CONNECTION_PATH = CatalogPath()


@dataclass
class _ConnectionEntry:
    """Catalog maps and access-order bookkeeping of a single connection."""

    entries: dict[CatalogKind, dict[str, Any]] = field(
        default_factory=lambda: {kind: {} for kind in CatalogKind}
    )
    # table key -> last access (monotonic); iteration order is recency order
    recency: OrderedDict[str, float] = field(default_factory=OrderedDict)
    last_refreshed: float | None = None
    lock: threading.RLock = field(default_factory=threading.RLock)

    def has_detail(self, table_key: str) -> bool:
        return any(table_key in self.entries[kind] for kind in DETAIL_KINDS)


def _empty(kind: CatalogKind) -> Any:
    """Empty value returned on a cache miss."""
    return None if kind is CatalogKind.STATS else []


def _check_path(kind: CatalogKind, path: CatalogPath) -> None:
    if kind.is_detail:
        if path.table is None:
            raise ValueError(f"{kind.value} entries need a `schema.table` path.")
    elif kind is not CatalogKind.SCHEMAS and (not path.schema or path.table is not None):
        raise ValueError(f"{kind.value} entries need a `schema` path.")


class MetadataCache:
    """
    Multi-connection catalog cache.

    Thread safety: a short global lock guards the connection map; each
    connection's maps and recency index are guarded by that connection's own
    lock, so loads for different connections never contend.
    """

    def __init__(
        self,
        detail_cap: int = DEFAULT_DETAIL_CACHE_CAP,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Create an empty cache.

        Args:
            detail_cap: Maximum number of tables with cached detail per connection.
            clock: Monotonic time source used for last-access timestamps.
        """
        if detail_cap < 1:
            raise ValueError("detail_cap must be >= 1")
        self.detail_cap = detail_cap
        self._clock = clock
        self._connections: dict[str, _ConnectionEntry] = {}
        self._lock = threading.Lock()

    def _entry(self, connection: str, *, create: bool) -> _ConnectionEntry | None:
        with self._lock:
            entry = self._connections.get(connection)
            if entry is None and create:
                entry = _ConnectionEntry()
                self._connections[connection] = entry
            return entry

    # ---- generic operations ----
    def get(self, connection: str, kind: CatalogKind, path: CatalogPath = _CONNECTION_PATH) -> Any:
        """
        Return the cached snapshot, or an empty value on a miss.

        Reading a detail collection that is present refreshes the table's
        recency ("touch on read"). Never blocks on a load and never loads.
        """
        entry = self._entry(connection, create=False)
        if entry is None:
            return _empty(kind)
        with entry.lock:
            bucket = entry.entries[kind]
            if path.key not in bucket:
                return _empty(kind)
            if kind.is_detail:
                self._touch(entry, path.key)
            return bucket[path.key]

    def set(
        self,
        connection: str,
        kind: CatalogKind,
        path: CatalogPath,
        snapshot: Any,
    ) -> list[str]:
        """
        Replace the snapshot stored for (kind, path).

        For detail kinds this also refreshes the table's last-access time and
        runs an eviction check.

        Returns:
            Table keys (`schema.table`) evicted as a consequence of this call.
        """
        _check_path(kind, path)
        entry = self._entry(connection, create=True)
        with entry.lock:
            if isinstance(snapshot, (list, tuple)):
                snapshot = list(snapshot)
            entry.entries[kind][path.key] = snapshot
            if not kind.is_detail:
                return []
            self._touch(entry, path.key)
            return self._evict_locked(connection, entry)

    def is_loaded(
        self, connection: str, kind: CatalogKind, path: CatalogPath = _CONNECTION_PATH
    ) -> bool:
        """True if (kind, path) was set, even when the stored snapshot is empty."""
        entry = self._entry(connection, create=False)
        if entry is None:
            return False
        with entry.lock:
            return path.key in entry.entries[kind]

    def evict(self, connection: str) -> list[str]:
        """
        Drop the least recently touched tables above the detail cap.

        Returns:
            Evicted table keys, oldest first. Empty when under the cap.
        """
        entry = self._entry(connection, create=False)
        if entry is None:
            return []
        with entry.lock:
            return self._evict_locked(connection, entry)

    def clear_connection(self, connection: str) -> None:
        """Forget every catalog entry and access record of a connection."""
        with self._lock:
            removed = self._connections.pop(connection, None)
        if removed is not None:
            logger.debug("Cleared metadata cache for connection %s", connection)

    def clear_table_stats(self, connection: str, path: CatalogPath) -> None:
        """Drop only the stats entry of a table (row counts are stale after DDL)."""
        entry = self._entry(connection, create=False)
        if entry is None:
            return
        with entry.lock:
            entry.entries[CatalogKind.STATS].pop(path.key, None)
            if not entry.has_detail(path.key):
                entry.recency.pop(path.key, None)
        logger.debug("Cleared table stats for %s on %s", path.key, connection)

    # ---- inspection ----
    def connections(self) -> list[str]:
        """Return the connections that currently have cache entries."""
        with self._lock:
            return list(self._connections)

    def detail_count(self, connection: str) -> int:
        """Number of tables with cached detail for a connection."""
        entry = self._entry(connection, create=False)
        if entry is None:
            return 0
        with entry.lock:
            return len(entry.recency)

    def detail_keys(self, connection: str) -> list[str]:
        """Table keys with cached detail, least recently touched first."""
        entry = self._entry(connection, create=False)
        if entry is None:
            return []
        with entry.lock:
            return list(entry.recency)

    def last_access(self, connection: str, path: CatalogPath) -> float | None:
        """Return the last-access timestamp of a table's detail, if cached."""
        entry = self._entry(connection, create=False)
        if entry is None:
            return None
        with entry.lock:
            return entry.recency.get(path.key)

    def mark_refreshed(self, connection: str) -> None:
        """Record the time of a full catalog refresh."""
        entry = self._entry(connection, create=True)
        with entry.lock:
            entry.last_refreshed = time.time()

    def last_refreshed(self, connection: str) -> float | None:
        """Wall-clock time of the last full refresh, None if never refreshed."""
        entry = self._entry(connection, create=False)
        return entry.last_refreshed if entry is not None else None

    # ---- internals ----
    def _touch(self, entry: _ConnectionEntry, table_key: str) -> None:
        entry.recency[table_key] = self._clock()
        entry.recency.move_to_end(table_key)

    def _evict_locked(self, connection: str, entry: _ConnectionEntry) -> list[str]:
        excess = len(entry.recency) - self.detail_cap
        if excess <= 0:
            return []
        evicted: list[str] = []
        for _ in range(excess):
            table_key, _ = entry.recency.popitem(last=False)
            for kind in DETAIL_KINDS:
                entry.entries[kind].pop(table_key, None)
            evicted.append(table_key)
        logger.debug(
            "Evicted %d table detail entries on %s: %s",
            len(evicted),
            connection,
            ", ".join(evicted),
        )
        return evicted

    # ---- typed accessors ----
    def get_schemas(self, connection: str) -> list[SchemaInfo]:
        return self.get(connection, CatalogKind.SCHEMAS)

    def set_schemas(self, connection: str, schemas: list[SchemaInfo]) -> None:
        self.set(connection, CatalogKind.SCHEMAS, _CONNECTION_PATH, schemas)

    def get_tables(self, connection: str, schema: str) -> list[TableInfo]:
        return self.get(connection, CatalogKind.TABLES, CatalogPath(schema))

    def set_tables(self, connection: str, schema: str, tables: list[TableInfo]) -> None:
        self.set(connection, CatalogKind.TABLES, CatalogPath(schema), tables)

    def get_columns(self, connection: str, schema: str, table: str) -> list[ColumnInfo]:
        return self.get(connection, CatalogKind.COLUMNS, CatalogPath(schema, table))

    def set_columns(
        self, connection: str, schema: str, table: str, columns: list[ColumnInfo]
    ) -> list[str]:
        return self.set(connection, CatalogKind.COLUMNS, CatalogPath(schema, table), columns)

    def get_indexes(self, connection: str, schema: str, table: str) -> list[IndexInfo]:
        return self.get(connection, CatalogKind.INDEXES, CatalogPath(schema, table))

    def set_indexes(
        self, connection: str, schema: str, table: str, indexes: list[IndexInfo]
    ) -> list[str]:
        return self.set(connection, CatalogKind.INDEXES, CatalogPath(schema, table), indexes)

    def get_foreign_keys(
        self, connection: str, schema: str, table: str
    ) -> list[ForeignKeyInfo]:
        return self.get(connection, CatalogKind.FOREIGN_KEYS, CatalogPath(schema, table))

    def set_foreign_keys(
        self, connection: str, schema: str, table: str, fks: list[ForeignKeyInfo]
    ) -> list[str]:
        return self.set(connection, CatalogKind.FOREIGN_KEYS, CatalogPath(schema, table), fks)

    def get_table_stats(self, connection: str, schema: str, table: str) -> TableStats | None:
        return self.get(connection, CatalogKind.STATS, CatalogPath(schema, table))

    def set_table_stats(
        self, connection: str, schema: str, table: str, stats: TableStats | None
    ) -> list[str]:
        return self.set(connection, CatalogKind.STATS, CatalogPath(schema, table), stats)

    def get_routines(self, connection: str, schema: str) -> list[RoutineInfo]:
        return self.get(connection, CatalogKind.ROUTINES, CatalogPath(schema))

    def set_routines(self, connection: str, schema: str, routines: list[RoutineInfo]) -> None:
        self.set(connection, CatalogKind.ROUTINES, CatalogPath(schema), routines)

    def get_sequences(self, connection: str, schema: str) -> list[SequenceInfo]:
        return self.get(connection, CatalogKind.SEQUENCES, CatalogPath(schema))

    def set_sequences(
        self, connection: str, schema: str, sequences: list[SequenceInfo]
    ) -> None:
        self.set(connection, CatalogKind.SEQUENCES, CatalogPath(schema), sequences)

    def get_enums(self, connection: str, schema: str) -> list[EnumInfo]:
        return self.get(connection, CatalogKind.ENUMS, CatalogPath(schema))

    def set_enums(self, connection: str, schema: str, enums: list[EnumInfo]) -> None:
        self.set(connection, CatalogKind.ENUMS, CatalogPath(schema), enums)

    def get_detail(self, connection: str, path: CatalogPath) -> TableDetail:
        """Return the four detail collections of a table (empty parts on miss)."""
        return TableDetail(
            columns=self.get(connection, CatalogKind.COLUMNS, path),
            indexes=self.get(connection, CatalogKind.INDEXES, path),
            foreign_keys=self.get(connection, CatalogKind.FOREIGN_KEYS, path),
            stats=self.get(connection, CatalogKind.STATS, path),
        )

    def set_detail(self, connection: str, path: CatalogPath, detail: TableDetail) -> list[str]:
        """Store all four detail collections of a table under one lock."""
        _check_path(CatalogKind.COLUMNS, path)
        entry = self._entry(connection, create=True)
        with entry.lock:
            entry.entries[CatalogKind.COLUMNS][path.key] = list(detail.columns)
            entry.entries[CatalogKind.INDEXES][path.key] = list(detail.indexes)
            entry.entries[CatalogKind.FOREIGN_KEYS][path.key] = list(detail.foreign_keys)
            entry.entries[CatalogKind.STATS][path.key] = detail.stats
            self._touch(entry, path.key)
            return self._evict_locked(connection, entry)
