"""Cell value kinds and comparison rules for row data.

Rows are sequences of plain Python values as returned by DB-API drivers.
Two cells are equal only when they have the same kind and the same canonical
rendering, so ``1``, ``True``, ``1.0`` and ``"1"`` are all different values
and NULL never equals anything but NULL.
"""

from __future__ import annotations

import datetime as dt
import json
from decimal import Decimal
from enum import Enum
from typing import Any, Sequence


class CellKind(str, Enum):
    """Declared value kind of a cell."""

    NULL = "null"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    DECIMAL = "decimal"
    TEXT = "text"
    TIMESTAMP = "timestamp"
    JSON = "json"
    BINARY = "binary"


def cell_kind(value: Any) -> CellKind:
    """Return the kind of a cell value (bool is checked before int)."""
    if value is None:
        return CellKind.NULL
    if isinstance(value, bool):
        return CellKind.BOOL
    if isinstance(value, int):
        return CellKind.INT
    if isinstance(value, float):
        return CellKind.FLOAT
    if isinstance(value, Decimal):
        return CellKind.DECIMAL
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return CellKind.TIMESTAMP
    if isinstance(value, (bytes, bytearray, memoryview)):
        return CellKind.BINARY
    if isinstance(value, (dict, list)):
        return CellKind.JSON
    return CellKind.TEXT


def cell_to_string(value: Any) -> str:
    """Render a cell for display and for key building."""
    kind = cell_kind(value)
    if kind is CellKind.NULL:
        return "<NULL>"
    if kind is CellKind.BOOL:
        return "true" if value else "false"
    if kind is CellKind.TIMESTAMP:
        return value.isoformat()
    if kind is CellKind.BINARY:
        return f"[{len(bytes(value))} bytes]"
    if kind is CellKind.JSON:
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def _canonical(value: Any) -> str:
    # binary display hides content; compare on the bytes themselves
    if cell_kind(value) is CellKind.BINARY:
        return bytes(value).hex()
    return cell_to_string(value)


def cells_equal(a: Any, b: Any) -> bool:
    """True when both cells have the same kind and canonical value."""
    if cell_kind(a) is not cell_kind(b):
        return False
    return _canonical(a) == _canonical(b)


def row_key(row: Sequence[Any], indices: Sequence[int]) -> tuple[str, ...]:
    """Build a matching key from the given column positions (kind-tagged)."""
    cells = [row[i] if i < len(row) else None for i in indices]
    return tuple(f"{cell_kind(c).value}:{_canonical(c)}" for c in cells)
