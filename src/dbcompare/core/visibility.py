"""Per-connection schema visibility.

Visibility is either "all" (stored as ``None``) or an explicit, non-empty,
ordered list of schema names. Toggling works on the complement: hiding one
schema while everything is visible switches to "all except that one", and
re-showing the last hidden schema collapses the list back to "all".
At least one schema always stays visible.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from dbcompare.core.dialects import Dialect

logger = logging.getLogger(__name__)


class SchemaVisibilityFilter:
    """Tracks which schemas each connection shows in the catalog tree."""

    def __init__(self) -> None:
        self._visible: dict[str, list[str] | None] = {}
        # connections whose visibility was decided (defaults or user choice)
        self._decided: set[str] = set()
        self._lock = threading.Lock()

    def visible(self, connection: str) -> list[str] | None:
        """Return the explicit visible list, or None when all schemas are shown."""
        with self._lock:
            current = self._visible.get(connection)
            return list(current) if current is not None else None

    def is_visible(self, connection: str, name: str) -> bool:
        with self._lock:
            current = self._visible.get(connection)
            return current is None or name in current

    def filter(self, connection: str, names: Iterable[str]) -> list[str]:
        """Keep only the visible names, preserving input order."""
        with self._lock:
            current = self._visible.get(connection)
        if current is None:
            return list(names)
        allowed = set(current)
        return [n for n in names if n in allowed]

    def set_visible(self, connection: str, names: Iterable[str] | None) -> None:
        """
        Replace the visibility of a connection with an explicit choice.

        An empty selection is rejected: at least one schema must stay visible.
        """
        with self._lock:
            if names is None:
                self._visible[connection] = None
            else:
                picked = list(dict.fromkeys(names))
                if not picked:
                    raise ValueError("At least one schema must stay visible.")
                self._visible[connection] = picked
            self._decided.add(connection)

    def toggle(self, connection: str, name: str, all_known: Iterable[str]) -> bool:
        """
        Flip the visibility of one schema.

        Args:
            connection: Connection identifier.
            name: Schema to show or hide.
            all_known: Every schema currently known for the connection.

        Returns:
            True if visibility changed, False if the toggle was rejected
            (it would leave no schema visible).
        """
        known = list(dict.fromkeys(all_known))
        with self._lock:
            current = self._visible.get(connection)

            if current is None:
                remaining = [s for s in known if s != name]
                if not remaining:
                    return False
                if len(remaining) == len(known):
                    # name is not a known schema; hiding it changes nothing
                    return False
                nxt: list[str] | None = remaining
            elif name in current:
                remaining = [s for s in current if s != name]
                if not remaining:
                    return False
                nxt = remaining
            else:
                grown = current + [name]
                nxt = None if set(known) <= set(grown) else grown

            self._visible[connection] = nxt
            self._decided.add(connection)
            return True

    def apply_defaults(self, connection: str, all_known: Iterable[str], dialect: Dialect) -> bool:
        """
        Hide engine-internal schemas the first time a connection is loaded.

        Does nothing once visibility has been decided for the connection, so a
        user's explicit choice is never overridden.

        Returns:
            True if defaults were applied.
        """
        known = list(dict.fromkeys(all_known))
        with self._lock:
            if connection in self._decided:
                return False
            self._decided.add(connection)
            user_schemas = [s for s in known if not dialect.is_internal_schema(s)]
            if not user_schemas or len(user_schemas) == len(known):
                self._visible[connection] = None
                return False
            self._visible[connection] = user_schemas
        logger.debug(
            "Hiding %d internal schema(s) on %s", len(known) - len(user_schemas), connection
        )
        return True

    def active_schema(
        self, connection: str, dialect: Dialect, all_known: Iterable[str] = ()
    ) -> str | None:
        """
        Return the schema unqualified names resolve against.

        The first visible schema when the list is explicit, otherwise the
        dialect's conventional default, otherwise the first known schema for
        engines without one (MySQL-style databases).
        """
        visible = self.visible(connection)
        if visible:
            return visible[0]
        if dialect.default_schema:
            return dialect.default_schema
        known = list(all_known)
        return known[0] if known else None

    def clear(self, connection: str) -> None:
        """Forget visibility state of a connection (disconnect)."""
        with self._lock:
            self._visible.pop(connection, None)
            self._decided.discard(connection)
