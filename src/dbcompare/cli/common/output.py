"""Output formatting utilities for the CLI."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

import questionary
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table
from rich.theme import Theme

from dbcompare.cli.common.tui_style import QUESTIONARY_STYLE_CONFIRM
from dbcompare.core.cells import cell_to_string
from dbcompare.core.diff_models import (
    DataDiffResult,
    DiffStatus,
    ObjectDiff,
    ResultCompareResult,
    RowStatus,
    TableDiffResult,
)

_THEME = Theme(
    {
        "ok": "bold green",
        "warn": "yellow",
        "err": "bold red",
        "title": "bold cyan",
        "meta": "dim",
    }
)

console = Console(theme=_THEME)
err_console = Console(theme=_THEME, stderr=True)

_STATUS_STYLE = {
    "added": "ok",
    "removed": "err",
    "changed": "warn",
    "unchanged": "meta",
    "identical": "meta",
}

DEFAULT_MAX_ROWS = 100


def _status(status) -> str:
    style = _STATUS_STYLE.get(status.value, "meta")
    return f"[{style}]{status.value}[/{style}]"


def _cell(value: Any) -> str:
    return escape(cell_to_string(value))


def _row_cells(
    source_row: Sequence[Any] | None,
    target_row: Sequence[Any] | None,
    changed: Iterable[int],
    width: int,
) -> list[str]:
    """Render one row; changed cells show `source → target`."""
    changed = set(changed)
    row = target_row if source_row is None else source_row
    cells: list[str] = []
    for i in range(width):
        value = row[i] if row is not None and i < len(row) else None
        if i in changed and source_row is not None and target_row is not None:
            after = target_row[i] if i < len(target_row) else None
            cells.append(f"[warn]{_cell(value)} → {_cell(after)}[/warn]")
        else:
            cells.append(_cell(value))
    return cells


@dataclass(frozen=True)
class Out:
    """Output formatter for CLI messages, prompts and diff tables."""

    def info(self, msg: str) -> None:
        console.print(f"[title]›[/] {msg}")

    @contextmanager
    def status(self, msg: str):
        """Show a transient status spinner while work is in progress."""
        with err_console.status(msg, spinner="dots"):
            yield

    def success(self, msg: str) -> None:
        console.print(f"[ok]✓[/] {msg}")

    def warn(self, msg: str) -> None:
        console.print(f"[warn]⚠[/] {msg}")

    def error(self, msg: str) -> None:
        console.print(f"[err]✗[/] {msg}")

    def header(self, title: str) -> None:
        console.print(f"[title]{title}[/]")

    def print(self, msg: str) -> None:
        console.print(msg)

    def kv(self, items: Mapping[str, Any]) -> None:
        """Print key-value pairs."""
        for k, v in items.items():
            console.print(f"[meta]{k}[/]: {v}")

    def confirm(self, message: str, *, default: bool = False) -> bool:
        """Ask a yes/no question with the shared prompt style."""
        console.print("[meta]Use y/n then Enter[/]")
        prompt = questionary.confirm(
            f"[dbcompare] {message}",
            default=default,
            style=QUESTIONARY_STYLE_CONFIRM,
            qmark="✦",
            auto_enter=False,
        )
        return bool(prompt.ask())

    def sql(self, script: str) -> None:
        """Print a SQL script with syntax highlighting."""
        console.print(Syntax(script, "sql", theme="ansi_dark", word_wrap=True))

    def schemas_table(
        self,
        schemas: Iterable[str],
        visible: Iterable[str],
        active: str | None,
        title: str = "Schemas",
    ) -> None:
        """Render schema names with their visibility and the active schema."""
        shown = set(visible)
        t = Table(title=title, show_lines=False)
        t.add_column("Schema", style="ok")
        t.add_column("Visible")
        t.add_column("Active", style="title")
        for name in schemas:
            t.add_row(
                escape(name),
                "yes" if name in shown else "[meta]hidden[/]",
                "●" if name == active else "",
            )
        console.print(t)

    def _objects_table(self, title: str, diffs: Sequence[ObjectDiff]) -> None:
        t = Table(title=title, show_lines=False)
        t.add_column("Name", style="ok", no_wrap=True)
        t.add_column("Status")
        t.add_column("Details", style="meta")
        for d in diffs:
            t.add_row(escape(d.name), _status(d.status), escape("; ".join(d.changes)))
        console.print(t)

    def table_diff(self, diff: TableDiffResult, *, show_unchanged: bool = False) -> None:
        """
        Render a structural diff: one table per object kind, then the summary.

        Unchanged objects are hidden unless `show_unchanged` is set.
        """
        self.header(f"{diff.source_table} → {diff.target_table}")
        for title, diffs in (
            ("Columns", diff.columns),
            ("Indexes", diff.indexes),
            ("Foreign keys", diff.foreign_keys),
        ):
            rows = [d for d in diffs if show_unchanged or d.status is not DiffStatus.UNCHANGED]
            if rows:
                self._objects_table(title, rows)

        s = diff.summary
        self.kv({"added": s.added, "removed": s.removed, "changed": s.changed, "unchanged": s.unchanged})
        if not s.has_changes:
            self.success("Table definitions are identical.")

    def data_diff_table(self, result: DataDiffResult, *, max_rows: int = DEFAULT_MAX_ROWS) -> None:
        """Render differing rows (identical rows are counted, not listed)."""
        t = Table(title="Data diff", show_lines=False)
        t.add_column("Status", no_wrap=True)
        for name in result.columns:
            style = "title" if name in result.key_columns else None
            t.add_column(escape(name), style=style)

        differing = [r for r in result.rows if r.status is not RowStatus.IDENTICAL]
        for r in differing[:max_rows]:
            t.add_row(
                _status(r.status),
                *_row_cells(r.source_row, r.target_row, r.changed_columns, len(result.columns)),
            )
        if differing:
            console.print(t)
        if len(differing) > max_rows:
            self.print(f"[meta]… {len(differing) - max_rows} more differing row(s) not shown[/]")

        self._row_summary(result.summary)
        if result.truncated:
            self.warn("Row limit reached; only the first rows of each table were compared.")

    def compare_table(self, result: ResultCompareResult, *, max_rows: int = DEFAULT_MAX_ROWS) -> None:
        """Render a query result comparison."""
        t = Table(title="Result comparison", show_lines=False)
        t.add_column("Status", no_wrap=True)
        for name in result.columns:
            t.add_column(escape(name))

        differing = [r for r in result.rows if r.status is not RowStatus.IDENTICAL]
        for r in differing[:max_rows]:
            t.add_row(
                _status(r.status),
                *_row_cells(r.source_row, r.target_row, r.changed_columns, len(result.columns)),
            )
        if differing:
            console.print(t)
        if len(differing) > max_rows:
            self.print(f"[meta]… {len(differing) - max_rows} more differing row(s) not shown[/]")

        self._row_summary(result.summary)
        if result.positional:
            self.print("[meta]Rows were matched by position; pick key columns to match by value.[/]")

    def _row_summary(self, summary) -> None:
        self.kv(
            {
                "added": summary.added,
                "removed": summary.removed,
                "changed": summary.changed,
                "identical": summary.identical,
            }
        )


out = Out()
