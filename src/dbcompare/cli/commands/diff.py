"""Table comparison commands: schema-diff, data-diff and migrate."""

from __future__ import annotations

from pathlib import Path

import typer

from dbcompare.cli.common.context import LOAD_ERRORS, AppContext
from dbcompare.cli.common.exits import exit_from_exc, warn_exit
from dbcompare.cli.common.options import (
    AllOpt,
    DialectOpt,
    OutFileOpt,
    RefreshOpt,
    RowLimitOpt,
    SourceArg,
    SqlOpt,
    TargetArg,
)
from dbcompare.cli.common.output import out
from dbcompare.core.compare import DataDiffState
from dbcompare.core.dialects import Dialect, get_dialect
from dbcompare.core.migration import has_unsupported


def _dialect_or_exit(name: str | None) -> Dialect | None:
    if not name:
        return None
    try:
        return get_dialect(name)
    except ValueError as exc:
        exit_from_exc(exc, message=str(exc), code=2)


def schema_diff(
    ctx: typer.Context,
    source: str = SourceArg,
    target: str = TargetArg,
    sql: bool = SqlOpt,
    show_all: bool = AllOpt,
    refresh: bool = RefreshOpt,
):
    """Compare the columns, indexes and foreign keys of two tables."""
    appctx: AppContext = ctx.obj
    src = appctx.table(source)
    tgt = appctx.table(target)

    try:
        with out.status("Loading table definitions..."):
            diff = appctx.compare.schema_diff(src, tgt, force=refresh)
    except LOAD_ERRORS as exc:
        exit_from_exc(exc, message=f"Failed to load table definitions: {exc}")

    out.table_diff(diff, show_unchanged=show_all)

    if sql and diff.summary.has_changes:
        plan = appctx.compare.migration(src, tgt)
        out.sql(plan.script)


def data_diff(
    ctx: typer.Context,
    source: str = SourceArg,
    target: str = TargetArg,
    row_limit: int | None = RowLimitOpt,
):
    """Compare the rows of two tables matched by primary key."""
    appctx: AppContext = ctx.obj
    src = appctx.table(source)
    tgt = appctx.table(target)

    try:
        with out.status("Fetching rows..."):
            report = appctx.compare.data_diff(src, tgt, row_limit=row_limit)
    except LOAD_ERRORS as exc:
        exit_from_exc(exc, message=f"Data diff failed: {exc}")

    if report.state is DataDiffState.NO_PRIMARY_KEY:
        warn_exit(f"Cannot compare data: {report.message}", code=1)

    out.header(f"{src} → {tgt}")
    out.data_diff_table(report.result)


def migrate(
    ctx: typer.Context,
    source: str = SourceArg,
    target: str = TargetArg,
    dialect: str | None = DialectOpt,
    out_file: Path | None = OutFileOpt,
):
    """Generate DDL that brings the source table to the target definition."""
    appctx: AppContext = ctx.obj
    chosen = _dialect_or_exit(dialect)
    src = appctx.table(source)
    tgt = appctx.table(target)

    try:
        with out.status("Loading table definitions..."):
            plan = appctx.compare.migration(src, tgt, dialect=chosen)
    except LOAD_ERRORS as exc:
        exit_from_exc(exc, message=f"Failed to load table definitions: {exc}")

    if out_file is None:
        out.sql(plan.script)
    else:
        if out_file.exists() and not out.confirm(f"Overwrite {out_file}?", default=False):
            warn_exit("Nothing written.", code=1)
        out_file.write_text(plan.script, encoding="utf-8")
        out.success(f"Wrote {len(plan.statements)} statement(s) to {out_file}")

    if has_unsupported(plan.statements):
        out.warn(f"Some changes cannot be expressed in {plan.dialect.name}; see the UNSUPPORTED lines.")
