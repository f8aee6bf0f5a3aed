from __future__ import annotations

import typer

from dbcompare.cli import tui
from dbcompare.cli.common.context import LOAD_ERRORS, AppContext
from dbcompare.cli.common.exits import die, exit_from_exc
from dbcompare.cli.common.options import ConnArg, KeyOpt, PickKeysOpt
from dbcompare.cli.common.output import out


def _key_indices_or_exit(columns: list[str], keys: list[str]) -> list[int]:
    missing = [k for k in keys if k not in columns]
    if missing:
        die(f"Unknown key column(s): {', '.join(missing)}. Columns: {', '.join(columns)}", code=2)
    return [columns.index(k) for k in keys]


def compare_results(
    ctx: typer.Context,
    conn: str = ConnArg,
    sql_a: str = typer.Argument(..., help="Source query", show_default=False),
    sql_b: str = typer.Argument(..., help="Target query", show_default=False),
    key: list[str] = KeyOpt,
    pick_keys: bool = PickKeysOpt,
):
    """Run two queries and compare their results row by row."""
    appctx: AppContext = ctx.obj
    connection = appctx.connection(conn)

    try:
        with out.status("Running queries..."):
            source, target = appctx.compare.run_queries(connection, sql_a, connection, sql_b)
    except LOAD_ERRORS as exc:
        exit_from_exc(exc, message=f"Query failed: {exc}")

    if pick_keys:
        key_columns = tui.select_key_columns(source.columns)
    else:
        key_columns = _key_indices_or_exit(source.columns, key)

    try:
        result = appctx.compare.compare_results(source, target, key_columns)
    except ValueError as exc:
        exit_from_exc(exc, message=str(exc), code=2)

    out.kv(
        {
            "source": f"{len(source.rows)} row(s) in {source.execution_time_ms:.1f} ms",
            "target": f"{len(target.rows)} row(s) in {target.execution_time_ms:.1f} ms",
        }
    )
    out.compare_table(result)
