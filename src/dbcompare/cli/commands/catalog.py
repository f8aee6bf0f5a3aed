"""Catalog browsing commands."""

from __future__ import annotations

import typer

from dbcompare.cli.common.context import LOAD_ERRORS, AppContext
from dbcompare.cli.common.exits import exit_from_exc
from dbcompare.cli.common.options import ConnArg, HideOpt
from dbcompare.cli.common.output import out


def schemas(
    ctx: typer.Context,
    conn: str = ConnArg,
    hide: list[str] = HideOpt,
):
    """List the schemas of a connection with their visibility."""
    appctx: AppContext = ctx.obj
    connection = appctx.connection(conn)
    catalog = appctx.catalog

    try:
        with out.status("Loading schemas..."):
            known = [s.name for s in catalog.load_schemas(connection)]
    except LOAD_ERRORS as exc:
        exit_from_exc(exc, message=f"Failed to load schemas: {exc}")

    for name in hide:
        if not catalog.visibility.is_visible(connection, name):
            continue
        if not catalog.visibility.toggle(connection, name, known):
            out.warn(f"Cannot hide '{name}': unknown schema or the last visible one.")

    dialect = catalog.connection(connection).dialect
    visible = catalog.visibility.filter(connection, known)
    active = catalog.visibility.active_schema(connection, dialect, known)
    out.schemas_table(known, visible, active, title=f"Schemas of {connection}")
