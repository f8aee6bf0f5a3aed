"""Common CLI options and arguments."""

from pathlib import Path

import typer

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Log catalog loads and cache activity",
)

SourceArg = typer.Argument(
    ...,
    help="Source table as CONN::schema.table (e.g. sqlite:app.db::main.users)",
    show_default=False,
)

TargetArg = typer.Argument(
    ...,
    help="Target table as CONN::schema.table",
    show_default=False,
)

ConnArg = typer.Argument(
    ...,
    help="Connection: sqlite:PATH or databricks:PROFILE@WAREHOUSE/CATALOG",
    show_default=False,
)

RefreshOpt = typer.Option(
    False,
    "--refresh",
    help="Reload catalog metadata even if it is cached",
)

SqlOpt = typer.Option(
    False,
    "--sql",
    help="Also print the migration script for the source table",
)

AllOpt = typer.Option(
    False,
    "--all",
    help="Also list unchanged columns, indexes and foreign keys",
)

RowLimitOpt = typer.Option(
    None,
    "--row-limit",
    "-n",
    min=1,
    help="Maximum rows fetched per table (default: DBCOMPARE_DATA_DIFF_ROW_LIMIT or 5000)",
    show_default=False,
)

KeyOpt = typer.Option(
    [],
    "--key",
    "-k",
    help="Key column used to match rows. This is reusable.",
    show_default=False,
)

PickKeysOpt = typer.Option(
    False,
    "--pick-keys",
    help="Choose key columns interactively",
)

DialectOpt = typer.Option(
    None,
    "--dialect",
    "-d",
    help="Dialect of the generated DDL (default: the source connection's)",
    show_default=False,
)

OutFileOpt = typer.Option(
    None,
    "--out",
    "-o",
    help="Write the script to a file instead of printing it",
    dir_okay=False,
    path_type=Path,
)

HideOpt = typer.Option(
    [],
    "--hide",
    help="Schema to hide. This is reusable.",
    show_default=False,
)
