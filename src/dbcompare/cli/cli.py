"""CLI application for comparing database tables, rows and query results."""

import logging

import typer
from rich.logging import RichHandler

from dbcompare.cli.commands.catalog import schemas
from dbcompare.cli.commands.diff import data_diff, migrate, schema_diff
from dbcompare.cli.commands.results import compare_results
from dbcompare.cli.common.context import build_context
from dbcompare.cli.common.options import VerboseOpt
from dbcompare.cli.common.output import err_console

app = typer.Typer(
    help="dbcompare - compare table definitions, table data and query results",
    no_args_is_help=True,
)


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback()
def _init(ctx: typer.Context, verbose: bool = VerboseOpt):
    """Build the shared services for the invoked command."""
    _configure_logging(verbose)
    ctx.obj = build_context()


app.command("schema-diff")(schema_diff)
app.command("data-diff")(data_diff)
app.command("migrate")(migrate)
app.command("compare-results")(compare_results)
app.command("schemas")(schemas)


if __name__ == "__main__":
    app()
