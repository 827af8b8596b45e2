"""Schema inspection commands."""

from typing import Annotated

import typer

from askdb.cli.context import CLIContext
from askdb.cli.output import OutputFormatter

# Create schema subcommand group
app = typer.Typer(help="Inspect the target database schema")


@app.command("tables")
def schema_tables(ctx: typer.Context) -> None:
    """List tables with row counts (-1 where counting failed)."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        tables = cli_ctx.run(db.get_tables(cli_ctx.connection_id))

        if cli_ctx.json_output:
            formatter.print_data(tables)
        else:
            formatter.print_table(
                f"Tables ({len(tables)} total)",
                [{"Table": t.table_name, "Rows": t.row_count} for t in tables],
                ["Table", "Rows"],
            )
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)


@app.command("describe")
def schema_describe(
    ctx: typer.Context,
    tables: Annotated[
        list[str] | None,
        typer.Option("--table", "-t", help="Only describe this table (repeatable)"),
    ] = None,
    as_text: Annotated[
        bool,
        typer.Option("--text", help="Print the schema context sent to the LLM"),
    ] = False,
) -> None:
    """Show columns, keys and indexes.

    Examples:

        askdb schema describe
        askdb schema describe --table orders --table customers
        askdb schema describe --text
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()

        if as_text:
            text = cli_ctx.run(db.get_schema_text(cli_ctx.connection_id, tables or None))
            formatter.print_text("Schema", text)
            return

        metadata = cli_ctx.run(db.get_schema(cli_ctx.connection_id))
        if tables:
            metadata = [t for t in metadata if t.table_name in tables]

        if cli_ctx.json_output:
            formatter.print_data(metadata)
        else:
            for table in metadata:
                formatter.print_table_metadata(table)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
