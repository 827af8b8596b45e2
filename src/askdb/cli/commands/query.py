"""Query commands: validate, run, ask and explain."""

from pathlib import Path
from typing import Annotated

import typer

from askdb.cli.context import CLIContext
from askdb.cli.output import OutputFormatter
from askdb.query.validator import GuardrailValidator

# Create query subcommand group
app = typer.Typer(help="Ask questions and run guarded SQL")


def _read_sql(sql: str | None, from_file: str | None) -> str:
    if from_file:
        return Path(from_file).read_text()
    if sql:
        return sql
    raise typer.BadParameter("Either provide SQL or use --file")


@app.command("validate")
def query_validate(
    ctx: typer.Context,
    sql: Annotated[
        str | None,
        typer.Argument(help="SQL query to validate"),
    ] = None,
    from_file: Annotated[
        str | None,
        typer.Option("--file", "-f", help="Load SQL from file"),
    ] = None,
) -> None:
    """Check SQL against the guardrails without executing it.

    Examples:

        askdb query validate "SELECT * FROM orders"
        askdb query validate --file query.sql
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        sql_content = _read_sql(sql, from_file)
        validator = GuardrailValidator()
        result = validator.validate(sql_content)

        if cli_ctx.json_output:
            formatter.print_data(
                {
                    "valid": result.valid,
                    "error": result.error,
                    "violation": result.violation,
                    "sanitized": validator.sanitize(sql_content) if result.valid else None,
                }
            )
        elif result.valid:
            formatter.print_success("Query is valid", {"sanitized": validator.sanitize(sql_content)})
        else:
            result.raise_for_error()
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)

    if not result.valid:
        raise typer.Exit(code=1)


@app.command("run")
def query_run(
    ctx: typer.Context,
    sql: Annotated[
        str | None,
        typer.Argument(help="SQL query to execute"),
    ] = None,
    from_file: Annotated[
        str | None,
        typer.Option("--file", "-f", help="Load SQL from file"),
    ] = None,
) -> None:
    """Execute SQL through the guardrails and the access-mode check.

    Examples:

        askdb query run "SELECT id, email FROM customers LIMIT 10"
        askdb query run --file report.sql
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        sql_content = _read_sql(sql, from_file)
        db = cli_ctx.get_db()
        result = cli_ctx.run(db.run_sql(sql_content, cli_ctx.connection_id))
        formatter.print_query_result(result)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)


@app.command("ask")
def query_ask(
    ctx: typer.Context,
    question: Annotated[str, typer.Argument(help="Question in plain language")],
    insights: Annotated[
        bool,
        typer.Option("--insights/--no-insights", help="Add AI insights about the result"),
    ] = False,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="LLM API key for this request", envvar="ASKDB_REQUEST_API_KEY"),
    ] = None,
) -> None:
    """Turn a question into SQL, check it and run it.

    Examples:

        askdb query ask "How many orders were placed last month?"
        askdb query ask "Top 10 products by revenue" --insights
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        db = cli_ctx.get_db()
        answer = cli_ctx.run(
            db.answer(
                question,
                cli_ctx.connection_id,
                api_key=api_key,
                include_insights=insights,
            )
        )

        if cli_ctx.json_output:
            formatter.print_data(answer)
        else:
            formatter.print_query_result(answer.result)
            if answer.insights:
                formatter.print_text("Insights", answer.insights)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)


@app.command("explain")
def query_explain(
    ctx: typer.Context,
    sql: Annotated[
        str | None,
        typer.Argument(help="SQL query to explain"),
    ] = None,
    from_file: Annotated[
        str | None,
        typer.Option("--file", "-f", help="Load SQL from file"),
    ] = None,
) -> None:
    """Explain SQL in plain English (does not touch the database)."""
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        sql_content = _read_sql(sql, from_file)
        db = cli_ctx.get_db()
        explanation = cli_ctx.run(db.explain_sql(sql_content))
        formatter.print_text("Explanation", explanation)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1)
