"""Output formatting for CLI commands."""

import json
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.pretty import pprint
from rich.table import Table

from askdb.core.types import QueryResult, TableMetadata
from askdb.exceptions import AskDBError

console = Console()


def to_jsonable(data: Any) -> Any:
    """Convert pydantic models (and lists of them) into JSON-ready values."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [to_jsonable(item) for item in data]
    return data


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_table(
        self,
        title: str,
        data: list[dict[str, Any]],
        columns: list[str],
    ) -> None:
        """Print data as Rich table or JSON array.

        Args:
            title: Table title
            data: List of row dictionaries
            columns: Column names to display
        """
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            table = Table(title=title, show_header=True, header_style="bold magenta")
            for col in columns:
                table.add_column(col)
            for row in data:
                table.add_row(*[str(row.get(col, "")) for col in columns])
            console.print(table)

    def print_query_result(self, result: QueryResult, show_sql: bool = True) -> None:
        """Print a query result with its SQL and timing."""
        if self.json_mode:
            print(json.dumps(result.model_dump(mode="json"), default=str, indent=2))
            return

        if show_sql:
            console.print(Panel(result.sql, title="SQL", border_style="cyan"))
        if result.rows:
            self.print_table(f"{result.row_count} rows", result.rows, result.columns)
        else:
            console.print("Query returned no rows", style="yellow")
        console.print(f"Execution time: {result.execution_time_ms:.2f}ms", style="dim")

    def print_table_metadata(self, table: TableMetadata) -> None:
        """Print one table's columns and keys."""
        if self.json_mode:
            print(json.dumps(table.model_dump(mode="json"), default=str, indent=2))
            return

        console.print(f"\n[bold]Table:[/bold] {table.table_name}")
        columns_table = Table(show_header=True, header_style="bold cyan")
        columns_table.add_column("Column")
        columns_table.add_column("Type")
        columns_table.add_column("Nullable")
        columns_table.add_column("Default")
        for col in table.columns:
            data_type = col.data_type
            if col.character_maximum_length:
                data_type += f"({col.character_maximum_length})"
            columns_table.add_row(
                col.name,
                data_type,
                "✓" if col.is_nullable else "",
                "" if col.default_value is None else str(col.default_value),
            )
        console.print(columns_table)

        if table.primary_keys:
            console.print(f"Primary key: {', '.join(table.primary_keys)}")
        for fk in table.foreign_keys:
            console.print(f"Foreign key: {fk.column_name} -> {fk.referenced_table}.{fk.referenced_column}")
        for idx in table.indexes:
            unique = "unique " if idx.is_unique else ""
            console.print(f"Index: {idx.index_name} ({unique}{', '.join(idx.column_names)})")

    def print_text(self, title: str, text: str) -> None:
        """Print a block of prose, or ``{title: text}`` in JSON mode."""
        if self.json_mode:
            print(json.dumps({title.lower(): text}, indent=2))
        else:
            console.print(Panel(text, title=title, border_style="green"))

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message.

        Args:
            message: Success message
            details: Optional details to display
        """
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(json.dumps(output, default=str, indent=2))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message.

        Args:
            error: Exception to display
        """
        if self.json_mode:
            if isinstance(error, AskDBError):
                print(json.dumps(error.to_dict(), default=str, indent=2))
            else:
                print(json.dumps({"error": str(error)}, indent=2))
        else:
            error_text = str(error)
            if isinstance(error, AskDBError) and error.context:
                context_str = "\n".join(
                    f"{k}: {v}" for k, v in error.context.items() if v is not None
                )
                error_text = f"{error_text}\n\n{context_str}"

            panel = Panel(
                error_text,
                title="[red]Error[/red]",
                border_style="red",
            )
            console.print(panel)

    def print_data(self, data: Any) -> None:
        """Print generic data (models, dicts, lists).

        Args:
            data: Data to print
        """
        data = to_jsonable(data)
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            pprint(data, expand_all=True)
