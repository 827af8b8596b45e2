"""Schema context for LLM SQL generation.

Renders catalog metadata into the plain-text block the NL->SQL prompt embeds.
The format is deterministic so the same schema always produces the same prompt:

    Table: orders
    Columns:
      - id: integer not null
      - email: character varying(255) nullable
    Primary Key: id
    Foreign Keys:
      - customer_id -> customers.id
    Indexes:
      - UNIQUE orders_email_key on (email)
"""

from __future__ import annotations

from collections.abc import Iterable

from askdb.core.types import TableMetadata


def generate_schema_text(table: TableMetadata) -> str:
    """Render one table as a text block.

    Args:
        table: Table metadata

    Returns:
        Block with columns, and primary key/foreign key/index sections when present
    """
    lines = [f"Table: {table.table_name}", "Columns:"]

    for col in table.columns:
        data_type = col.data_type
        if col.character_maximum_length:
            data_type += f"({col.character_maximum_length})"
        nullable = "nullable" if col.is_nullable else "not null"
        lines.append(f"  - {col.name}: {data_type} {nullable}")

    if table.primary_keys:
        lines.append(f"Primary Key: {', '.join(table.primary_keys)}")

    if table.foreign_keys:
        lines.append("Foreign Keys:")
        for fk in table.foreign_keys:
            lines.append(f"  - {fk.column_name} -> {fk.referenced_table}.{fk.referenced_column}")

    if table.indexes:
        lines.append("Indexes:")
        for idx in table.indexes:
            unique = "UNIQUE " if idx.is_unique else ""
            columns = ", ".join(idx.column_names) if idx.column_names else "unknown"
            lines.append(f"  - {unique}{idx.index_name} on ({columns})")

    return "\n".join(lines)


def build_schema_context(tables: Iterable[TableMetadata]) -> str:
    """Render tables and join their blocks with a blank line."""
    return "\n\n".join(generate_schema_text(table) for table in tables)


class SchemaContextBuilder:
    """Builds the schema context handed to the LLM."""

    def __init__(self, tables: list[TableMetadata]) -> None:
        self._tables = tables

    @property
    def table_names(self) -> list[str]:
        return [t.table_name for t in self._tables]

    def build(self, table_names: Iterable[str] | None = None) -> str:
        """Build the context string.

        Args:
            table_names: Restrict to these tables, in catalog order. None renders
                every table.

        Returns:
            Schema context text
        """
        if table_names is None:
            return build_schema_context(self._tables)
        wanted = set(table_names)
        return build_schema_context(t for t in self._tables if t.table_name in wanted)

    def per_table(self) -> dict[str, str]:
        """Return each table's block keyed by table name."""
        return {t.table_name: generate_schema_text(t) for t in self._tables}
