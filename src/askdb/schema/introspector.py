"""Schema introspection for remote PostgreSQL databases.

Reads the ``public`` schema from ``information_schema`` and ``pg_catalog``:
tables, columns, primary keys, foreign keys and non-primary indexes. Migration
bookkeeping tables are skipped. A table whose metadata cannot be read is logged
and left out; the rest of the schema is still returned.
"""

from __future__ import annotations

import logging
from typing import TypeVar

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncConnection

from askdb.config import Settings, get_settings
from askdb.core.connection import (
    EngineFactory,
    Operation,
    driver_message,
    redact,
    run_with_ssl_fallback,
)
from askdb.core.resolver import ConnectionResolver
from askdb.core.types import (
    ColumnMetadata,
    ConnectionProfile,
    ForeignKeyMetadata,
    IndexMetadata,
    TableMetadata,
    TableRowCount,
)
from askdb.exceptions import SchemaIntrospectionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Tables created by migration tools, never useful as query context
EXCLUDED_TABLES = (
    "_prisma_migrations",
    "_prisma_migrations_lock",
    "alembic_version",
    "schema_migrations",
    "flyway_schema_history",
    "knex_migrations",
    "knex_migrations_lock",
)

ROW_COUNT_UNKNOWN = -1

_TABLES_SQL = text("""
    SELECT table_name
    FROM information_schema.tables
    WHERE table_schema = 'public'
      AND table_type = 'BASE TABLE'
      AND table_name NOT LIKE 'pg_%'
      AND table_name NOT IN :excluded
    ORDER BY table_name
""").bindparams(bindparam("excluded", expanding=True))

_COLUMNS_SQL = text("""
    SELECT
        column_name,
        data_type,
        is_nullable,
        column_default,
        character_maximum_length
    FROM information_schema.columns
    WHERE table_schema = 'public'
      AND table_name = :table_name
    ORDER BY ordinal_position
""")

_PRIMARY_KEYS_SQL = text("""
    SELECT kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
    WHERE tc.constraint_type = 'PRIMARY KEY'
      AND tc.table_schema = 'public'
      AND tc.table_name = :table_name
    ORDER BY kcu.ordinal_position
""")

_FOREIGN_KEYS_SQL = text("""
    SELECT
        kcu.column_name,
        ccu.table_name AS foreign_table_name,
        ccu.column_name AS foreign_column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
      ON tc.constraint_name = kcu.constraint_name
     AND tc.table_schema = kcu.table_schema
    JOIN information_schema.constraint_column_usage ccu
      ON ccu.constraint_name = tc.constraint_name
     AND ccu.table_schema = tc.table_schema
    WHERE tc.constraint_type = 'FOREIGN KEY'
      AND tc.table_schema = 'public'
      AND tc.table_name = :table_name
""")

_INDEXES_SQL = text("""
    SELECT
        i.relname AS index_name,
        array_agg(a.attname ORDER BY k.n) AS column_names,
        ix.indisunique AS is_unique
    FROM pg_class t
    JOIN pg_namespace ns ON ns.oid = t.relnamespace
    JOIN pg_index ix ON t.oid = ix.indrelid
    JOIN pg_class i ON i.oid = ix.indexrelid
    CROSS JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS k(attnum, n)
    JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = k.attnum
    WHERE ns.nspname = 'public'
      AND t.relname = :table_name
      AND NOT ix.indisprimary
    GROUP BY i.relname, ix.indisunique
    ORDER BY i.relname
""")


def quote_identifier(name: str) -> str:
    """Quote a PostgreSQL identifier, doubling embedded quotes."""
    return '"' + name.replace('"', '""') + '"'


class SchemaIntrospector:
    """Reads catalog metadata from a target database."""

    def __init__(
        self,
        resolver: ConnectionResolver,
        settings: Settings | None = None,
        engine_factory: EngineFactory | None = None,
    ) -> None:
        """Initialize the introspector.

        Args:
            resolver: Resolves connection ids into profiles
            settings: Runtime settings; defaults to the process settings
            engine_factory: Callable building engines (tests inject fakes)
        """
        self._resolver = resolver
        self._settings = settings or get_settings()
        self._engine_factory = engine_factory

    async def get_database_metadata(self, connection_id: str) -> list[TableMetadata]:
        """Get metadata for every table of a stored connection.

        Raises:
            ConnectionNotFoundError: If the connection id is unknown
            ConnectivityError: If the database cannot be reached
            SchemaIntrospectionError: If the table list cannot be read
        """
        profile = await self._resolver.resolve(connection_id)
        return await self.get_database_metadata_for_profile(profile)

    async def get_tables_with_row_counts(self, connection_id: str) -> list[TableRowCount]:
        """Get every table of a stored connection with its row count."""
        profile = await self._resolver.resolve(connection_id)
        return await self.get_tables_with_row_counts_for_profile(profile)

    async def get_database_metadata_for_profile(
        self, profile: ConnectionProfile
    ) -> list[TableMetadata]:
        """Get metadata for every table reachable through a profile."""

        async def collect(conn: AsyncConnection) -> list[TableMetadata]:
            await conn.execute(text("SELECT 1"))
            tables: list[TableMetadata] = []
            for table_name in await self._get_tables(conn):
                try:
                    tables.append(
                        TableMetadata(
                            table_name=table_name,
                            columns=await self._get_columns(conn, table_name),
                            primary_keys=await self._get_primary_keys(conn, table_name),
                            foreign_keys=await self._get_foreign_keys(conn, table_name),
                            indexes=await self._get_indexes(conn, table_name),
                        )
                    )
                except Exception as e:
                    logger.warning(
                        f"Skipping table {table_name}: failed to read metadata: "
                        f"{redact(driver_message(e), profile)}"
                    )
            return tables

        tables = await self._run(profile, collect)
        logger.info(f"Loaded metadata for {len(tables)} tables from {profile.database}")
        return tables

    async def get_tables_with_row_counts_for_profile(
        self, profile: ConnectionProfile
    ) -> list[TableRowCount]:
        """Get every table reachable through a profile with its row count.

        Tables whose count fails are reported with ``row_count=-1``.
        """

        async def collect(conn: AsyncConnection) -> list[TableRowCount]:
            await conn.execute(text("SELECT 1"))
            return [
                TableRowCount(
                    table_name=name, row_count=await self._count_rows(conn, name, profile)
                )
                for name in await self._get_tables(conn)
            ]

        return await self._run(profile, collect)

    async def _run(self, profile: ConnectionProfile, operation: Operation[T]) -> T:
        return await run_with_ssl_fallback(
            profile,
            operation,
            label="Failed to fetch database metadata",
            error_cls=SchemaIntrospectionError,
            connect_timeout=self._settings.connect_timeout_seconds,
            engine_factory=self._engine_factory,
        )

    async def _get_tables(self, conn: AsyncConnection) -> list[str]:
        result = await conn.execute(_TABLES_SQL, {"excluded": list(EXCLUDED_TABLES)})
        return [row.table_name for row in result]

    async def _get_columns(self, conn: AsyncConnection, table_name: str) -> list[ColumnMetadata]:
        result = await conn.execute(_COLUMNS_SQL, {"table_name": table_name})
        return [
            ColumnMetadata(
                name=row.column_name,
                data_type=row.data_type,
                is_nullable=row.is_nullable == "YES",
                default_value=row.column_default,
                character_maximum_length=row.character_maximum_length,
            )
            for row in result
        ]

    async def _get_primary_keys(self, conn: AsyncConnection, table_name: str) -> list[str]:
        result = await conn.execute(_PRIMARY_KEYS_SQL, {"table_name": table_name})
        return [row.column_name for row in result]

    async def _get_foreign_keys(
        self, conn: AsyncConnection, table_name: str
    ) -> list[ForeignKeyMetadata]:
        result = await conn.execute(_FOREIGN_KEYS_SQL, {"table_name": table_name})
        return [
            ForeignKeyMetadata(
                column_name=row.column_name,
                referenced_table=row.foreign_table_name,
                referenced_column=row.foreign_column_name,
            )
            for row in result
        ]

    async def _get_indexes(self, conn: AsyncConnection, table_name: str) -> list[IndexMetadata]:
        result = await conn.execute(_INDEXES_SQL, {"table_name": table_name})
        return [
            IndexMetadata(
                index_name=row.index_name,
                column_names=list(row.column_names or []),
                is_unique=bool(row.is_unique),
            )
            for row in result
        ]

    async def _count_rows(
        self, conn: AsyncConnection, table_name: str, profile: ConnectionProfile
    ) -> int:
        """Count rows; -1 when the count fails."""
        try:
            result = await conn.execute(
                text(f"SELECT COUNT(*) AS count FROM {quote_identifier(table_name)}")
            )
            return int(result.scalar_one())
        except Exception as e:
            logger.warning(
                f"Failed to count rows in {table_name}: {redact(driver_message(e), profile)}"
            )
            return ROW_COUNT_UNKNOWN
