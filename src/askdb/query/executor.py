"""Query execution against a remote PostgreSQL database.

Each call opens its own single-connection engine, runs one statement and
disposes of the engine before returning.
"""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from askdb.config import Settings, get_settings
from askdb.core.connection import EngineFactory, run_with_ssl_fallback
from askdb.core.types import (
    AccessMode,
    ConnectionProfile,
    ConnectionStatus,
    EngineKind,
    QueryResult,
)
from askdb.exceptions import AskDBError, QueryExecutionError, UnsupportedEngineError
from askdb.query.access import AccessModeEnforcer

logger = logging.getLogger(__name__)


def normalize_row_count(rowcount: int | None, rows_returned: int) -> int:
    """Driver row counts: None means zero, -1 means unknown (use rows returned)."""
    if rowcount is None:
        return 0
    if rowcount < 0:
        return rows_returned
    return rowcount


class QueryExecutor:
    """Executes SQL against a connection profile."""

    def __init__(
        self,
        settings: Settings | None = None,
        engine_factory: EngineFactory | None = None,
        enforcer: AccessModeEnforcer | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            settings: Runtime settings; defaults to the process settings
            engine_factory: Callable building engines (tests inject fakes)
            enforcer: Access-mode enforcer; defaults to the built-in policies
        """
        self._settings = settings or get_settings()
        self._engine_factory = engine_factory
        self._enforcer = enforcer or AccessModeEnforcer()

    def _fallback_options(self) -> dict[str, object]:
        return {
            "connect_timeout": self._settings.connect_timeout_seconds,
            "engine_factory": self._engine_factory,
        }

    async def execute(
        self,
        profile: ConnectionProfile,
        sql: str,
        access_mode: AccessMode | str | None = None,
        started_at: float | None = None,
    ) -> QueryResult:
        """Execute one SQL statement.

        Args:
            profile: Target connection
            sql: Statement to run; callers are expected to have validated it
            access_mode: Mode to enforce; defaults to the profile's
            started_at: ``time.perf_counter()`` value the timing starts from;
                defaults to the start of this call

        Returns:
            QueryResult with columns, rows, row count and elapsed milliseconds

        Raises:
            UnsupportedEngineError: If the profile is not PostgreSQL
            OperationNotAllowedError: If the access mode forbids the SQL
            ConnectivityError: If the host, credentials or database are wrong
            QueryExecutionError: If the database rejects the statement
        """
        start = started_at if started_at is not None else time.perf_counter()

        if profile.engine is not EngineKind.POSTGRESQL:
            raise UnsupportedEngineError(profile.engine.value)

        mode = access_mode or profile.access_mode
        self._enforcer.enforce(sql, mode)

        async def run(conn: AsyncConnection) -> tuple[list[str], list[dict], int | None]:
            # Sent as written: no bind parameters, no driver placeholders.
            conn = await conn.execution_options(no_parameters=True)
            result = await conn.exec_driver_sql(sql)
            if not result.returns_rows:
                return [], [], result.rowcount
            columns = list(result.keys())
            rows = [dict(row) for row in result.mappings().all()]
            return columns, rows, result.rowcount

        columns, rows, rowcount = await run_with_ssl_fallback(
            profile,
            run,
            label="Query execution failed",
            error_cls=QueryExecutionError,
            read_only_session=self._read_only(mode),
            **self._fallback_options(),
        )

        execution_time_ms = (time.perf_counter() - start) * 1000
        row_count = normalize_row_count(rowcount, len(rows))
        logger.info(
            f"Executed query on {profile.host}/{profile.database}: "
            f"{row_count} rows in {execution_time_ms:.1f}ms"
        )
        return QueryResult(
            columns=columns,
            rows=rows,
            row_count=row_count,
            execution_time_ms=execution_time_ms,
            sql=sql,
        )

    async def test_connection(self, profile: ConnectionProfile) -> bool:
        """Open a connection and run ``SELECT 1``.

        Raises:
            ConnectivityError: If the database cannot be reached
        """

        async def ping(conn: AsyncConnection) -> bool:
            await conn.execute(text("SELECT 1"))
            return True

        return await run_with_ssl_fallback(
            profile,
            ping,
            label="Connection test failed",
            **self._fallback_options(),
        )

    async def connection_status(self, profile: ConnectionProfile) -> ConnectionStatus:
        """Report connection health without raising."""
        try:
            await self.test_connection(profile)
        except AskDBError as e:
            return ConnectionStatus(
                connected=False,
                status="error",
                message=e.message,
                last_checked=datetime.now(UTC),
            )
        return ConnectionStatus(
            connected=True,
            status="connected",
            message="Connection successful",
            last_checked=datetime.now(UTC),
        )

    def _read_only(self, mode: AccessMode | str) -> bool:
        return self._settings.read_only_session and AccessMode(mode) is AccessMode.READ
