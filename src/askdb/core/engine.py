"""Main AskDB engine: natural-language questions in, query results out."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from askdb.config import Settings, get_settings
from askdb.core.connection import EngineFactory
from askdb.core.resolver import (
    ConnectionRecordProvider,
    ConnectionResolver,
    parse_connection_string,
)
from askdb.core.types import (
    ConnectionProfile,
    ConnectionStatus,
    PipelineTrace,
    QueryAnswer,
    QueryResult,
    QueryState,
    TableMetadata,
    TableRowCount,
)
from askdb.exceptions import AskDBError, QueryTimeoutError
from askdb.llm.service import LLMService
from askdb.query.access import AccessModeEnforcer
from askdb.query.context import SchemaContextBuilder
from askdb.query.executor import QueryExecutor
from askdb.query.validator import GuardrailValidator, ValidationResult
from askdb.schema.introspector import SchemaIntrospector
from askdb.schema.retrieval import SchemaRetriever

logger = logging.getLogger(__name__)


class AskDB:
    """Natural-language query pipeline over stored connections.

    A question goes through: resolve connection, introspect schema, render
    schema context, generate SQL, validate, sanitize, enforce the access mode,
    execute. Each stage runs once; the first failure ends the request.

    Example:
        store = InMemoryConnectionStore([record])
        db = AskDB(store)
        result = await db.execute_query("How many orders shipped last week?", record.id)
    """

    def __init__(
        self,
        provider: ConnectionRecordProvider,
        settings: Settings | None = None,
        llm: LLMService | None = None,
        engine_factory: EngineFactory | None = None,
        schema_retriever: SchemaRetriever | None = None,
        enforcer: AccessModeEnforcer | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            provider: Source of stored connection records
            settings: Runtime settings; defaults to the process settings
            llm: LLM service; built from settings when not given
            engine_factory: Callable building database engines (tests inject fakes)
            schema_retriever: Limits the schema context to the tables most
                similar to the question; every table is sent when None
            enforcer: Access-mode enforcer with custom per-mode policies
        """
        self._settings = settings or get_settings()
        self._resolver = ConnectionResolver(provider)
        self._enforcer = enforcer or AccessModeEnforcer()
        self._validator = GuardrailValidator()
        self._introspector = SchemaIntrospector(self._resolver, self._settings, engine_factory)
        self._executor = QueryExecutor(self._settings, engine_factory, self._enforcer)
        self._llm = llm or LLMService(self._settings)
        self._retriever = schema_retriever

    @property
    def resolver(self) -> ConnectionResolver:
        return self._resolver

    # === Natural-language queries ===

    async def execute_query(
        self,
        question: str,
        connection_id: str,
        api_key: str | None = None,
        trace: PipelineTrace | None = None,
    ) -> QueryResult:
        """Answer a question with a generated, validated SELECT.

        Args:
            question: Natural-language question
            connection_id: Stored connection to query
            api_key: Per-request LLM key overriding the configured one
            trace: Receives the states the request went through

        Returns:
            QueryResult; ``execution_time_ms`` covers the whole pipeline

        Raises:
            ConnectionNotFoundError: If the connection id is unknown
            GuardrailError: If the generated SQL fails a guardrail
            OperationNotAllowedError: If the access mode forbids the SQL
            LLMProviderError: If SQL generation fails
            QueryTimeoutError: If the request exceeds ``request_timeout_seconds``
            AskDBError: Connectivity, introspection or execution failures
        """
        trace = trace if trace is not None else PipelineTrace()
        timeout = self._settings.request_timeout_seconds

        try:
            async with asyncio.timeout(timeout):
                return await self._run_pipeline(question, connection_id, api_key, trace)
        except TimeoutError as e:
            stage = trace.running_stage
            error = QueryTimeoutError(timeout or 0, stage)
            logger.error(f"Query on connection {connection_id} timed out while {stage}")
            trace.fail(error.message)
            raise error from e
        except AskDBError as e:
            logger.info(f"Query on connection {connection_id} failed in {trace.state}: {e.message}")
            trace.fail(e.message)
            raise

    async def _run_pipeline(
        self,
        question: str,
        connection_id: str,
        api_key: str | None,
        trace: PipelineTrace,
    ) -> QueryResult:
        started_at = time.perf_counter()

        profile = await self._resolver.resolve(connection_id)
        tables = await self._introspector.get_database_metadata_for_profile(profile)
        schema_context = await self._build_context(question, connection_id, tables)
        trace.advance(QueryState.SCHEMA_LOADED)

        sql = await self._llm.generate_sql(question, schema_context, api_key=api_key)
        trace.sql = sql
        trace.advance(QueryState.SQL_GENERATED)

        self._validator.check(sql)
        trace.advance(QueryState.VALIDATED)

        sql = self._validator.sanitize(sql)
        trace.sql = sql
        trace.advance(QueryState.SANITIZED)

        self._enforcer.enforce(sql, profile.access_mode)
        trace.advance(QueryState.ACCESS_CHECKED)

        result = await self._executor.execute(
            profile, sql, profile.access_mode, started_at=started_at
        )
        trace.advance(QueryState.EXECUTED)
        trace.advance(QueryState.DONE)
        return result

    async def _build_context(
        self, question: str, connection_id: str, tables: list[TableMetadata]
    ) -> str:
        builder = SchemaContextBuilder(tables)
        if self._retriever is None or not tables:
            return builder.build()

        try:
            await self._retriever.ensure_indexed(connection_id, tables)
            matches = await self._retriever.find_similar(question, connection_id)
        except Exception as e:
            logger.warning(f"Schema retrieval failed, sending every table: {e}")
            return builder.build()

        if not matches:
            return builder.build()
        return builder.build(m.table_name for m in matches)

    async def answer(
        self,
        question: str,
        connection_id: str,
        api_key: str | None = None,
        include_insights: bool = True,
    ) -> QueryAnswer:
        """Run a question and add LLM insights about the result."""
        result = await self.execute_query(question, connection_id, api_key=api_key)
        insights = None
        if include_insights:
            insights = await self._llm.generate_insights(
                result.rows, result.columns, question, api_key=api_key
            )
        return QueryAnswer(result=result, insights=insights)

    async def explain_sql(self, sql: str, api_key: str | None = None) -> str:
        """Explain a query in plain English."""
        return await self._llm.explain_sql(sql, api_key=api_key)

    # === Direct SQL ===

    def validate_sql(self, sql: str) -> ValidationResult:
        """Run the guardrails without executing anything."""
        return self._validator.validate(sql)

    async def run_sql(self, sql: str, connection_id: str) -> QueryResult:
        """Execute caller-supplied SQL through the same guardrails as generated SQL.

        Raises:
            GuardrailError: If the SQL fails a guardrail
            OperationNotAllowedError: If the access mode forbids the SQL
        """
        profile = await self._resolver.resolve(connection_id)
        return await self.run_sql_for_profile(sql, profile)

    async def run_sql_for_profile(self, sql: str, profile: ConnectionProfile) -> QueryResult:
        self._validator.check(sql)
        sanitized = self._validator.sanitize(sql)
        return await self._executor.execute(profile, sanitized, profile.access_mode)

    # === Schema ===

    async def get_schema(self, connection_id: str) -> list[TableMetadata]:
        """Get metadata for every table of a connection."""
        return await self._introspector.get_database_metadata(connection_id)

    async def get_schema_text(
        self, connection_id: str, tables: list[str] | None = None
    ) -> str:
        """Get the schema context the LLM would see.

        Args:
            connection_id: Stored connection
            tables: Restrict to these tables; all tables when None
        """
        metadata = await self.get_schema(connection_id)
        return SchemaContextBuilder(metadata).build(tables)

    async def get_tables(self, connection_id: str) -> list[TableRowCount]:
        """List tables with row counts (-1 where counting failed)."""
        return await self._introspector.get_tables_with_row_counts(connection_id)

    # === Connections ===

    async def test_connection(self, connection_id: str) -> bool:
        """Run ``SELECT 1`` against a stored connection.

        Raises:
            ConnectivityError: If the database cannot be reached
        """
        profile = await self._resolver.resolve(connection_id)
        return await self._executor.test_connection(profile)

    async def get_connection_status(self, connection_id: str) -> ConnectionStatus:
        """Report connection health; connectivity failures become an error status."""
        profile = await self._resolver.resolve(connection_id)
        return await self._executor.connection_status(profile)

    @staticmethod
    def parse_connection_string(raw: str) -> dict[str, Any]:
        """Parse a connection string into its components, without the password."""
        return parse_connection_string(raw).public_dict()
