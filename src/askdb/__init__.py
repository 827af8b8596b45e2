"""AskDB - Ask questions of a PostgreSQL database in plain language.

An LLM turns the question into SQL; guardrails and a per-connection access
mode decide whether it may run; the result comes back with optional insights.

Example:
    from askdb import AskDB, ConnectionRecord, InMemoryConnectionStore

    store = InMemoryConnectionStore([
        ConnectionRecord(
            id="shop",
            host="db.example.com",
            port=5432,
            database="shop",
            username="analyst",
            password="secret",
        )
    ])
    db = AskDB(store)

    result = await db.execute_query("Top 5 customers by revenue this year", "shop")
    print(result.columns, result.rows)

    # Same pipeline plus plain-text insights
    answer = await db.answer("Monthly signups in 2024", "shop")
"""

from askdb.config import Settings, get_settings
from askdb.core.engine import AskDB
from askdb.core.resolver import (
    ConnectionResolver,
    InMemoryConnectionStore,
    parse_connection_string,
)
from askdb.core.types import (
    AccessMode,
    ColumnMetadata,
    ConnectionProfile,
    ConnectionRecord,
    ConnectionStatus,
    EngineKind,
    ForeignKeyMetadata,
    IndexMetadata,
    ParsedConnectionString,
    PipelineTrace,
    QueryAnswer,
    QueryResult,
    QueryState,
    TableMetadata,
    TableRowCount,
)
from askdb.exceptions import (
    AskDBError,
    ConnectionNotFoundError,
    ConnectivityError,
    DangerousOperationError,
    GuardrailError,
    GuardrailViolation,
    InvalidConnectionStringError,
    LLMErrorKind,
    LLMFallbackExhaustedError,
    LLMProviderError,
    MultipleStatementsError,
    NotASelectStatementError,
    OperationNotAllowedError,
    PotentialInjectionError,
    QueryExecutionError,
    QueryTimeoutError,
    SchemaIntrospectionError,
    UnsupportedEngineError,
)

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "AskDB",
    "ConnectionResolver",
    "InMemoryConnectionStore",
    "Settings",
    "get_settings",
    "parse_connection_string",
    # Types
    "AccessMode",
    "ColumnMetadata",
    "ConnectionProfile",
    "ConnectionRecord",
    "ConnectionStatus",
    "EngineKind",
    "ForeignKeyMetadata",
    "IndexMetadata",
    "ParsedConnectionString",
    "PipelineTrace",
    "QueryAnswer",
    "QueryResult",
    "QueryState",
    "TableMetadata",
    "TableRowCount",
    # Exceptions
    "AskDBError",
    "ConnectionNotFoundError",
    "ConnectivityError",
    "DangerousOperationError",
    "GuardrailError",
    "GuardrailViolation",
    "InvalidConnectionStringError",
    "LLMErrorKind",
    "LLMFallbackExhaustedError",
    "LLMProviderError",
    "MultipleStatementsError",
    "NotASelectStatementError",
    "OperationNotAllowedError",
    "PotentialInjectionError",
    "QueryExecutionError",
    "QueryTimeoutError",
    "SchemaIntrospectionError",
    "UnsupportedEngineError",
    # Version
    "__version__",
]
