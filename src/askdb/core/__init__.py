"""Core components for AskDB."""

from askdb.core.connection import DatabaseConnection, run_with_ssl_fallback
from askdb.core.resolver import (
    ConnectionRecordProvider,
    ConnectionResolver,
    InMemoryConnectionStore,
    parse_connection_string,
)
from askdb.core.types import (
    AccessMode,
    ConnectionProfile,
    ConnectionRecord,
    EngineKind,
    PipelineTrace,
    QueryResult,
    QueryState,
    TableMetadata,
)

__all__ = [
    "AccessMode",
    "ConnectionProfile",
    "ConnectionRecord",
    "ConnectionRecordProvider",
    "ConnectionResolver",
    "DatabaseConnection",
    "EngineKind",
    "InMemoryConnectionStore",
    "PipelineTrace",
    "QueryResult",
    "QueryState",
    "TableMetadata",
    "parse_connection_string",
    "run_with_ssl_fallback",
]
