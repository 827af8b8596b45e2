"""Core types for AskDB.

All types are pydantic models so they can be handed straight to an API layer.
Passwords are held as ``SecretStr``: they never show up in ``repr``, logs or
``model_dump()``, and ``public_dict()`` drops them entirely.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, Field, SecretStr


class EngineKind(StrEnum):
    """Database engines AskDB can describe."""

    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"
    MONGODB = "mongodb"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid engine values."""
        return [e.value for e in cls]


class AccessMode(StrEnum):
    """Per-connection policy tier."""

    READ = "read"
    WRITE = "write"
    UPDATE = "update"
    FULL = "full"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid access mode values."""
        return [m.value for m in cls]


DEFAULT_PORTS: dict[EngineKind, int] = {
    EngineKind.POSTGRESQL: 5432,
    EngineKind.MYSQL: 3306,
    EngineKind.MONGODB: 27017,
    EngineKind.SQLITE: 0,
}


class ConnectionRecord(BaseModel):
    """A stored connection as returned by the record provider."""

    id: str
    name: str = ""
    host: str
    port: int
    database: str
    username: str
    password: SecretStr
    engine: EngineKind = EngineKind.POSTGRESQL
    access_mode: AccessMode = AccessMode.READ

    def public_dict(self) -> dict[str, Any]:
        """Return the record without its password."""
        return self.model_dump(mode="json", exclude={"password"})


class ParsedConnectionString(BaseModel):
    """Components of a URL-form connection string."""

    engine: EngineKind
    host: str
    port: int
    database: str
    username: str = ""
    password: SecretStr = Field(default=SecretStr(""))
    ssl: bool = False
    additional_params: dict[str, str] = Field(default_factory=dict)

    def public_dict(self) -> dict[str, Any]:
        """Return the parsed components without the password."""
        return self.model_dump(mode="json", exclude={"password"})


class ConnectionProfile(BaseModel):
    """Everything needed to open a connection for a single operation."""

    host: str
    port: int
    database: str
    username: str
    password: SecretStr
    engine: EngineKind = EngineKind.POSTGRESQL
    requires_tls: bool = False
    access_mode: AccessMode = AccessMode.READ

    model_config = {"frozen": True}

    def with_tls(self, requires_tls: bool) -> ConnectionProfile:
        """Return a copy with a different TLS requirement."""
        return self.model_copy(update={"requires_tls": requires_tls})

    def public_dict(self) -> dict[str, Any]:
        """Return the profile without its password."""
        return self.model_dump(mode="json", exclude={"password"})


class ColumnMetadata(BaseModel):
    """A column of a target table."""

    name: str
    data_type: str
    is_nullable: bool
    default_value: Any = None
    character_maximum_length: int | None = None


class ForeignKeyMetadata(BaseModel):
    """A foreign key from a local column to another table."""

    column_name: str
    referenced_table: str
    referenced_column: str


class IndexMetadata(BaseModel):
    """A non-primary index."""

    index_name: str
    column_names: list[str] = Field(default_factory=list)
    is_unique: bool = False


class TableMetadata(BaseModel):
    """Catalog metadata for one table."""

    table_name: str
    columns: list[ColumnMetadata] = Field(default_factory=list)
    primary_keys: list[str] = Field(default_factory=list)
    foreign_keys: list[ForeignKeyMetadata] = Field(default_factory=list)
    indexes: list[IndexMetadata] = Field(default_factory=list)


class TableRowCount(BaseModel):
    """A table name with its row count (-1 when counting failed)."""

    table_name: str
    row_count: int


class QueryResult(BaseModel):
    """Result of executing one SQL statement."""

    columns: list[str] = Field(default_factory=list)
    rows: list[dict[str, Any]] = Field(default_factory=list)
    row_count: int = 0
    execution_time_ms: float = 0.0
    sql: str


class QueryAnswer(BaseModel):
    """A query result together with the LLM's reading of it."""

    result: QueryResult
    insights: str | None = None


class ConnectionStatus(BaseModel):
    """Outcome of a connection health check."""

    connected: bool
    status: Literal["connected", "error"]
    message: str
    last_checked: datetime


class QueryState(StrEnum):
    """Stages of a single natural-language query attempt."""

    IDLE = "idle"
    SCHEMA_LOADED = "schema_loaded"
    SQL_GENERATED = "sql_generated"
    VALIDATED = "validated"
    SANITIZED = "sanitized"
    ACCESS_CHECKED = "access_checked"
    EXECUTED = "executed"
    DONE = "done"
    FAILED = "failed"


# Work in progress after each completed state
_RUNNING_STAGES = {
    QueryState.IDLE: "loading schema",
    QueryState.SCHEMA_LOADED: "generating SQL",
    QueryState.SQL_GENERATED: "validating SQL",
    QueryState.VALIDATED: "sanitizing SQL",
    QueryState.SANITIZED: "checking access mode",
    QueryState.ACCESS_CHECKED: "executing query",
    QueryState.EXECUTED: "finishing",
}


class PipelineTrace(BaseModel):
    """Record of the states a query attempt went through."""

    states: list[QueryState] = Field(default_factory=lambda: [QueryState.IDLE])
    sql: str | None = None
    failure_reason: str | None = None

    @property
    def state(self) -> QueryState:
        """Current state."""
        return self.states[-1]

    @property
    def running_stage(self) -> str | None:
        """The stage in progress, or None once the attempt has ended."""
        return _RUNNING_STAGES.get(self.state)

    def advance(self, state: QueryState) -> None:
        """Move to the next state; states are never re-entered."""
        if state in self.states:
            raise ValueError(f"Pipeline state '{state}' already visited")
        self.states.append(state)

    def fail(self, reason: str) -> None:
        """Move to the terminal failed state."""
        if self.state not in (QueryState.FAILED, QueryState.DONE):
            self.states.append(QueryState.FAILED)
        self.failure_reason = reason
