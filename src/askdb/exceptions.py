"""Custom exceptions for AskDB.

Every error raised by the pipeline is safe to show to an end user:
- Actionable messages that tell what went wrong AND how to fix it
- No stack traces or credentials embedded in the message or context
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class AskDBError(Exception):
    """Base exception for all AskDB errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Return error as JSON-serializable dict for API consumers."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "context": self.context,
        }


# === Connection errors ===


class InvalidConnectionStringError(AskDBError):
    """Connection string is malformed or uses an unsupported scheme."""

    pass


class ConnectionNotFoundError(AskDBError):
    """No connection record exists for the given id."""

    def __init__(self, connection_id: str) -> None:
        super().__init__(
            f"Database connection '{connection_id}' not found.",
            {"connection_id": connection_id},
        )
        self.connection_id = connection_id


class UnsupportedEngineError(AskDBError):
    """The target engine has no validated execution path."""

    SUPPORTED = ["postgresql"]

    def __init__(self, engine: str) -> None:
        message = (
            f"Only PostgreSQL connections are currently supported. Got: {engine}. "
            f"Supported: {', '.join(self.SUPPORTED)}"
        )
        super().__init__(message, {"engine": engine, "supported": self.SUPPORTED})
        self.engine = engine


class ConnectivityError(AskDBError):
    """The target database could not be reached or refused the login."""

    pass


# === Guardrail and policy errors ===


class GuardrailViolation(StrEnum):
    """Reasons the guardrail validator rejects a query."""

    DANGEROUS_OPERATION = "DangerousOperation"
    NOT_A_SELECT = "NotASelectStatement"
    POTENTIAL_INJECTION = "PotentialInjection"
    MULTIPLE_STATEMENTS = "MultipleStatements"


class GuardrailError(AskDBError):
    """SQL was rejected by the guardrail validator."""

    violation: GuardrailViolation

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message, {"violation": self.violation.value, **(context or {})})


class DangerousOperationError(GuardrailError):
    """SQL contains a keyword that could mutate data or privileges."""

    violation = GuardrailViolation.DANGEROUS_OPERATION

    def __init__(self, keyword: str, message: str | None = None) -> None:
        super().__init__(
            message
            or f"Dangerous operation detected: {keyword}. Only SELECT queries are allowed.",
            {"keyword": keyword},
        )
        self.keyword = keyword


class NotASelectStatementError(GuardrailError):
    """SQL does not start with SELECT."""

    violation = GuardrailViolation.NOT_A_SELECT


class PotentialInjectionError(GuardrailError):
    """SQL matches a known injection pattern."""

    violation = GuardrailViolation.POTENTIAL_INJECTION


class MultipleStatementsError(GuardrailError):
    """SQL contains more than one statement."""

    violation = GuardrailViolation.MULTIPLE_STATEMENTS


class OperationNotAllowedError(AskDBError):
    """SQL uses an operation the connection's access mode forbids."""

    def __init__(self, keyword: str, access_mode: str) -> None:
        message = (
            f"Operation not allowed: {keyword}. "
            f"This connection uses '{access_mode}' access mode."
        )
        super().__init__(message, {"keyword": keyword, "access_mode": access_mode})
        self.keyword = keyword
        self.access_mode = access_mode


# === Execution errors ===


class QueryExecutionError(AskDBError):
    """The target database rejected or failed the query."""

    pass


class SchemaIntrospectionError(AskDBError):
    """Catalog metadata could not be collected."""

    pass


class QueryTimeoutError(AskDBError):
    """The request did not finish before its deadline."""

    def __init__(self, timeout_seconds: float, stage: str | None = None) -> None:
        message = f"Query did not complete within {timeout_seconds:g} seconds."
        if stage:
            message += f" Timed out while {stage}."
        super().__init__(message, {"timeout_seconds": timeout_seconds, "stage": stage})
        self.timeout_seconds = timeout_seconds
        self.stage = stage


# === LLM provider errors ===


class LLMErrorKind(StrEnum):
    """Classification of LLM provider failures."""

    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    INSUFFICIENT_CREDIT = "insufficient_credit"
    NETWORK = "network"
    OTHER = "other"

    @property
    def retryable(self) -> bool:
        """Whether trying the next fallback model can help."""
        return self in (LLMErrorKind.RATE_LIMITED, LLMErrorKind.INSUFFICIENT_CREDIT)


class LLMProviderError(AskDBError):
    """The LLM provider call failed."""

    def __init__(
        self,
        message: str,
        kind: LLMErrorKind = LLMErrorKind.OTHER,
        model: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(
            message,
            {"kind": kind.value, "model": model, "status_code": status_code},
        )
        self.kind = kind
        self.model = model
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind.retryable


class LLMFallbackExhaustedError(LLMProviderError):
    """Every configured model failed with a retryable error."""

    def __init__(self, models: list[str], last_error: LLMProviderError) -> None:
        message = (
            f"All configured models failed ({', '.join(models)}). "
            f"Last error: {last_error.message}"
        )
        super().__init__(
            message,
            kind=last_error.kind,
            model=last_error.model,
            status_code=last_error.status_code,
        )
        self.context["models"] = models
        self.models = models
        self.last_error = last_error
