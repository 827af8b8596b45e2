"""Query safety and execution.

Generated SQL passes through, in order:
    1. Guardrail Validator - Lexical checks that only a single SELECT gets through
    2. Access-Mode Enforcer - Per-connection keyword policy
    3. Query Executor - Runs the statement on a short-lived connection

Schema context for the LLM is rendered by ``askdb.query.context``.
"""

from askdb.query.access import AccessModeEnforcer
from askdb.query.context import SchemaContextBuilder, build_schema_context, generate_schema_text
from askdb.query.executor import QueryExecutor
from askdb.query.validator import GuardrailValidator, ValidationResult, validate_query

__all__ = [
    "AccessModeEnforcer",
    "GuardrailValidator",
    "QueryExecutor",
    "SchemaContextBuilder",
    "ValidationResult",
    "build_schema_context",
    "generate_schema_text",
    "validate_query",
]
