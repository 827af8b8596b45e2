"""SQL guardrails for LLM-generated queries.

Lexical checks applied before any SQL reaches a target database:
- No keyword that could mutate data or privileges, anywhere in the text
- Statement must start with SELECT
- No known injection pattern
- Exactly one statement

The keyword check is a plain substring match, not a tokenizer: it also rejects
SELECTs that mention e.g. ``created_at``. Comments are stripped only after
validation succeeds, so keywords hidden in comments are still caught.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from askdb.exceptions import (
    DangerousOperationError,
    GuardrailError,
    GuardrailViolation,
    MultipleStatementsError,
    NotASelectStatementError,
    PotentialInjectionError,
)

DANGEROUS_KEYWORDS = (
    "DROP",
    "DELETE",
    "UPDATE",
    "TRUNCATE",
    "ALTER",
    "CREATE",
    "INSERT",
    "GRANT",
    "REVOKE",
    "EXEC",
    "EXECUTE",
    "CALL",
)

INJECTION_PATTERNS = [
    re.compile(r"UNION.*SELECT", re.IGNORECASE | re.DOTALL),  # Union-based injection
    re.compile(r"OR\s+1\s*=\s*1", re.IGNORECASE),  # Always-true condition
    re.compile(r"OR\s+'1'\s*=\s*'1'", re.IGNORECASE),  # Always-true condition (string)
    re.compile(r"EXEC\s*\(", re.IGNORECASE),
    re.compile(r"xp_", re.IGNORECASE),  # SQL Server extended procedures
]

_LINE_COMMENT = re.compile(r"--.*$", re.MULTILINE)
_BLOCK_COMMENT = re.compile(r"/\*.*?\*/", re.DOTALL)

_ERRORS: dict[GuardrailViolation, type[GuardrailError]] = {
    GuardrailViolation.DANGEROUS_OPERATION: DangerousOperationError,
    GuardrailViolation.NOT_A_SELECT: NotASelectStatementError,
    GuardrailViolation.POTENTIAL_INJECTION: PotentialInjectionError,
    GuardrailViolation.MULTIPLE_STATEMENTS: MultipleStatementsError,
}


@dataclass
class ValidationResult:
    """Result of guardrail validation."""

    valid: bool
    """Whether the query passed validation."""

    error: str | None = None
    """Error message if validation failed."""

    violation: GuardrailViolation | None = None
    """Which check failed."""

    keyword: str | None = None
    """Offending keyword for dangerous-operation failures."""

    def raise_for_error(self) -> None:
        """Raise the matching GuardrailError if validation failed."""
        if self.valid or self.violation is None:
            return
        if self.violation is GuardrailViolation.DANGEROUS_OPERATION:
            raise DangerousOperationError(self.keyword or "", self.error)
        raise _ERRORS[self.violation](self.error or self.violation.value)


class GuardrailValidator:
    """Validates and sanitizes LLM-generated SQL before execution."""

    def validate(self, sql: str) -> ValidationResult:
        """Validate an SQL string; the first failing check wins.

        Args:
            sql: Candidate SQL

        Returns:
            ValidationResult with validation status and details
        """
        upper_sql = sql.upper().strip()

        for keyword in DANGEROUS_KEYWORDS:
            if keyword in upper_sql:
                return ValidationResult(
                    valid=False,
                    error=f"Dangerous operation detected: {keyword}. "
                    "Only SELECT queries are allowed.",
                    violation=GuardrailViolation.DANGEROUS_OPERATION,
                    keyword=keyword,
                )

        if not upper_sql.startswith("SELECT"):
            return ValidationResult(
                valid=False,
                error="Only SELECT queries are allowed. Query must start with SELECT.",
                violation=GuardrailViolation.NOT_A_SELECT,
            )

        if self.detect_injection(sql):
            return ValidationResult(
                valid=False,
                error="Potential SQL injection detected. Query rejected for security.",
                violation=GuardrailViolation.POTENTIAL_INJECTION,
            )

        statements = [s for s in sql.split(";") if s.strip()]
        if len(statements) > 1:
            return ValidationResult(
                valid=False,
                error="Multiple statements detected. Only single SELECT queries are allowed.",
                violation=GuardrailViolation.MULTIPLE_STATEMENTS,
            )

        return ValidationResult(valid=True)

    def check(self, sql: str) -> None:
        """Validate and raise on failure.

        Raises:
            GuardrailError: Subclass matching the failed check
        """
        self.validate(sql).raise_for_error()

    def detect_injection(self, sql: str) -> bool:
        """Check for known injection patterns (case-insensitive)."""
        return any(pattern.search(sql) for pattern in INJECTION_PATTERNS)

    def sanitize(self, sql: str) -> str:
        """Strip ``--`` and ``/* */`` comments, then trim.

        Only call this on SQL that already passed ``validate``.
        """
        sanitized = _LINE_COMMENT.sub("", sql)
        sanitized = _BLOCK_COMMENT.sub("", sanitized)
        return sanitized.strip()


def validate_query(sql: str) -> ValidationResult:
    """Convenience function to validate a query.

    Args:
        sql: SQL query to validate

    Returns:
        ValidationResult
    """
    return GuardrailValidator().validate(sql)
