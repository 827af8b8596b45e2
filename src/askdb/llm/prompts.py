"""Prompt templates for SQL generation, explanation and result insights."""

from __future__ import annotations

import json
from typing import Any

SQL_SYSTEM_PROMPT = (
    "You are a SQL expert. Generate only valid SQL queries without any explanations "
    "or markdown formatting."
)

EXPLAIN_SYSTEM_PROMPT = "You are a SQL expert who explains queries in plain English."

INSIGHTS_SYSTEM_PROMPT = "You are a data analyst who explains query results in plain English."

# Rows included in the insights prompt
INSIGHTS_SAMPLE_ROWS = 100


def build_nl_to_sql_prompt(
    question: str,
    schema_context: str,
    examples: list[str] | None = None,
) -> str:
    """Build the prompt that turns a question into a single SELECT.

    Args:
        question: Natural-language question
        schema_context: Rendered schema blocks
        examples: Optional example questions or queries to steer the model
    """
    examples_section = ""
    if examples:
        examples_section = "\n\nHere are some examples:\n" + "\n".join(f"- {ex}" for ex in examples)

    return f"""You are a SQL expert. Convert the following natural language question into a safe, optimized SQL query.

Database Schema:
{schema_context}
{examples_section}

Natural Language Query: {question}

Requirements:
1. Generate ONLY valid SQL (PostgreSQL syntax)
2. Do NOT include any explanations or markdown formatting
3. Use proper table and column names from the schema
4. Include appropriate JOINs when needed
5. Use parameterized queries where possible (use $1, $2, etc. for parameters)
6. Do NOT include any destructive operations (DROP, DELETE, UPDATE, TRUNCATE, ALTER)
7. Only SELECT queries are allowed
8. Ensure the query is optimized and uses indexes when available

SQL Query:"""


def build_explain_prompt(sql: str) -> str:
    return f"""Explain the following SQL query in plain English. Describe what data it retrieves and what the query does.

SQL Query:
{sql}

Explanation:"""


def build_insights_prompt(rows: list[dict[str, Any]], columns: list[str], question: str) -> str:
    """Build the prompt asking for plain-text insights about a result set.

    Only the first ``INSIGHTS_SAMPLE_ROWS`` rows are included; values that are
    not JSON-native (dates, decimals) are rendered with ``str``.
    """
    sample = rows[:INSIGHTS_SAMPLE_ROWS]
    preview = json.dumps(sample, indent=2, default=str)

    return f"""Analyze the following query results and provide insights in plain text format.

Original Question: {question}

Columns: {", ".join(columns)}

Data Sample (first {len(sample)} rows):
{preview}

Total Rows: {len(rows)}

Please provide insights in the following format (use plain text, NO markdown symbols like *, #, or ###):

Key Insights and Patterns:
[Provide key insights and patterns in the data]

Notable Statistics or Trends:
[Provide notable statistics or trends]

Anomalies or Interesting Observations:
[Provide any anomalies or interesting observations]

Recommendations:
[Provide recommendations based on the data]

IMPORTANT:
- Use plain text only, NO markdown formatting
- NO asterisks (*), hash symbols (#), or other markdown characters
- Use bold text indicators like "Key Term:" format for emphasis
- Keep the response concise and actionable
- Use clear section headers followed by content"""
