"""LLM service: SQL generation, query explanation and result insights.

SQL generation walks a chain of models (the configured model, then the
fallbacks). A failure worth retrying elsewhere (rate limit, exhausted credit)
moves on to the next model; any other failure is raised immediately.
"""

from __future__ import annotations

import logging
import re
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from askdb.config import Settings, get_settings
from askdb.exceptions import LLMErrorKind, LLMFallbackExhaustedError, LLMProviderError
from askdb.llm.openai import OpenAIChatProvider, openrouter_headers
from askdb.llm.prompts import (
    EXPLAIN_SYSTEM_PROMPT,
    INSIGHTS_SYSTEM_PROMPT,
    SQL_SYSTEM_PROMPT,
    build_explain_prompt,
    build_insights_prompt,
    build_nl_to_sql_prompt,
)
from askdb.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

SQL_TEMPERATURE = 0.1
SQL_MAX_TOKENS = 1000
EXPLAIN_TEMPERATURE = 0.3
EXPLAIN_MAX_TOKENS = 500

EXPLAIN_FALLBACK = "Unable to explain query"
NO_DATA_INSIGHTS = "No data returned from the query."
INSIGHTS_UNAVAILABLE = "Unable to generate insights at this time."

_OPENING_FENCE = re.compile(r"^```[a-zA-Z]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?```\s*$")


def strip_code_fences(text: str) -> str:
    """Remove a surrounding markdown code fence (e.g. ```sql ... ```)."""
    stripped = text.strip()
    stripped = _OPENING_FENCE.sub("", stripped)
    stripped = _CLOSING_FENCE.sub("", stripped)
    return stripped.strip()


class LLMService:
    """High-level LLM operations used by the query pipeline."""

    def __init__(
        self,
        settings: Settings | None = None,
        provider: LLMProvider | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            settings: Runtime settings; defaults to the process settings
            provider: Completion provider; built from settings on first use
                when not given
        """
        self._settings = settings or get_settings()
        self._provider = provider

    @property
    def models(self) -> list[str]:
        return self._settings.model_chain

    @asynccontextmanager
    async def _provider_for(self, api_key: str | None = None) -> AsyncIterator[LLMProvider]:
        """Provide the provider for one request.

        A per-request ``api_key`` gets its own client so one user's credential
        is never reused for another; that client is closed when the block exits.
        """
        if not api_key:
            yield self._configured_provider()
            return
        provider = self._build_provider(api_key)
        try:
            yield provider
        finally:
            await provider.close()

    def _configured_provider(self) -> LLMProvider:
        if self._provider is None:
            key = self._settings.api_key
            if not key:
                raise LLMProviderError(
                    "No LLM API key configured. Set OPENROUTER_API_KEY or OPENAI_API_KEY.",
                    LLMErrorKind.AUTH,
                )
            self._provider = self._build_provider(key)
        return self._provider

    def _build_provider(self, api_key: str) -> LLMProvider:
        headers = None
        if self._settings.uses_openrouter:
            headers = openrouter_headers(self._settings.app_url, self._settings.app_title)
        return OpenAIChatProvider(api_key, self._settings.base_url, headers)

    async def generate_sql(
        self,
        question: str,
        schema_context: str,
        api_key: str | None = None,
        examples: list[str] | None = None,
    ) -> str:
        """Generate SQL for a question.

        Args:
            question: Natural-language question
            schema_context: Rendered schema blocks
            api_key: Per-request key overriding the configured one
            examples: Optional examples included in the prompt

        Returns:
            SQL text with any code fence removed (not yet validated)

        Raises:
            LLMProviderError: On a non-retryable failure
            LLMFallbackExhaustedError: If every model failed with a retryable error
        """
        prompt = build_nl_to_sql_prompt(question, schema_context, examples)
        models = self.models
        last_error: LLMProviderError | None = None

        async with self._provider_for(api_key) as provider:
            for model in models:
                try:
                    completion = await provider.complete(
                        system_prompt=SQL_SYSTEM_PROMPT,
                        prompt=prompt,
                        model=model,
                        temperature=SQL_TEMPERATURE,
                        max_tokens=SQL_MAX_TOKENS,
                    )
                except LLMProviderError as e:
                    if not e.retryable:
                        raise
                    logger.warning(f"Model {model} unavailable ({e.kind}), trying next model")
                    last_error = e
                    continue
                logger.info(f"Generated SQL with {model}")
                return strip_code_fences(completion)

        if last_error is None:
            raise LLMProviderError("No LLM model configured. Set ASKDB_LLM_MODEL.")
        raise LLMFallbackExhaustedError(models, last_error)

    async def explain_sql(self, sql: str, api_key: str | None = None) -> str:
        """Explain a query in plain English."""
        async with self._provider_for(api_key) as provider:
            explanation = await provider.complete(
                system_prompt=EXPLAIN_SYSTEM_PROMPT,
                prompt=build_explain_prompt(sql),
                model=self._settings.llm_model,
                temperature=EXPLAIN_TEMPERATURE,
                max_tokens=EXPLAIN_MAX_TOKENS,
            )
        return explanation or EXPLAIN_FALLBACK

    async def generate_insights(
        self,
        rows: list[dict[str, Any]],
        columns: list[str],
        question: str,
        api_key: str | None = None,
    ) -> str:
        """Describe a result set in plain text.

        Never raises for provider failures: insights are a best-effort extra
        on top of a successful query.
        """
        if not rows:
            return NO_DATA_INSIGHTS

        try:
            async with self._provider_for(api_key) as provider:
                insights = await provider.complete(
                    system_prompt=INSIGHTS_SYSTEM_PROMPT,
                    prompt=build_insights_prompt(rows, columns, question),
                    model=self._settings.llm_model,
                    temperature=EXPLAIN_TEMPERATURE,
                    max_tokens=EXPLAIN_MAX_TOKENS,
                )
        except LLMProviderError as e:
            logger.error(f"Error generating insights: {e.message}")
            return INSIGHTS_UNAVAILABLE
        return insights or INSIGHTS_UNAVAILABLE
