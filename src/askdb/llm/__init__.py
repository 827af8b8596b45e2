"""LLM integration: SQL generation, explanations and insights."""

from askdb.llm.openai import OpenAIChatProvider, classify_provider_error
from askdb.llm.provider import LLMProvider
from askdb.llm.service import LLMService, strip_code_fences

__all__ = [
    "LLMProvider",
    "LLMService",
    "OpenAIChatProvider",
    "classify_provider_error",
    "strip_code_fences",
]
