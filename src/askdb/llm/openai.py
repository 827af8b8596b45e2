"""OpenAI-compatible chat completion provider.

Works against the OpenAI API directly or against OpenRouter, which speaks the
same protocol and wants two attribution headers.
"""

from __future__ import annotations

import logging

from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from askdb.exceptions import LLMErrorKind, LLMProviderError
from askdb.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

_MESSAGES = {
    LLMErrorKind.AUTH: "The LLM provider rejected the API key. Check OPENROUTER_API_KEY or OPENAI_API_KEY.",
    LLMErrorKind.RATE_LIMITED: "The LLM provider rate limit was exceeded. Please try again later.",
    LLMErrorKind.INSUFFICIENT_CREDIT: "The LLM provider account has insufficient credit.",
    LLMErrorKind.NETWORK: "Could not reach the LLM provider. Check your network connection.",
}


def openrouter_headers(app_url: str, app_title: str) -> dict[str, str]:
    """Attribution headers OpenRouter expects on every request."""
    return {"HTTP-Referer": app_url, "X-Title": app_title}


def classify_provider_error(exc: Exception, model: str | None = None) -> LLMProviderError:
    """Map an OpenAI SDK exception to a tagged ``LLMProviderError``.

    Args:
        exc: Exception raised by the SDK
        model: Model the request was for

    Returns:
        LLMProviderError with kind AUTH (401), INSUFFICIENT_CREDIT (402 or an
        ``insufficient_quota`` code), RATE_LIMITED (429), NETWORK (no response)
        or OTHER
    """
    if isinstance(exc, LLMProviderError):
        return exc

    if isinstance(exc, APIConnectionError):
        return LLMProviderError(_MESSAGES[LLMErrorKind.NETWORK], LLMErrorKind.NETWORK, model)

    if isinstance(exc, APIStatusError):
        status = exc.status_code
        if status == 401:
            kind = LLMErrorKind.AUTH
        elif status == 402 or exc.code == "insufficient_quota":
            kind = LLMErrorKind.INSUFFICIENT_CREDIT
        elif status == 429:
            kind = LLMErrorKind.RATE_LIMITED
        else:
            return LLMProviderError(
                f"LLM provider error ({status}): {exc.message}",
                LLMErrorKind.OTHER,
                model,
                status,
            )
        return LLMProviderError(_MESSAGES[kind], kind, model, status)

    if isinstance(exc, APIError):
        return LLMProviderError(f"LLM provider error: {exc.message}", LLMErrorKind.OTHER, model)

    return LLMProviderError(f"LLM request failed: {exc}", LLMErrorKind.OTHER, model)


class OpenAIChatProvider(LLMProvider):
    """Chat completions through ``AsyncOpenAI``."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            api_key: OpenAI or OpenRouter key
            base_url: API base URL; None for the OpenAI default
            default_headers: Extra headers sent with every request
        """
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=default_headers,
        )

    async def close(self) -> None:
        await self._client.close()

    async def complete(
        self,
        *,
        system_prompt: str,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as e:
            error = classify_provider_error(e, model)
            logger.warning(f"Completion with {model} failed ({error.kind}): {error.message}")
            raise error from e

        if not response.choices:
            return ""
        content = response.choices[0].message.content
        return (content or "").strip()
