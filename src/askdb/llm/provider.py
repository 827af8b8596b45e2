"""Chat completion provider interface."""

from abc import ABC, abstractmethod


class LLMProvider(ABC):
    """Interface for chat completion providers.

    Implementations raise ``LLMProviderError`` tagged with an ``LLMErrorKind``
    so callers can decide whether another model is worth trying.
    """

    @abstractmethod
    async def complete(
        self,
        *,
        system_prompt: str,
        prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """Run one chat completion.

        Args:
            system_prompt: System message
            prompt: User message
            model: Model identifier
            temperature: Sampling temperature
            max_tokens: Completion token limit

        Returns:
            The completion text, stripped; empty if the model returned nothing

        Raises:
            LLMProviderError: If the provider call fails
        """
        ...

    async def close(self) -> None:
        """Release any network resources held by the provider."""
        return None
