"""OpenAI-compatible embedding provider."""

from __future__ import annotations

from openai import AsyncOpenAI

from askdb.config import Settings, get_settings
from askdb.embeddings.provider import EmbeddingProvider


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Embeddings through the OpenAI API or an OpenRouter-compatible endpoint.

    Example:
        >>> provider = OpenAIEmbeddingProvider(api_key="sk-...")
        >>> embedding = await provider.embed("orders placed last week")
        >>> len(embedding)
        512
    """

    DEFAULT_DIMENSIONS = 512

    def __init__(
        self,
        model: str | None = None,
        dimensions: int = DEFAULT_DIMENSIONS,
        api_key: str | None = None,
        base_url: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            model: Model name. Defaults to the configured embedding model.
            dimensions: Vector dimensions.
            api_key: API key. Falls back to the configured LLM key.
            base_url: API base URL. Falls back to the configured one.
            settings: Runtime settings; defaults to the process settings.
        """
        settings = settings or get_settings()
        api_key = api_key or settings.api_key
        if not api_key:
            raise ValueError(
                "An API key is required for embeddings. Set OPENROUTER_API_KEY or "
                "OPENAI_API_KEY, or pass api_key."
            )

        self._client = AsyncOpenAI(api_key=api_key, base_url=base_url or settings.base_url)
        self._model = model or settings.embedding_model
        self._dimensions = dimensions

    async def embed(self, text: str) -> list[float]:
        response = await self._client.embeddings.create(
            model=self._model,
            input=text,
            dimensions=self._dimensions,
        )
        embedding: list[float] = response.data[0].embedding
        return embedding

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        response = await self._client.embeddings.create(
            model=self._model,
            input=texts,
            dimensions=self._dimensions,
        )
        # Sort by index to maintain order
        sorted_data = sorted(response.data, key=lambda x: x.index)
        return [item.embedding for item in sorted_data]

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model_name(self) -> str:
        return self._model
