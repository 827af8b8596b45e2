"""Embedding providers for schema retrieval.

Example:
    >>> from askdb.embeddings import get_provider
    >>>
    >>> provider = get_provider("openai", api_key="sk-...")
    >>> embedding = await provider.embed("monthly revenue by region")
"""

from askdb.embeddings.provider import EmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "get_provider",
]


def get_provider(
    provider: str | EmbeddingProvider = "openai",
    **kwargs: object,
) -> EmbeddingProvider:
    """Get an embedding provider by name or return the provider if already instantiated.

    Args:
        provider: Provider name ("openai") or EmbeddingProvider instance.
        **kwargs: Additional arguments passed to the provider constructor.

    Returns:
        EmbeddingProvider instance.

    Raises:
        ValueError: If provider name is unknown.
    """
    if isinstance(provider, EmbeddingProvider):
        return provider

    if provider == "openai":
        from askdb.embeddings.openai import OpenAIEmbeddingProvider

        return OpenAIEmbeddingProvider(**kwargs)  # type: ignore[arg-type]
    raise ValueError(f"Unknown embedding provider: {provider}. Available: 'openai'")
