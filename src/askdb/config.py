"""AskDB configuration.

Settings are read from the environment (``ASKDB_`` prefix) or a ``.env`` file.
The LLM keys also accept the unprefixed ``OPENROUTER_API_KEY`` /
``OPENAI_API_KEY`` names most deployments already export.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class Settings(BaseSettings):
    """Runtime configuration for the query pipeline."""

    # LLM provider
    openrouter_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("ASKDB_OPENROUTER_API_KEY", "OPENROUTER_API_KEY"),
    )
    openai_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("ASKDB_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    llm_base_url: str | None = None
    llm_model: str = "openai/gpt-4-turbo-preview"
    llm_fallback_models: list[str] = Field(default_factory=list)
    embedding_model: str = "openai/text-embedding-3-small"

    # Attribution headers sent to OpenRouter
    app_title: str = "AskYourDatabase"
    app_url: str = "http://localhost:3001"

    # Target database access
    connect_timeout_seconds: int = 10
    request_timeout_seconds: float | None = 120.0
    read_only_session: bool = False

    # Default connection for the CLI
    database_url: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="ASKDB_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def uses_openrouter(self) -> bool:
        """Whether completions go through OpenRouter."""
        return self.openrouter_api_key is not None

    @property
    def api_key(self) -> str | None:
        """The key used for LLM calls, OpenRouter first."""
        key = self.openrouter_api_key or self.openai_api_key
        return key.get_secret_value() if key else None

    @property
    def base_url(self) -> str | None:
        """Explicit base URL, else OpenRouter's when an OpenRouter key is set."""
        if self.llm_base_url:
            return self.llm_base_url
        return OPENROUTER_BASE_URL if self.uses_openrouter else None

    @property
    def model_chain(self) -> list[str]:
        """Primary model followed by fallbacks, without duplicates."""
        chain: list[str] = []
        for model in [self.llm_model, *self.llm_fallback_models]:
            if model and model not in chain:
                chain.append(model)
        return chain


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
