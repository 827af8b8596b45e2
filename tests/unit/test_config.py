"""Tests for settings."""

from pydantic import SecretStr

from askdb.config import OPENROUTER_BASE_URL, Settings


def _settings(**kwargs):
    defaults = {"_env_file": None, "openrouter_api_key": None, "openai_api_key": None}
    return Settings(**{**defaults, **kwargs})


class TestSettings:
    """Tests for derived settings."""

    def test_defaults(self):
        settings = _settings()
        assert settings.connect_timeout_seconds == 10
        assert settings.read_only_session is False
        assert settings.request_timeout_seconds == 120.0

    def test_model_chain_deduplicates(self):
        settings = _settings(llm_model="a", llm_fallback_models=["b", "a", "c", "b"])
        assert settings.model_chain == ["a", "b", "c"]

    def test_openrouter_key_preferred(self):
        settings = _settings(
            openrouter_api_key=SecretStr("sk-or"), openai_api_key=SecretStr("sk-oa")
        )
        assert settings.api_key == "sk-or"
        assert settings.uses_openrouter is True
        assert settings.base_url == OPENROUTER_BASE_URL

    def test_openai_key(self):
        settings = _settings(openai_api_key=SecretStr("sk-oa"))
        assert settings.api_key == "sk-oa"
        assert settings.uses_openrouter is False
        assert settings.base_url is None

    def test_explicit_base_url_wins(self):
        settings = _settings(
            openrouter_api_key=SecretStr("sk-or"), llm_base_url="http://llm.local/v1"
        )
        assert settings.base_url == "http://llm.local/v1"

    def test_no_key(self):
        assert _settings().api_key is None

    def test_keys_hidden_in_repr(self):
        settings = _settings(openai_api_key=SecretStr("sk-very-secret"))
        assert "sk-very-secret" not in repr(settings)


class TestEnvironment:
    """Tests for reading settings from the environment."""

    def test_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("ASKDB_LLM_MODEL", "env-model")
        monkeypatch.setenv("ASKDB_LLM_FALLBACK_MODELS", '["x", "y"]')
        monkeypatch.setenv("ASKDB_READ_ONLY_SESSION", "true")
        settings = Settings(_env_file=None)
        assert settings.model_chain == ["env-model", "x", "y"]
        assert settings.read_only_session is True

    def test_unprefixed_api_keys(self, monkeypatch):
        monkeypatch.delenv("ASKDB_OPENROUTER_API_KEY", raising=False)
        monkeypatch.delenv("ASKDB_OPENAI_API_KEY", raising=False)
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")
        settings = Settings(_env_file=None)
        assert settings.api_key == "sk-from-env"

    def test_prefixed_api_key(self, monkeypatch):
        monkeypatch.setenv("ASKDB_OPENROUTER_API_KEY", "sk-or-env")
        settings = Settings(_env_file=None)
        assert settings.uses_openrouter is True
        assert settings.api_key == "sk-or-env"
